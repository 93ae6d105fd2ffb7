"""Drag-based corner editing for the capture quad."""

import logging
import math

from .config import FALLBACK_QUAD
from .quad import FULL_FRAME_QUAD, Quad, RenderRect, ScreenMapping, apply_drag, make_quad

logger = logging.getLogger(__name__)


class QuadEditor:
    """
    Holds the current quad and applies pointer drags to it.

    The presentation layer reports drag-begin with a corner index, a series
    of drag-move events in screen pixels, and drag-end. Each move replaces
    only the dragged corner; the other three never move and no convexity
    check is done. Degenerate shapes are left for the caller to reject
    before warping.

    Parameters
    ----------
    quad : Quad, optional
        Initial selection, by default the central fallback quad
    mapping : ScreenMapping, optional
        Screen/image mapping, by default an empty rect until the canvas
        reports its size
    """

    def __init__(self, quad: Quad | None = None, mapping: ScreenMapping | None = None):
        self.quad = quad if quad is not None else make_quad(FALLBACK_QUAD)
        self.mapping = mapping or ScreenMapping(RenderRect(0.0, 0.0, 0.0, 0.0))
        self.dragging: int | None = None
        self._listeners = []

    def add_listener(self, callback):
        self._listeners.append(callback)

    def _changed(self):
        for cb in self._listeners:
            cb(self.quad)

    def set_quad(self, quad: Quad):
        self.quad = make_quad(quad)
        self.dragging = None
        self._changed()

    def set_mapping(self, mapping: ScreenMapping):
        self.mapping = mapping

    def reset_to_full_frame(self) -> Quad:
        self.set_quad(FULL_FRAME_QUAD)
        return self.quad

    def drag_begin(self, corner_index: int):
        if not 0 <= corner_index < 4:
            raise IndexError(f"Corner index must be 0-3, got {corner_index}")
        self.dragging = corner_index

    def drag_move(self, screen_x: float, screen_y: float) -> Quad:
        if self.dragging is None:
            return self.quad
        pt = self.mapping.to_image(screen_x, screen_y)
        self.quad = apply_drag(self.quad, self.dragging, pt)
        self._changed()
        return self.quad

    def drag_end(self):
        if self.dragging is not None:
            logger.debug("Corner %d released at %s", self.dragging, self.quad[self.dragging])
        self.dragging = None

    def hit_test(self, screen_x: float, screen_y: float, radius: float = 22.0) -> int | None:
        """Index of the handle nearest to a screen point within ``radius``, else None."""
        best, best_d = None, radius
        for i, p in enumerate(self.quad):
            sx, sy = self.mapping.to_screen(p)
            d = math.hypot(sx - screen_x, sy - screen_y)
            if d <= best_d:
                best, best_d = i, d
        return best
