"""
Quadrilateral Model and Coordinate Mapping
==========================================

This module defines the four-corner selection used throughout the capture
pipeline and the mapping between normalized image coordinates and screen
pixels of a letterboxed or pillarboxed display.

Classes
-------
Point
    Normalized ``(x, y)`` coordinate in ``[0, 1]``
Quad
    Ordered corners ``(tl, tr, br, bl)``
RenderRect
    Rectangle occupied by the image inside its display surface
ScreenMapping
    Conversion between normalized points and screen pixels

Functions
---------
make_quad
    Build a clamped Quad from four ``(x, y)`` pairs
rendered_image_rect
    Largest centred aspect-preserving rectangle inside a container
apply_drag
    Replace a single corner of a Quad
quad_to_pixels
    Scale a Quad into pixel units of a given image
quad_area
    Absolute polygon area (shoelace formula)
is_degenerate
    Detect zero-area or collinear-corner quads before warping

Notes
-----
Corner order is positional, not geometric. A Quad is never re-sorted: the
homography correspondences and the on-screen handle labels both depend on
index 0 being the corner the user calls top-left, even if it has been
dragged to the right of index 1.

See Also
--------
opg_ui.core.editor : Applies drag gestures to a Quad
opg_ui.core.warp : Dewarps the region described by a Quad
"""

from typing import NamedTuple

import numpy as np

CORNER_LABELS = ("TL", "TR", "BR", "BL")


class Point(NamedTuple):
    x: float
    y: float


class Quad(NamedTuple):
    tl: Point
    tr: Point
    br: Point
    bl: Point


class RenderRect(NamedTuple):
    left: float
    top: float
    width: float
    height: float


def _clamp01(v) -> float:
    return min(1.0, max(0.0, float(v)))


def clamp_point(x, y) -> Point:
    return Point(_clamp01(x), _clamp01(y))


def make_quad(points) -> Quad:
    """
    Build a Quad from four ``(x, y)`` pairs, clamping each to ``[0, 1]``.

    Parameters
    ----------
    points : sequence
        Four pairs in TL, TR, BR, BL order

    Returns
    -------
    Quad
        Clamped quad in the given order

    Raises
    ------
    ValueError
        If ``points`` does not contain exactly four pairs
    """
    pts = list(points)
    if len(pts) != 4:
        raise ValueError(f"A quad needs exactly 4 corners, got {len(pts)}")
    return Quad(*(clamp_point(p[0], p[1]) for p in pts))


FULL_FRAME_QUAD = make_quad([(0, 0), (1, 0), (1, 1), (0, 1)])


def rendered_image_rect(container_w, container_h, image_w, image_h) -> RenderRect:
    """
    Compute where an aspect-preserving image lands inside a container.

    Parameters
    ----------
    container_w, container_h : float
        Size of the display surface in screen pixels
    image_w, image_h : float
        Native image size in pixels

    Returns
    -------
    RenderRect
        The largest centred rectangle with the image's aspect ratio. If any
        dimension is non-positive the whole container is returned.

    Examples
    --------
    >>> rendered_image_rect(800, 800, 1600, 800)
    RenderRect(left=0.0, top=200.0, width=800.0, height=400.0)
    """
    if container_w <= 0 or container_h <= 0 or image_w <= 0 or image_h <= 0:
        return RenderRect(0.0, 0.0, float(max(container_w, 0)), float(max(container_h, 0)))
    cr = container_w / container_h
    ir = image_w / image_h
    if ir > cr:
        width = float(container_w)
        height = container_w / ir
    else:
        height = float(container_h)
        width = container_h * ir
    return RenderRect(
        (container_w - width) / 2, (container_h - height) / 2, width, height
    )


class ScreenMapping:
    """
    Map normalized image points to screen pixels and back.

    Parameters
    ----------
    rect : RenderRect
        Rectangle the image occupies on screen

    Examples
    --------
    >>> m = ScreenMapping.for_container(800, 800, 1600, 800)
    >>> m.to_screen(Point(0.5, 0.5))
    (400.0, 400.0)
    >>> m.to_image(400, 0)
    Point(x=0.5, y=0.0)
    """

    def __init__(self, rect: RenderRect):
        self.rect = rect

    @classmethod
    def for_container(cls, container_w, container_h, image_w, image_h):
        return cls(rendered_image_rect(container_w, container_h, image_w, image_h))

    def to_screen(self, p) -> tuple[float, float]:
        r = self.rect
        return (r.left + p[0] * r.width, r.top + p[1] * r.height)

    def to_image(self, screen_x, screen_y) -> Point:
        r = self.rect
        if r.width <= 0 or r.height <= 0:
            return Point(0.0, 0.0)
        return clamp_point(
            (screen_x - r.left) / r.width, (screen_y - r.top) / r.height
        )


def apply_drag(quad: Quad, corner_index: int, point) -> Quad:
    """
    Return a copy of ``quad`` with one corner replaced.

    Parameters
    ----------
    quad : Quad
        Current selection
    corner_index : int
        Index 0-3 in TL, TR, BR, BL order
    point : sequence
        New normalized position, clamped per axis

    Returns
    -------
    Quad
        New quad; the other three corners are the same objects as before

    Raises
    ------
    IndexError
        If ``corner_index`` is not 0-3
    """
    if not 0 <= corner_index < 4:
        raise IndexError(f"Corner index must be 0-3, got {corner_index}")
    corners = list(quad)
    corners[corner_index] = clamp_point(point[0], point[1])
    return Quad(*corners)


def quad_to_pixels(quad: Quad, width, height) -> np.ndarray:
    """Scale a normalized Quad into a (4, 2) float64 array of pixel coordinates."""
    pts = np.asarray(quad, dtype=np.float64).reshape(4, 2)
    return pts * np.array([width, height], dtype=np.float64)


def quad_area(quad: Quad, width=1.0, height=1.0) -> float:
    pts = quad_to_pixels(quad, width, height)
    x, y = pts[:, 0], pts[:, 1]
    return 0.5 * abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))


def is_degenerate(quad: Quad, width=1.0, height=1.0, min_area=1e-4) -> bool:
    """
    Check whether a quad is unusable for a homography.

    A quad is degenerate when its area (in the units given by ``width`` and
    ``height``) is below ``min_area`` or when any three of its corners are
    collinear or coincident. The solver itself does not detect this, so
    callers check before warping.
    """
    pts = quad_to_pixels(quad, width, height)
    if quad_area(quad, width, height) < min_area:
        return True
    for i in range(4):
        a, b, c = pts[i], pts[(i + 1) % 4], pts[(i + 2) % 4]
        cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
        if abs(cross) < min_area:
            return True
    return False
