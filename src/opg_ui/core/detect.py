"""
OPG Boundary Detection
======================

This module locates the panoramic radiograph inside a captured frame by
thresholding a downsampled luminance grid. It is a best-effort convenience
that seeds the interactive corner editor; it never raises and always returns
a usable quad.

Classes
-------
BBox
    Inclusive bounding box of foreground samples with their count
DetectionResult
    Detected (or fallback) quad together with the statistics behind it

Functions
---------
find_bbox
    Bounding box of samples darker or lighter than the mean
score_box
    Plausibility score of a bounding box
detect_in_grid
    Run both polarity hypotheses on a luminance grid
detect_boundary
    Sample a frame and detect the radiograph boundary

Notes
-----
A photographed OPG can appear either darker than its surroundings (film on
a lightbox) or brighter (a glowing monitor in a dim room). Both hypotheses
are evaluated:

1. **dark target**: samples below ``mean - margin`` are foreground
2. **light target**: samples above ``mean + margin`` are foreground

A hypothesis scores zero unless it has at least ``min_count`` foreground
samples and its box covers between 3% and 96% of the grid. Passing boxes
score ``area_fraction * aspect_bonus`` where landscape boxes get the full
bonus and portrait boxes half of it, since an OPG is always wider than tall.
The dark hypothesis wins ties.

The winning box is padded by 2% of the frame on every side and clamped to
``[0, 1]``. If neither hypothesis passes, a fixed central quad is returned.

See Also
--------
opg_ui.core.luminance : Produces the luminance grid
opg_ui.core.editor : Lets the operator refine the detected quad
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from .config import DetectorConfig
from .errors import DetectionUnavailable
from .luminance import LuminanceGrid, sample_luminance
from .quad import Quad, make_quad

logger = logging.getLogger(__name__)


class BBox(NamedTuple):
    min_x: int
    min_y: int
    max_x: int
    max_y: int
    count: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x

    @property
    def height(self) -> int:
        return self.max_y - self.min_y

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)


@dataclass(frozen=True)
class DetectionResult:
    """
    Outcome of boundary detection.

    Attributes
    ----------
    quad : Quad
        Padded, clamped quad in normalized coordinates
    confidence : float
        Score of the winning hypothesis, 0.0 for the fallback quad
    polarity : str
        ``"dark"``, ``"light"`` or ``"fallback"``
    bbox : BBox or None
        Un-padded winning box in grid coordinates
    dark_score, light_score : float
        Scores of both hypotheses
    grid_size : tuple of int
        ``(width, height)`` of the luminance grid, ``(0, 0)`` if unavailable
    """

    quad: Quad
    confidence: float
    polarity: str
    bbox: Optional[BBox] = None
    dark_score: float = 0.0
    light_score: float = 0.0
    grid_size: tuple = (0, 0)

    @property
    def is_fallback(self) -> bool:
        return self.polarity == "fallback"


def find_bbox(grid: LuminanceGrid, target_dark: bool, margin: float = 30) -> BBox:
    """
    Tight bounding box of samples significantly darker or lighter than the mean.

    Parameters
    ----------
    grid : LuminanceGrid
        Luminance samples
    target_dark : bool
        If True, foreground is ``lum < mean - margin``; otherwise
        ``lum > mean + margin``
    margin : float, default=30
        Distance from the mean on the 8-bit scale

    Returns
    -------
    BBox
        Inclusive bounds and foreground count. With no foreground the box is
        inverted (``min > max``) and ``count`` is 0.
    """
    lum = grid.as_2d()
    mean = grid.mean
    if target_dark:
        fg = lum < mean - margin
    else:
        fg = lum > mean + margin
    count = int(fg.sum())
    if count == 0:
        return BBox(grid.width, grid.height, 0, 0, 0)
    ys, xs = np.nonzero(fg)
    return BBox(int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max()), count)


def score_box(bbox: BBox, grid_w: int, grid_h: int, cfg: DetectorConfig = None) -> float:
    """
    Score a candidate box; zero means rejected.

    Parameters
    ----------
    bbox : BBox
        Candidate from :func:`find_bbox`
    grid_w, grid_h : int
        Grid dimensions
    cfg : DetectorConfig, optional
        Thresholds, defaults to ``DetectorConfig()``

    Returns
    -------
    float
        ``area_fraction * aspect_bonus`` for plausible boxes, else 0.0
    """
    cfg = cfg or DetectorConfig()
    if bbox.count < cfg.min_count:
        return 0.0
    frame_area = grid_w * grid_h
    if frame_area <= 0:
        return 0.0
    area = bbox.area
    if area < frame_area * cfg.min_area_frac or area > frame_area * cfg.max_area_frac:
        return 0.0
    aspect = bbox.width / max(1, bbox.height)
    bonus = cfg.landscape_bonus if aspect > 1.0 else cfg.portrait_bonus
    return (area / frame_area) * bonus


def _fallback(cfg: DetectorConfig, **stats) -> DetectionResult:
    return DetectionResult(make_quad(cfg.fallback_quad), 0.0, "fallback", **stats)


def _bbox_to_quad(bbox: BBox, grid_w: int, grid_h: int, pad: float) -> Quad:
    x0 = bbox.min_x / grid_w - pad
    y0 = bbox.min_y / grid_h - pad
    x1 = bbox.max_x / grid_w + pad
    y1 = bbox.max_y / grid_h + pad
    return make_quad([(x0, y0), (x1, y0), (x1, y1), (x0, y1)])


def detect_in_grid(grid: LuminanceGrid, cfg: DetectorConfig = None) -> DetectionResult:
    """
    Evaluate both polarity hypotheses on a luminance grid.

    Parameters
    ----------
    grid : LuminanceGrid
        Downsampled luminance
    cfg : DetectorConfig, optional
        Thresholds, defaults to ``DetectorConfig()``

    Returns
    -------
    DetectionResult
        Winning hypothesis, or the fallback quad if both score zero
    """
    cfg = cfg or DetectorConfig()
    w, h = grid.width, grid.height
    dark = find_bbox(grid, True, cfg.margin)
    light = find_bbox(grid, False, cfg.margin)
    dark_score = score_box(dark, w, h, cfg)
    light_score = score_box(light, w, h, cfg)
    logger.debug(
        "Boundary scores on %dx%d grid: dark=%.4f light=%.4f",
        w, h, dark_score, light_score,
    )

    stats = dict(dark_score=dark_score, light_score=light_score, grid_size=(w, h))
    if dark_score <= 0 and light_score <= 0:
        return _fallback(cfg, **stats)
    if dark_score >= light_score:
        best, score, polarity = dark, dark_score, "dark"
    else:
        best, score, polarity = light, light_score, "light"
    quad = _bbox_to_quad(best, w, h, cfg.pad)
    return DetectionResult(quad, score, polarity, bbox=best, **stats)


def detect_boundary(frame, cfg: DetectorConfig = None) -> DetectionResult:
    """
    Detect the radiograph boundary in a captured frame.

    Parameters
    ----------
    frame : np.ndarray
        RGB or RGBA ImageBuffer, shape (H, W, 3|4)
    cfg : DetectorConfig, optional
        Thresholds, defaults to ``DetectorConfig()``

    Returns
    -------
    DetectionResult
        Detected quad, or the fallback quad when the frame is too small,
        malformed, or contains no plausible box. This function never raises.

    Examples
    --------
    >>> import numpy as np
    >>> frame = np.full((720, 1280, 3), 20, np.uint8)
    >>> frame[144:576, 128:1152] = 220
    >>> res = detect_boundary(frame)
    >>> res.polarity
    'light'
    """
    cfg = cfg or DetectorConfig()
    try:
        grid = sample_luminance(frame, cfg.scale)
    except DetectionUnavailable as e:
        logger.info("Boundary detection unavailable (%s), using fallback quad", e)
        return _fallback(cfg)
    result = detect_in_grid(grid, cfg)
    if result.is_fallback:
        logger.info("No plausible OPG boundary found, using fallback quad")
    return result
