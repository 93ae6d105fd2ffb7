"""
Luminance Sampling
==================

This module reduces a captured frame to a small luminance grid so that the
boundary detector can afford a full scan of every pixel.

Classes
-------
LuminanceGrid
    Flat luminance array with its grid dimensions

Functions
---------
sample_luminance
    Downsample an RGB(A) frame and compute per-pixel luminance

Notes
-----
Luminance uses fixed-point integer weights ``(77 R + 150 G + 29 B) >> 8``,
which approximates ``0.30 R + 0.59 G + 0.11 B`` on an 8-bit scale.

See Also
--------
opg_ui.core.detect : Consumes the luminance grid
"""

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from .errors import DetectionUnavailable

logger = logging.getLogger(__name__)

MIN_SIDE = 4


@dataclass(frozen=True)
class LuminanceGrid:
    """
    Downsampled luminance values.

    Attributes
    ----------
    values : np.ndarray
        Flat uint8 array of length ``width * height`` in row-major order
    width : int
        Grid width in samples
    height : int
        Grid height in samples
    """

    values: np.ndarray
    width: int
    height: int

    @property
    def mean(self) -> float:
        return float(self.values.mean()) if self.values.size else 0.0

    def as_2d(self) -> np.ndarray:
        return self.values.reshape(self.height, self.width)

    @classmethod
    def from_2d(cls, arr) -> "LuminanceGrid":
        arr = np.asarray(arr)
        if arr.ndim != 2:
            raise ValueError(f"Expected a 2-D luminance array, got shape {arr.shape}")
        h, w = arr.shape
        return cls(np.ascontiguousarray(arr, dtype=np.uint8).ravel(), w, h)


def sample_luminance(frame, scale: float = 0.25) -> LuminanceGrid:
    """
    Downsample a frame and compute its luminance grid.

    Parameters
    ----------
    frame : np.ndarray
        RGB or RGBA image, shape (H, W, 3|4), dtype uint8
    scale : float, default=0.25
        Linear downsampling factor

    Returns
    -------
    LuminanceGrid
        Grid of ``max(1, round(W*scale)) x max(1, round(H*scale))`` samples

    Raises
    ------
    DetectionUnavailable
        If the frame is not a numeric colour image or is smaller than 4
        pixels on either side
    """
    if frame is None:
        raise DetectionUnavailable("No frame to sample")
    try:
        arr = np.asarray(frame)
    except (TypeError, ValueError) as e:
        raise DetectionUnavailable(f"Malformed frame buffer: {e}") from e
    if not np.issubdtype(arr.dtype, np.number):
        raise DetectionUnavailable(f"Unsupported frame dtype {arr.dtype}")
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise DetectionUnavailable(f"Unsupported frame shape {arr.shape}")
    H, W = arr.shape[:2]
    if W < MIN_SIDE or H < MIN_SIDE:
        raise DetectionUnavailable(f"Frame {W}x{H} is too small for detection")

    gw = max(1, int(round(W * scale)))
    gh = max(1, int(round(H * scale)))
    try:
        rgb = np.ascontiguousarray(arr[:, :, :3], dtype=np.uint8)
    except (TypeError, ValueError) as e:
        raise DetectionUnavailable(f"Frame cannot be read as 8-bit RGB: {e}") from e
    small = cv2.resize(rgb, (gw, gh), interpolation=cv2.INTER_AREA)
    c = small.astype(np.uint32)
    lum = (c[:, :, 0] * 77 + c[:, :, 1] * 150 + c[:, :, 2] * 29) >> 8
    logger.debug("Sampled %dx%d frame to %dx%d luminance grid", W, H, gw, gh)
    return LuminanceGrid(lum.astype(np.uint8).ravel(), gw, gh)
