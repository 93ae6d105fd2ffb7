"""
Perspective Dewarping
=====================

This module resamples the quadrilateral selected on a captured frame into a
flat rectangular image, correcting the perspective of a radiograph that was
photographed at an angle.

Functions
---------
warp_quad
    Dewarp a quad of the source frame into a fixed-size rectangle
output_corners_in_source
    Where the output rectangle's corners land in the source frame

Notes
-----
The homography is solved from **output space to source space**: the four
corners of the output rectangle ``(0,0), (W,0), (W,H), (0,H)`` are mapped to
the quad corners scaled into source pixels. Every output pixel is then
pulled from the source (inverse mapping), so the output has no holes:

1. Solve ``h`` with ``src = output corners``, ``dst = quad * (W_src, H_src)``
2. Map every output pixel ``(dx, dy)`` through ``h``
3. Round half-up to the nearest source pixel
4. Copy all channels of in-bounds samples; leave the rest at ``background``

Sampling is nearest-neighbour. It is exact for the full-frame identity case
and deterministic, so identical inputs yield byte-identical outputs.

See Also
--------
opg_ui.core.homography : The four-point solver
opg_ui.core.quad : Quad definition and degeneracy check
"""

import logging

import numpy as np

from .homography import apply_homography, solve_homography
from .quad import Quad, quad_to_pixels

logger = logging.getLogger(__name__)


def _output_rect(out_w, out_h):
    return [(0, 0), (out_w, 0), (out_w, out_h), (0, out_h)]


def _check_size(out_size):
    out_w, out_h = (int(v) for v in out_size)
    if out_w <= 0 or out_h <= 0:
        raise ValueError(f"Output size must be positive, got {out_w}x{out_h}")
    return out_w, out_h


def output_corners_in_source(quad: Quad, frame_shape, out_size) -> np.ndarray:
    """
    Map the output rectangle's corners into source-pixel coordinates.

    Parameters
    ----------
    quad : Quad
        Normalized source quad
    frame_shape : tuple
        Shape of the source frame ``(H, W, ...)``
    out_size : tuple of int
        ``(out_w, out_h)``

    Returns
    -------
    np.ndarray
        (4, 2) array; for a well-formed quad this reproduces the quad corners
        in source pixels
    """
    out_w, out_h = _check_size(out_size)
    H, W = frame_shape[:2]
    h = solve_homography(_output_rect(out_w, out_h), quad_to_pixels(quad, W, H))
    rect = np.asarray(_output_rect(out_w, out_h), dtype=np.float64)
    sx, sy = apply_homography(h, rect[:, 0], rect[:, 1])
    return np.stack([sx, sy], axis=1)


def warp_quad(frame, quad: Quad, out_size=(1200, 600), background=0) -> np.ndarray:
    """
    Dewarp the region of ``frame`` bounded by ``quad``.

    Parameters
    ----------
    frame : np.ndarray
        Source ImageBuffer, shape (H, W, C)
    quad : Quad
        Normalized corners in TL, TR, BR, BL order
    out_size : tuple of int, default=(1200, 600)
        Output ``(width, height)``
    background : int, default=0
        Fill value for output pixels that map outside the source

    Returns
    -------
    np.ndarray
        New array of shape ``(out_h, out_w, C)`` with the source dtype

    Raises
    ------
    ValueError
        If ``out_size`` is not positive or ``frame`` is not an image

    Examples
    --------
    >>> import numpy as np
    >>> from opg_ui.core.quad import make_quad
    >>> frame = np.zeros((720, 1280, 3), np.uint8)
    >>> q = make_quad([(0.1, 0.1), (0.9, 0.1), (0.9, 0.9), (0.1, 0.9)])
    >>> warp_quad(frame, q, (1200, 600)).shape
    (600, 1200, 3)
    """
    src = np.asarray(frame)
    if src.ndim not in (2, 3) or src.shape[0] == 0 or src.shape[1] == 0:
        raise ValueError(f"Expected an image array, got shape {src.shape}")
    out_w, out_h = _check_size(out_size)
    H, W = src.shape[:2]

    h = solve_homography(_output_rect(out_w, out_h), quad_to_pixels(quad, W, H))

    dy, dx = np.mgrid[0:out_h, 0:out_w].astype(np.float64)
    fx, fy = apply_homography(h, dx, dy)
    with np.errstate(invalid="ignore"):
        sx = np.floor(fx + 0.5)
        sy = np.floor(fy + 0.5)
        valid = np.isfinite(sx) & np.isfinite(sy)
        valid &= (sx >= 0) & (sx < W) & (sy >= 0) & (sy < H)

    out = np.full((out_h, out_w) + src.shape[2:], background, dtype=src.dtype)
    out[valid] = src[sy[valid].astype(np.intp), sx[valid].astype(np.intp)]

    filled = int(valid.sum())
    if filled == 0:
        logger.warning("Warp produced an empty image; the quad is probably degenerate")
    else:
        logger.debug(
            "Warped %dx%d frame to %dx%d (%d/%d pixels sampled)",
            W, H, out_w, out_h, filled, out_w * out_h,
        )
    return out
