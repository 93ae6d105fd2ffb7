"""
Four-Point Homography Solver
============================

This module solves the projective transform that maps four source points
onto four destination points.

Functions
---------
solve_homography
    Solve the 8 free coefficients from four correspondences
apply_homography
    Map points through a homography

Notes
-----
With the ninth coefficient fixed to 1, every correspondence
``(xs, ys) -> (xd, yd)`` contributes two linear equations::

    h0*xs + h1*ys + h2 - h6*xs*xd - h7*ys*xd = xd
    h3*xs + h4*ys + h5 - h6*xs*yd - h7*ys*yd = yd

Four correspondences give a dense 8x8 system, solved here with Gauss-Jordan
elimination and partial pivoting. When the largest remaining entry of a
column is below ``1e-10`` that column is skipped instead of dividing by it.
Collinear or coincident points therefore never raise; they produce a
meaningless homography, and callers are expected to reject such quads first
(see :func:`opg_ui.core.quad.is_degenerate`).

See Also
--------
opg_ui.core.warp : Uses the solver to dewarp a quad
"""

import numpy as np

PIVOT_EPS = 1e-10


def _as_points(pts, name):
    arr = np.asarray(pts, dtype=np.float64)
    if arr.shape != (4, 2):
        raise ValueError(f"{name} must be four (x, y) points, got shape {arr.shape}")
    return arr


def solve_homography(src_pts, dst_pts) -> np.ndarray:
    """
    Solve the homography mapping ``src_pts`` onto ``dst_pts``.

    Parameters
    ----------
    src_pts : array-like, shape (4, 2)
        Source points
    dst_pts : array-like, shape (4, 2)
        Corresponding destination points, same order

    Returns
    -------
    np.ndarray
        Coefficients ``h0..h8`` (float64, length 9) with ``h8 == 1``

    Raises
    ------
    ValueError
        If either input is not four 2-D points

    Examples
    --------
    >>> rect = [(0, 0), (10, 0), (10, 5), (0, 5)]
    >>> h = solve_homography(rect, [(0, 0), (20, 0), (20, 10), (0, 10)])
    >>> np.round(h, 6).tolist()
    [2.0, 0.0, 0.0, 0.0, 2.0, 0.0, 0.0, 0.0, 1.0]
    """
    src = _as_points(src_pts, "src_pts")
    dst = _as_points(dst_pts, "dst_pts")

    M = np.zeros((8, 9), dtype=np.float64)
    for i in range(4):
        xs, ys = src[i]
        xd, yd = dst[i]
        M[2 * i] = [xs, ys, 1, 0, 0, 0, -xd * xs, -xd * ys, xd]
        M[2 * i + 1] = [0, 0, 0, xs, ys, 1, -yd * xs, -yd * ys, yd]

    for col in range(8):
        pivot_row = col + int(np.argmax(np.abs(M[col:, col])))
        if pivot_row != col:
            M[[col, pivot_row]] = M[[pivot_row, col]]
        piv = M[col, col]
        if abs(piv) < PIVOT_EPS:
            continue
        M[col, col:] /= piv
        for row in range(8):
            if row == col:
                continue
            f = M[row, col]
            if f != 0.0:
                M[row, col:] -= f * M[col, col:]

    return np.append(M[:, 8], 1.0)


def apply_homography(h, x, y):
    """
    Map ``(x, y)`` through homography ``h``.

    Parameters
    ----------
    h : array-like
        Nine coefficients as returned by :func:`solve_homography`
    x, y : float or np.ndarray
        Coordinates to map; arrays are broadcast

    Returns
    -------
    tuple
        Mapped ``(x, y)``. Points on the line at infinity map to ``inf`` or
        ``nan``.
    """
    h = np.asarray(h, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        w = h[6] * x + h[7] * y + h[8]
        mx = (h[0] * x + h[1] * y + h[2]) / w
        my = (h[3] * x + h[4] * y + h[5]) / w
    return mx, my
