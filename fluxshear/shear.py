"""
Shear Pass Implementations

One-dimensional flux-conserving resampling along the rows of an image.

For destination element (a, b) the trapezoid footprint is shifted to

    t_k = (a - w_along) * c_along + (b - w_across) * c_across + tau_k

and integrated against row b of the source, where source sample k covers
[k - w_along - 0.5, k - w_along + 0.5):

    dst[a, b] = h * sum_k I(t, k - w_along - 0.5, k - w_along + 0.5) * src[b, k]

The destination has its axes swapped relative to the source, so running the
same pass twice (x, then y with the coordinate roles exchanged) returns to
the input orientation:

    Shear-X: src = input (ny, nx)  -> dst = tmp (nx, ny)
    Shear-Y: src = tmp (nx, ny)    -> dst = output (ny, nx)

Two implementations are provided:
- NumPy reference: dense weights over the whole row (clear, slow)
- Numba: summation bounded to the footprint's support span (fast)
"""

import numpy as np
from numba import njit, prange

from .layout import DTYPE, check_shape, support_span, transposed_shape
from .trapezoid import trapezoid_integral_array, trapezoid_integral_njit


# =============================================================================
# NumPy reference
# =============================================================================

def shear_pass_reference(src, c_along, c_across, h, knots, w_along, w_across):
    """
    Dense NumPy shear pass.

    Every source sample of a row is weighted, so no support bound is
    involved. Memory use is O(n_along^2) per row.

    Parameters
    ----------
    src : ndarray
        Source image, shape (n_across, n_along)
    c_along, c_across, h : float
        Pass geometry
    knots : sequence of float
        Trapezoid knots t0..t3
    w_along, w_across : float
        Window offsets along and across the pass axis

    Returns
    -------
    dst : ndarray
        Resampled image, shape (n_along, n_across), float32
    """
    n_across, n_along = src.shape
    dst = np.empty(transposed_shape(src.shape), dtype=DTYPE)

    a = np.arange(n_along, dtype=np.float64)
    edges = np.arange(n_along, dtype=np.float64) - w_along - 0.5

    for b in range(n_across):
        shift = (a - w_along) * c_along + (b - w_across) * c_across
        t = [shift[:, None] + tau for tau in knots]
        weights = trapezoid_integral_array(t, edges[None, :], edges[None, :] + 1.0)
        dst[:, b] = h * (weights @ src[b].astype(np.float64))

    return dst


def shear_x_reference(image, params, wx, wy):
    """
    Shear-X pass with the NumPy reference.

    Parameters
    ----------
    image : ndarray
        Input image, shape (ny, nx)
    params : ShearParams
        Shear-X geometry (c_along = cx, c_across = cy)
    wx, wy : float
        Window offsets

    Returns
    -------
    tmp : ndarray
        Intermediate image, shape (nx, ny)
    """
    return shear_pass_reference(
        image, params.c_along, params.c_across, params.h, params.knots, wx, wy
    )


def shear_y_reference(tmp, params, wx, wy):
    """
    Shear-Y pass with the NumPy reference.

    Parameters
    ----------
    tmp : ndarray
        Intermediate image, shape (nx, ny)
    params : ShearParams
        Shear-Y geometry (c_along = cy, c_across = cx)
    wx, wy : float
        Window offsets

    Returns
    -------
    output : ndarray
        Output image, shape (ny, nx)
    """
    return shear_pass_reference(
        tmp, params.c_along, params.c_across, params.h, params.knots, wy, wx
    )


# =============================================================================
# Numba
# =============================================================================

support_span_njit = njit(cache=True)(support_span)


@njit(cache=True)
def support_sum_numba(src, row, n, w, t0, t1, t2, t3):
    """
    Weighted sum of one source row over the footprint's support span.

    Parameters
    ----------
    src : ndarray
        Source image, shape (n_across, n)
    row : int
        Source row
    n : int
        Row length
    w : float
        Window offset along the row
    t0, t1, t2, t3 : float
        Shifted knots

    Returns
    -------
    acc : float
        Unnormalized sum (h not applied)
    """
    lo, hi = support_span_njit(t0, t3, w, n)

    acc = 0.0
    for k in range(lo, hi):
        left = k - w - 0.5
        acc += trapezoid_integral_njit(t0, t1, t2, t3, left, left + 1.0) * src[row, k]
    return acc


@njit(parallel=True, cache=True)
def shear_pass_numba(src, dst, c_along, c_across, h, t0, t1, t2, t3,
                     n_along, n_across, w_along, w_across):
    """
    Numba-accelerated shear pass.

    Rows are processed in parallel; each writes a disjoint column of dst.

    Parameters
    ----------
    src : ndarray
        Source image, shape (n_across, n_along)
    dst : ndarray
        Destination image, shape (n_along, n_across)
    c_along, c_across, h : float
        Pass geometry
    t0, t1, t2, t3 : float
        Trapezoid knots relative to the footprint centre
    n_along, n_across : int
        Source dimensions
    w_along, w_across : float
        Window offsets
    """
    for b in prange(n_across):
        base = (b - w_across) * c_across
        for a in range(n_along):
            shift = (a - w_along) * c_along + base
            dst[a, b] = h * support_sum_numba(
                src, b, n_along, w_along,
                shift + t0, shift + t1, shift + t2, shift + t3
            )


def shear_x_fast(image, params, wx, wy, tmp=None):
    """
    Shear-X pass using Numba.

    Parameters
    ----------
    image : ndarray
        Input image, shape (ny, nx)
    params : ShearParams
        Shear-X geometry
    wx, wy : float
        Window offsets
    tmp : ndarray, optional
        Preallocated intermediate, shape (nx, ny)

    Returns
    -------
    tmp : ndarray
        Intermediate image, shape (nx, ny)
    """
    ny, nx = image.shape
    if tmp is None:
        tmp = np.empty((nx, ny), dtype=DTYPE)
    else:
        check_shape(tmp, (nx, ny), "Intermediate")

    t0, t1, t2, t3 = params.knots
    shear_pass_numba(
        image, tmp, params.c_along, params.c_across, params.h,
        t0, t1, t2, t3, nx, ny, float(wx), float(wy)
    )
    return tmp


def shear_y_fast(tmp, params, wx, wy, output=None):
    """
    Shear-Y pass using Numba.

    Parameters
    ----------
    tmp : ndarray
        Intermediate image, shape (nx, ny)
    params : ShearParams
        Shear-Y geometry
    wx, wy : float
        Window offsets
    output : ndarray, optional
        Preallocated output, shape (ny, nx)

    Returns
    -------
    output : ndarray
        Output image, shape (ny, nx)
    """
    nx, ny = tmp.shape
    if output is None:
        output = np.empty((ny, nx), dtype=DTYPE)
    else:
        check_shape(output, (ny, nx), "Output")

    t0, t1, t2, t3 = params.knots
    shear_pass_numba(
        tmp, output, params.c_along, params.c_across, params.h,
        t0, t1, t2, t3, ny, nx, float(wy), float(wx)
    )
    return output
