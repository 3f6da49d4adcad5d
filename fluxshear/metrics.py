"""
Flux Diagnostics

Quantities for checking conservation and fidelity of resampled images.

Flux is the sum of pixel values. A flux-conserving pass preserves it as long
as no content is pushed past the image border.
"""

import numpy as np


def total_flux(image):
    """Sum of all pixel values, accumulated in float64."""
    return float(np.sum(image, dtype=np.float64))


def flux_error(before, after):
    """
    Relative change in total flux.

    Parameters
    ----------
    before, after : ndarray
        Images before and after resampling

    Returns
    -------
    error : float
        |F_after - F_before| / |F_before|, or the absolute change when the
        input flux is zero
    """
    f_before = total_flux(before)
    f_after = total_flux(after)
    if f_before == 0.0:
        return abs(f_after)
    return abs(f_after - f_before) / abs(f_before)


def interior_mask(shape, margin):
    """
    Boolean mask of pixels at least ``margin`` pixels from every edge.

    Parameters
    ----------
    shape : tuple
        Image shape (rows, cols)
    margin : int or tuple
        Margin for both axes, or (row_margin, col_margin)

    Returns
    -------
    mask : ndarray of bool
    """
    if np.isscalar(margin):
        margin = (margin, margin)
    rows, cols = shape
    mr, mc = (int(m) for m in margin)

    mask = np.zeros(shape, dtype=bool)
    if rows > 2 * mr and cols > 2 * mc:
        mask[mr:rows - mr, mc:cols - mc] = True
    return mask


def max_interior_deviation(image, value, margin):
    """Largest |image - value| over the interior region."""
    mask = interior_mask(image.shape, margin)
    if not mask.any():
        return 0.0
    return float(np.max(np.abs(image[mask].astype(np.float64) - value)))


def footprint_inside_mask(params, n_along, n_across, w_along, w_across):
    """
    Destination elements whose footprint lies entirely inside the source row.

    Parameters
    ----------
    params : ShearParams
        Pass geometry
    n_along, n_across : int
        Source dimensions
    w_along, w_across : float
        Window offsets

    Returns
    -------
    mask : ndarray of bool
        Shape (n_along, n_across), in destination layout
    """
    a = np.arange(n_along, dtype=np.float64)[:, None]
    b = np.arange(n_across, dtype=np.float64)[None, :]
    shift = (a - w_along) * params.c_along + (b - w_across) * params.c_across

    lower = -w_along - 0.5
    upper = n_along - w_along - 0.5
    return (shift + params.knots[0] >= lower) & (shift + params.knots[3] <= upper)


def shear_margin(params, n_across):
    """
    Pixels near the border whose footprint may leave the image.

    The footprint of the last row is displaced by about
    |c_across| * n_across / 2 plus half its support width.
    """
    reach = abs(params.c_across) * n_across / 2.0 + params.support_width
    return int(np.ceil(reach)) + 1
