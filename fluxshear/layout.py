"""
Buffer Layout and Launch Geometry

Orientation of the image buffers and the thread-block tiling shared by both
shear passes.

    input   shape (ny, nx)   element (x, y) at [y, x]
    tmp     shape (nx, ny)   element (x, y) at [x, y]   (axes swapped)
    output  shape (ny, nx)   element (x, y) at [y, x]

Both passes read their source along the last (contiguous) axis and write a
destination whose axes are swapped relative to the source.
"""
import math

import numpy as np

# Thread block shape (must be compile-time constant for the shared tile)
BLOCK_X = 32
BLOCK_Y = 8

# Element type of all image buffers
DTYPE = np.float32


def default_window(n):
    """Window offset placing the coordinate origin at the image centre."""
    return (n - 1) / 2.0


def transposed_shape(shape):
    """Shape of the destination written by a pass reading ``shape``."""
    n_across, n_along = shape
    return (n_along, n_across)


def padded_extent(n, block):
    """Round ``n`` up to a whole number of blocks."""
    return ((n + block - 1) // block) * block


def launch_config_x(nx, ny):
    """
    Grid and block dimensions for the Shear-X pass.

    Threads run along x inside a block, so the grid covers (nx, ny).

    Returns
    -------
    grid_size, block_size : tuple
    """
    grid_size = (
        (nx + BLOCK_X - 1) // BLOCK_X,
        (ny + BLOCK_Y - 1) // BLOCK_Y
    )
    return grid_size, (BLOCK_X, BLOCK_Y)


def launch_config_y(nx, ny):
    """Grid and block dimensions for the Shear-Y pass (covers (ny, nx))."""
    return launch_config_x(ny, nx)


def support_span(t_first, t_last, w, n):
    """
    Range of input samples that can overlap a footprint.

    Sample ``k`` covers ``[k - w - 0.5, k - w + 0.5)``. Only samples whose
    interval can intersect ``[t_first, t_last]`` are returned.

    Parameters
    ----------
    t_first, t_last : float
        Outer knots of the shifted trapezoid
    w : float
        Window offset along the pass axis
    n : int
        Number of samples along the pass axis

    Returns
    -------
    lo, hi : int
        Half-open index range, both clamped to [0, n]
    """
    lo = int(math.floor(t_first + w + 0.5))
    hi = int(math.ceil(t_last + w + 0.5))
    lo = min(max(lo, 0), n)
    hi = min(max(hi, 0), n)
    return lo, hi


def check_shape(array, shape, name):
    """
    Raise if a buffer does not have the expected shape.

    The pass loops index their destination without bounds checks, so a
    wrong-shaped buffer must be rejected before launch.

    Raises
    ------
    ValueError
        If ``array.shape`` differs from ``shape``
    """
    if tuple(array.shape) != tuple(shape):
        raise ValueError(
            f"{name} shape {tuple(array.shape)} does not match expected "
            f"{tuple(shape)}"
        )
