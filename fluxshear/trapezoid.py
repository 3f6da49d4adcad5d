"""
Trapezoid Response Integration

Exact area of a trapezoidal response function over a sub-interval.

The response is defined by four ordered knots t0 <= t1 <= t2 <= t3:

         1 |      ________
           |     /        \\
           |    /          \\
         0 |___/            \\___
              t0  t1    t2  t3

The integral over [l, r] is split into one term per segment, each evaluated
on the query interval clamped to that segment:

    rising:  ((r - t0)^2 - (l - t0)^2) / (2 * (t1 - t0))     on [t0, t1]
    flat:    r - l                                           on [t1, t2]
    falling: ((l - t3)^2 - (r - t3)^2) / (2 * (t3 - t2))     on [t2, t3]

Clamping makes a term vanish when the query interval misses its segment.
A zero-width ramp (t0 == t1 or t2 == t3) is a step edge and contributes
nothing, so the pure box (-0.5, -0.5, 0.5, 0.5) is a valid response.

NaN propagates through the interval bounds only. A NaN knot fails the ramp
guards and yields a finite, meaningless area, so knots are checked on the
host with ``validate_knots`` before any pass runs.
"""

import math

import numpy as np
from numba import njit


def trapezoid_integral(t0, t1, t2, t3, left, right):
    """
    Area of the trapezoid response restricted to [left, right].

    Compiled for the CPU as ``trapezoid_integral_njit`` and for CUDA devices
    in ``fluxshear.kernels.gpu_tiled``.

    Parameters
    ----------
    t0, t1, t2, t3 : float
        Ordered knots
    left, right : float
        Query interval, left <= right

    Returns
    -------
    area : float
    """
    area = 0.0

    if t1 > t0:
        l = min(max(left, t0), t1)
        r = min(max(right, t0), t1)
        area += ((r - t0) * (r - t0) - (l - t0) * (l - t0)) / (2.0 * (t1 - t0))

    l = min(max(left, t1), t2)
    r = min(max(right, t1), t2)
    area += r - l

    if t3 > t2:
        l = min(max(left, t2), t3)
        r = min(max(right, t2), t3)
        area += ((l - t3) * (l - t3) - (r - t3) * (r - t3)) / (2.0 * (t3 - t2))

    return area


trapezoid_integral_njit = njit(cache=True)(trapezoid_integral)


def trapezoid_integral_array(knots, left, right):
    """
    Vectorized trapezoid integral.

    Parameters
    ----------
    knots : sequence of 4 array_like
        Knots t0..t3; each may be an array (e.g. one shifted footprint per
        output pixel) as long as all arguments broadcast together
    left, right : array_like
        Query interval bounds

    Returns
    -------
    area : ndarray
        Broadcast shape of all inputs
    """
    t0, t1, t2, t3 = (np.asarray(t, dtype=np.float64) for t in knots)
    left = np.asarray(left, dtype=np.float64)
    right = np.asarray(right, dtype=np.float64)

    rise = t1 - t0
    fall = t3 - t2

    l = np.clip(left, t0, t1)
    r = np.clip(right, t0, t1)
    with np.errstate(divide='ignore', invalid='ignore'):
        rising = np.where(
            rise > 0.0,
            ((r - t0) ** 2 - (l - t0) ** 2) / (2.0 * rise),
            0.0
        )

    flat = np.clip(right, t1, t2) - np.clip(left, t1, t2)

    l = np.clip(left, t2, t3)
    r = np.clip(right, t2, t3)
    with np.errstate(divide='ignore', invalid='ignore'):
        falling = np.where(
            fall > 0.0,
            ((l - t3) ** 2 - (r - t3) ** 2) / (2.0 * fall),
            0.0
        )

    return rising + flat + falling


def trapezoid_area(knots):
    """Total area (t1 - t0)/2 + (t2 - t1) + (t3 - t2)/2."""
    t0, t1, t2, t3 = knots
    return 0.5 * (t1 - t0) + (t2 - t1) + 0.5 * (t3 - t2)


def trapezoid_response(knots, x):
    """
    Pointwise value of the response.

    Step edges take the value 1 exactly on the knot.
    """
    t0, t1, t2, t3 = (float(t) for t in knots)
    x = np.asarray(x, dtype=np.float64)

    y = np.zeros_like(x)
    y[(x >= t1) & (x <= t2)] = 1.0

    if t1 > t0:
        m = (x > t0) & (x < t1)
        y[m] = (x[m] - t0) / (t1 - t0)
    if t3 > t2:
        m = (x > t2) & (x < t3)
        y[m] = (t3 - x[m]) / (t3 - t2)

    return y


def validate_knots(knots, name="knots"):
    """
    Validate trapezoid knots.

    Zero-width ramps are accepted (step edges).

    Parameters
    ----------
    knots : sequence of float
        Knots t0..t3
    name : str
        Name for error messages

    Raises
    ------
    ValueError
        If there are not four finite, ordered knots spanning a non-zero width

    Returns
    -------
    knots : tuple of float
        Validated knots
    """
    knots = tuple(float(t) for t in knots)
    if len(knots) != 4:
        raise ValueError(f"{name} must contain 4 values (got {len(knots)})")
    if not all(math.isfinite(t) for t in knots):
        raise ValueError(f"{name} must be finite (got {knots})")
    t0, t1, t2, t3 = knots
    if not (t0 <= t1 <= t2 <= t3):
        raise ValueError(
            f"{name} must satisfy t0 <= t1 <= t2 <= t3 (got {knots})"
        )
    if t3 == t0:
        raise ValueError(
            f"{name} span zero width (got {knots}). "
            f"The response would have zero area."
        )
    return knots
