"""
Shear Pass Geometry

Parameters of a single shear pass and their derivation from the one
non-trivial row of a shear matrix.

An x-shear maps (u, v) -> (a*u + b*v, v). The output pixel at x pulls from
input coordinate

    u = x / a - (b / a) * y

so the pass uses c_along = 1/a and c_across = -b/a. The preimage of a unit
output pixel along the row is a box of width 1/|a| swept across a width of
|b/a|, which gives a trapezoid with knots +-0.5/a +- 0.5*b/a. Scaling the
unit-height trapezoid by h = min(1, 1/|b|) makes its area equal the
preimage area 1/|a|, so every input pixel's flux is split exactly among the
output pixels.

A y-shear (u, v) -> (u, b*u + a*v) has the same form with the axes exchanged.
"""

import math

from .trapezoid import validate_knots


class ShearParams:
    """
    Parameters of one shear pass.

    Parameters
    ----------
    c_along : float
        Coefficient of the pass-axis coordinate (cx for Shear-X, cy for Shear-Y)
    c_across : float
        Coefficient of the orthogonal coordinate
    h : float
        Area normalization applied to every output value
    knots : sequence of float
        Trapezoid knots t0 <= t1 <= t2 <= t3 relative to the footprint centre
    """

    def __init__(self, c_along, c_across, h, knots):
        for name, value in (("c_along", c_along), ("c_across", c_across), ("h", h)):
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite (got {value})")
        self.c_along = float(c_along)
        self.c_across = float(c_across)
        self.h = float(h)
        self.knots = validate_knots(knots)

    @classmethod
    def from_shear_row(cls, a, b):
        """
        Derive pass parameters from a shear row.

        Parameters
        ----------
        a : float
            Scale along the pass axis (must be non-zero)
        b : float
            Skew coefficient of the orthogonal axis
        """
        if a == 0.0:
            raise ValueError("Shear scale a must be non-zero")

        c_along = 1.0 / a
        c_across = -b / a
        h = 1.0 if b == 0.0 else min(1.0, 1.0 / abs(b))

        knots = sorted([
            0.5 / a + 0.5 * b / a,
            0.5 / a - 0.5 * b / a,
            -0.5 / a + 0.5 * b / a,
            -0.5 / a - 0.5 * b / a,
        ])
        return cls(c_along, c_across, h, knots)

    @classmethod
    def for_x_shear(cls, a, b):
        """Shear-X parameters for (u, v) -> (a*u + b*v, v)."""
        return cls.from_shear_row(a, b)

    @classmethod
    def for_y_shear(cls, a, b):
        """Shear-Y parameters for (u, v) -> (u, b*u + a*v)."""
        return cls.from_shear_row(a, b)

    @classmethod
    def identity(cls):
        """Pass that reproduces its input (unit box, no shift)."""
        return cls(1.0, 0.0, 1.0, (-0.5, -0.5, 0.5, 0.5))

    @property
    def support_width(self):
        """Width t3 - t0 of the footprint in input samples."""
        return self.knots[3] - self.knots[0]

    def shifted_knots(self, a, b, w_along, w_across):
        """Knots of the footprint for output position (a, b)."""
        shift = (a - w_along) * self.c_along + (b - w_across) * self.c_across
        return tuple(shift + t for t in self.knots)

    def __repr__(self):
        return (
            f"ShearParams(c_along={self.c_along:.6g}, c_across={self.c_across:.6g}, "
            f"h={self.h:.6g}, knots={self.knots})"
        )
