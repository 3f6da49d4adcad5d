"""
Tests for flux conservation.

The shear passes distribute every input pixel's flux exactly over the
output pixels, so total flux is preserved whenever no content crosses the
image border, and a constant image stays constant away from the border for
pure shears.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fluxshear.geometry import ShearParams
from fluxshear.layout import default_window
from fluxshear.metrics import (
    total_flux, flux_error, interior_mask, footprint_inside_mask,
    max_interior_deviation, shear_margin,
)
from fluxshear.shear import shear_x_fast, shear_x_reference
from fluxshear.trapezoid import trapezoid_area
from fluxshear.kernels.cpu_baseline import CPUShearResampler


def centred_blob(n, size, seed=0):
    """Random content in the centre of an n x n image, zero elsewhere."""
    rng = np.random.default_rng(seed)
    image = np.zeros((n, n), dtype=np.float32)
    lo = (n - size) // 2
    image[lo:lo + size, lo:lo + size] = rng.random((size, size))
    return image


class TestParameterNormalization:
    """h times the trapezoid area equals the preimage area 1/|a|."""

    @pytest.mark.parametrize("a,b", [
        (1.0, 0.0), (1.0, 0.5), (1.0, 2.5), (0.7, 0.3), (1.4, -3.0),
    ])
    def test_footprint_area(self, a, b):
        params = ShearParams.from_shear_row(a, b)
        assert np.isclose(params.h * trapezoid_area(params.knots), 1.0 / abs(a))

    def test_zero_scale_rejected(self):
        with pytest.raises(ValueError, match="non-zero"):
            ShearParams.from_shear_row(0.0, 1.0)

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            ShearParams(np.inf, 0.0, 1.0, (-0.5, -0.5, 0.5, 0.5))


class TestConstantImage:
    """Pure shears reproduce a constant image away from the border."""

    @pytest.mark.parametrize("b", [0.0, 0.2, -0.45, 0.9, 1.6])
    def test_x_pass_constant(self, b):
        n = 32
        c = 2.5
        image = np.full((n, n), c, dtype=np.float32)
        params = ShearParams.for_x_shear(1.0, b)
        w = default_window(n)

        tmp = shear_x_fast(image, params, w, w)

        inside = footprint_inside_mask(params, n, n, w, w)
        assert inside.sum() > n
        np.testing.assert_allclose(tmp[inside], c, rtol=1e-6)

    def test_two_pass_constant(self):
        n = 40
        c = 1.0
        image = np.full((n, n), c, dtype=np.float32)
        px = ShearParams.for_x_shear(1.0, 0.3)
        py = ShearParams.for_y_shear(1.0, -0.25)

        output = CPUShearResampler(n, n).forward(image, px, py)

        margin = shear_margin(px, n) + shear_margin(py, n)
        assert max_interior_deviation(output, c, margin) < 1e-5

    def test_scaled_constant(self):
        """A scale a divides the constant by |a|."""
        n = 32
        c = 3.0
        a = 1.25
        image = np.full((n, n), c, dtype=np.float32)
        params = ShearParams.for_x_shear(a, 0.2)
        w = default_window(n)

        tmp = shear_x_fast(image, params, w, w)

        inside = footprint_inside_mask(params, n, n, w, w)
        assert inside.sum() > n
        np.testing.assert_allclose(tmp[inside], c / a, rtol=1e-6)


class TestTotalFlux:
    """Total flux is preserved for content away from the border."""

    @pytest.mark.parametrize("a,b", [
        (1.0, 0.3), (0.8, 0.4), (1.2, -0.7), (-1.0, 0.5), (0.6, 2.0),
    ])
    def test_x_pass_flux(self, a, b):
        n = 48
        image = centred_blob(n, 12, seed=1)
        params = ShearParams.for_x_shear(a, b)
        w = default_window(n)

        tmp = shear_x_fast(image, params, w, w)

        assert flux_error(image, tmp) < 1e-5

    def test_reference_flux(self):
        n = 24
        image = centred_blob(n, 6, seed=2)
        params = ShearParams.for_x_shear(0.9, -0.5)
        w = default_window(n)

        tmp = shear_x_reference(image, params, w, w)

        assert flux_error(image, tmp) < 1e-5

    def test_two_pass_flux(self):
        n = 64
        image = centred_blob(n, 16, seed=3)
        px = ShearParams.for_x_shear(0.9, 0.45)
        py = ShearParams.for_y_shear(1.1, -0.35)

        output = CPUShearResampler(n, n).forward(image, px, py)

        assert flux_error(image, output) < 1e-5

    def test_single_pixel_split(self):
        """A single pixel's flux is split, not lost or duplicated."""
        n = 16
        image = np.zeros((n, n), dtype=np.float32)
        image[7, 8] = 5.0
        params = ShearParams.for_x_shear(1.0, 0.37)
        w = default_window(n)

        tmp = shear_x_fast(image, params, w, w)

        assert np.isclose(total_flux(tmp), 5.0, rtol=1e-6)
        assert np.count_nonzero(tmp[:, 7]) >= 1
        assert np.all(tmp >= 0.0)

    def test_round_trip_flux(self):
        """Shearing by b and then by -b keeps the flux."""
        n = 48
        image = centred_blob(n, 10, seed=4)
        w = default_window(n)

        tmp = shear_x_fast(image, ShearParams.for_x_shear(1.0, 0.6), w, w)
        back = shear_x_fast(tmp.T.copy(), ShearParams.for_x_shear(1.0, -0.6), w, w)

        assert flux_error(image, back) < 1e-5


class TestMetrics:
    """Diagnostic helpers."""

    def test_interior_mask(self):
        mask = interior_mask((6, 8), 2)
        assert mask.sum() == 2 * 4
        assert mask[2, 2] and not mask[1, 2]

    def test_interior_mask_per_axis(self):
        mask = interior_mask((6, 8), (0, 3))
        assert mask.sum() == 6 * 2

    def test_interior_mask_empty(self):
        assert not interior_mask((4, 4), 3).any()

    def test_flux_error_zero_input(self):
        zeros = np.zeros((3, 3))
        assert flux_error(zeros, zeros) == 0.0
