"""
Tests for pass geometry and launch layout.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fluxshear.geometry import ShearParams
from fluxshear.layout import (
    BLOCK_X, BLOCK_Y, default_window, transposed_shape, padded_extent,
    launch_config_x, launch_config_y,
)
from fluxshear.metrics import footprint_inside_mask, shear_margin


class TestLaunchConfig:
    """Grid covers the image with 32x8 blocks."""

    def test_block_shape(self):
        assert (BLOCK_X, BLOCK_Y) == (32, 8)

    def test_x_grid(self):
        grid, block = launch_config_x(10, 10)
        assert grid == (1, 2)
        assert block == (32, 8)

    def test_y_grid_swaps_axes(self):
        grid, block = launch_config_y(100, 17)
        assert grid == (1, 13)
        assert block == (32, 8)

    def test_exact_multiple(self):
        grid, _ = launch_config_x(64, 16)
        assert grid == (2, 2)

    def test_padded_extent(self):
        assert padded_extent(10, BLOCK_X) == 32
        assert padded_extent(10, BLOCK_Y) == 16
        assert padded_extent(64, BLOCK_X) == 64


class TestLayout:
    """Buffer orientation helpers."""

    def test_default_window(self):
        assert default_window(4) == 1.5
        assert default_window(1) == 0.0

    def test_transposed_shape(self):
        assert transposed_shape((3, 5)) == (5, 3)


class TestShearParams:
    """Derivation of pass parameters from a shear row."""

    def test_general_row(self):
        params = ShearParams.from_shear_row(2.0, 1.0)
        assert params.c_along == 0.5
        assert params.c_across == -0.5
        assert params.h == 1.0
        assert params.knots == (-0.5, 0.0, 0.0, 0.5)

    def test_large_skew_normalization(self):
        params = ShearParams.from_shear_row(1.0, 4.0)
        assert params.h == 0.25
        assert params.support_width == pytest.approx(5.0)

    def test_negative_scale_sorted(self):
        params = ShearParams.from_shear_row(-1.0, 0.5)
        assert list(params.knots) == sorted(params.knots)
        assert params.c_along == -1.0

    def test_y_shear_same_form(self):
        px = ShearParams.for_x_shear(0.8, 0.3)
        py = ShearParams.for_y_shear(0.8, 0.3)
        assert px.knots == py.knots
        assert (px.c_along, px.c_across, px.h) == (py.c_along, py.c_across, py.h)

    def test_shifted_knots(self):
        params = ShearParams.for_x_shear(1.0, 0.5)
        knots = params.shifted_knots(1, 2, 1.5, 1.5)
        # shift = -0.5 - 0.25
        np.testing.assert_allclose(knots, (-1.5, -1.0, -0.5, 0.0))

    def test_unordered_knots_rejected(self):
        with pytest.raises(ValueError, match="t0 <= t1"):
            ShearParams(1.0, 0.0, 1.0, (0.5, -0.5, 0.5, 0.5))

    def test_repr(self):
        assert "ShearParams(c_along=1" in repr(ShearParams.identity())


class TestFootprintMask:
    """Destination elements whose footprint stays inside the row."""

    def test_identity_all_inside(self):
        mask = footprint_inside_mask(ShearParams.identity(), 6, 4, 2.5, 1.5)
        assert mask.shape == (6, 4)
        assert mask.all()

    def test_shear_excludes_edges(self):
        params = ShearParams.for_x_shear(1.0, 0.5)
        mask = footprint_inside_mask(params, 16, 16, 7.5, 7.5)
        assert mask[8, 8]
        assert not mask[0, 15]
        assert not mask[15, 0]

    def test_shear_margin_grows_with_skew(self):
        small = shear_margin(ShearParams.for_x_shear(1.0, 0.1), 64)
        large = shear_margin(ShearParams.for_x_shear(1.0, 0.9), 64)
        assert large > small
