"""
CPU Baseline Implementation

Numba-based shear resampler for validation and performance comparison.

Runs the Shear-X and Shear-Y passes on the host with the same buffer layout
as the GPU resampler, so results can be compared element by element.
"""

import math
import time
import warnings

import numpy as np

from ..layout import DTYPE, check_shape, default_window
from ..shear import shear_x_fast, shear_x_reference, shear_y_fast, shear_y_reference


def validate_dimensions(nx, ny):
    """
    Validate image dimensions.

    Raises
    ------
    ValueError
        If either dimension is not a positive integer
    """
    for name, n in (("nx", nx), ("ny", ny)):
        if int(n) != n or n <= 0:
            raise ValueError(f"{name} must be a positive integer (got {n})")
    return int(nx), int(ny)


def validate_window(w, n, name):
    """
    Window offset for an axis of length n, defaulting to the image centre.

    Raises
    ------
    ValueError
        If the offset is not finite
    """
    if w is None:
        return default_window(n)
    w = float(w)
    if not math.isfinite(w):
        raise ValueError(f"{name} must be finite (got {w})")
    return w


def check_support(params, n, axis):
    """Warn when the footprint is wider than the image along the pass axis."""
    if params.support_width > n:
        warnings.warn(
            f"Shear-{axis} footprint spans {params.support_width:.1f} samples, "
            f"wider than the image ({n}). Most output values will mix the "
            f"whole row."
        )


class CPUShearResampler:
    """
    CPU flux-conserving shear resampler.

    Parameters
    ----------
    nx, ny : int
        Image dimensions (columns, rows)
    wx, wy : float, optional
        Window offsets (default: image centre)
    use_fast : bool
        Use Numba passes (default True); otherwise the NumPy reference

    Attributes
    ----------
    tmp : ndarray
        Intermediate image, shape (nx, ny)
    """

    def __init__(self, nx, ny, wx=None, wy=None, use_fast=True):
        self.nx, self.ny = validate_dimensions(nx, ny)
        self.wx = validate_window(wx, self.nx, "wx")
        self.wy = validate_window(wy, self.ny, "wy")
        self.use_fast = use_fast

        self.tmp = np.zeros((self.nx, self.ny), dtype=DTYPE)

        # Statistics
        self.pass_count = 0
        self.total_time = 0.0

    def _check_image(self, image):
        if image.shape != (self.ny, self.nx):
            raise ValueError(
                f"Image shape {image.shape} does not match resampler "
                f"({self.ny}, {self.nx})"
            )
        return np.ascontiguousarray(image, dtype=DTYPE)

    def forward_x(self, image, params):
        """
        Run the Shear-X pass into the intermediate buffer.

        Parameters
        ----------
        image : ndarray
            Input image, shape (ny, nx)
        params : ShearParams
            Shear-X geometry

        Returns
        -------
        tmp : ndarray
            Intermediate image, shape (nx, ny)
        """
        image = self._check_image(image)
        check_support(params, self.nx, "X")

        start = time.perf_counter()
        if self.use_fast:
            shear_x_fast(image, params, self.wx, self.wy, tmp=self.tmp)
        else:
            self.tmp[:] = shear_x_reference(image, params, self.wx, self.wy)
        self.total_time += time.perf_counter() - start
        self.pass_count += 1

        return self.tmp

    def forward_y(self, params, output=None):
        """
        Run the Shear-Y pass on the intermediate buffer.

        Parameters
        ----------
        params : ShearParams
            Shear-Y geometry
        output : ndarray, optional
            Preallocated output, shape (ny, nx)

        Returns
        -------
        output : ndarray
            Output image, shape (ny, nx)
        """
        check_support(params, self.ny, "Y")
        if output is None:
            output = np.empty((self.ny, self.nx), dtype=DTYPE)
        else:
            check_shape(output, (self.ny, self.nx), "Output")

        start = time.perf_counter()
        if self.use_fast:
            shear_y_fast(self.tmp, params, self.wx, self.wy, output=output)
        else:
            output[:] = shear_y_reference(self.tmp, params, self.wx, self.wy)
        self.total_time += time.perf_counter() - start
        self.pass_count += 1

        return output

    def forward(self, image, params_x, params_y, output=None):
        """
        Shear-X followed by Shear-Y.

        Returns
        -------
        output : ndarray
            Output image, shape (ny, nx)
        """
        self.forward_x(image, params_x)
        return self.forward_y(params_y, output=output)

    def run(self, image, params_x, params_y, num_repeats, verbose=True,
            report_interval=10):
        """
        Time repeated two-pass resampling.

        Parameters
        ----------
        image : ndarray
            Input image, shape (ny, nx)
        params_x, params_y : ShearParams
            Pass geometries
        num_repeats : int
            Number of timed repetitions
        verbose : bool
            Print progress information
        report_interval : int
            Repetitions between progress reports

        Returns
        -------
        mpix : float
            Throughput in million output pixels per second (both passes)
        """
        output = np.empty((self.ny, self.nx), dtype=DTYPE)

        # Warmup (JIT compilation)
        self.forward(image, params_x, params_y, output=output)

        start = time.perf_counter()
        for rep in range(num_repeats):
            self.forward(image, params_x, params_y, output=output)

            if verbose and (rep + 1) % report_interval == 0:
                elapsed = time.perf_counter() - start
                mpix = (rep + 1) * self.nx * self.ny / elapsed / 1e6
                print(f"Repeat {rep + 1}/{num_repeats}, MPix/s: {mpix:.2f}")

        total = time.perf_counter() - start
        mpix = num_repeats * self.nx * self.ny / total / 1e6

        if verbose:
            print(f"Completed {num_repeats} repeats in {total:.2f}s")
            print(f"Performance: {mpix:.2f} MPix/s")

        return mpix


def benchmark_cpu_resampler(image_sizes=None, num_repeats=20, shear=(1.0, 0.4)):
    """
    Benchmark the CPU resampler across image sizes.

    Parameters
    ----------
    image_sizes : list of tuples
        List of (nx, ny) sizes
    num_repeats : int
        Timed repetitions per size
    shear : tuple
        (a, b) shear row used for both passes

    Returns
    -------
    results : dict
        Image sizes and corresponding MPix/s
    """
    from ..geometry import ShearParams

    if image_sizes is None:
        image_sizes = [
            (128, 128),
            (256, 256),
            (512, 512),
            (1024, 1024),
        ]

    params = ShearParams.from_shear_row(*shear)
    results = {}

    print("CPU Shear Resampler Benchmark")
    print("=" * 50)
    print(f"Shear: a={shear[0]}, b={shear[1]}, Repeats: {num_repeats}")
    print()

    for nx, ny in image_sizes:
        print(f"Image size: {nx} x {ny}")
        image = np.random.rand(ny, nx).astype(DTYPE)
        resampler = CPUShearResampler(nx, ny)
        mpix = resampler.run(image, params, params, num_repeats, verbose=False)
        results[(nx, ny)] = mpix
        print(f"  MPix/s: {mpix:.2f}")
        print()

    return results


if __name__ == "__main__":
    results = benchmark_cpu_resampler()

    print("\nSummary")
    print("=" * 50)
    for (nx, ny), mpix in results.items():
        print(f"{nx:4d} x {ny:4d}: {mpix:8.2f} MPix/s")
