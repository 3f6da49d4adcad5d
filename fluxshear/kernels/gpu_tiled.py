"""
Tiled GPU Implementation

CUDA shear kernels using Numba with a shared-memory transpose.

Each 32x8 thread block computes a 32x8 tile of destination values in the
orientation of the source (threads along the pass axis), stages them in
shared memory, synchronizes, and then every thread commits a different
element of the tile so that consecutive threads write consecutive addresses
of the axis-swapped destination:

    stage:   tile[ty, tx]  <-  value for (a = bx*32 + tx, b = by*8 + ty)
    commit:  lid = ty*32 + tx,  sb = lid % 8,  sa = lid // 8
             dst[bx*32 + sa, by*8 + sb]  <-  tile[sb, sa]

Threads outside the image mark their tile slot invalid and that slot is
never committed.
"""

import time
import warnings

import numpy as np
from numba import cuda, float32, int32

from ..layout import (
    BLOCK_X, BLOCK_Y, DTYPE, check_shape,
    launch_config_x, launch_config_y, support_span,
)
from ..trapezoid import trapezoid_integral
from .cpu_baseline import check_support, validate_dimensions, validate_window

# Small images leave most of the device idle
try:
    from numba.core.errors import NumbaPerformanceWarning
    warnings.filterwarnings("ignore", category=NumbaPerformanceWarning)
except ImportError:
    pass


# =============================================================================
# Device Functions
# =============================================================================

trapezoid_integral_device = cuda.jit(device=True)(trapezoid_integral)
support_span_device = cuda.jit(device=True)(support_span)


@cuda.jit(device=True)
def support_sum(src, row, n, w, t0, t1, t2, t3):
    """Weighted sum of one source row over the footprint's support span."""
    lo, hi = support_span_device(t0, t3, w, n)

    acc = 0.0
    for k in range(lo, hi):
        left = k - w - 0.5
        acc += trapezoid_integral_device(t0, t1, t2, t3, left, left + 1.0) * src[row, k]
    return acc


@cuda.jit(device=True)
def shear_tile(c_along, c_across, h, t0, t1, t2, t3,
               n_along, n_across, w_along, w_across, src, dst, tile, valid):
    """
    Compute one tile of a shear pass and commit it transposed.

    Parameters
    ----------
    c_along, c_across, h : float
        Pass geometry
    t0, t1, t2, t3 : float
        Trapezoid knots relative to the footprint centre
    n_along, n_across : int
        Source dimensions; src has shape (n_across, n_along)
    w_along, w_across : float
        Window offsets
    src : device array
        Source image, read along its last axis
    dst : device array
        Destination, indexed [a, b]
    tile : shared array, shape (BLOCK_Y, BLOCK_X)
        Staged values
    valid : shared array, shape (BLOCK_Y, BLOCK_X)
        1 where the staged value belongs to the image, 0 otherwise
    """
    tx = cuda.threadIdx.x
    ty = cuda.threadIdx.y
    a0 = cuda.blockIdx.x * BLOCK_X
    b0 = cuda.blockIdx.y * BLOCK_Y
    a = a0 + tx
    b = b0 + ty

    if a < n_along and b < n_across:
        shift = (a - w_along) * c_along + (b - w_across) * c_across
        tile[ty, tx] = h * support_sum(
            src, b, n_along, w_along,
            shift + t0, shift + t1, shift + t2, shift + t3
        )
        valid[ty, tx] = 1
    else:
        valid[ty, tx] = 0

    # Every read below depends on another thread's write above
    cuda.syncthreads()

    lid = ty * BLOCK_X + tx
    sb = lid % BLOCK_Y
    sa = lid // BLOCK_Y

    if valid[sb, sa] == 1:
        dst[a0 + sa, b0 + sb] = tile[sb, sa]


# =============================================================================
# Kernels
# =============================================================================

@cuda.jit
def shear_x_kernel(cx, cy, h, t0, t1, t2, t3, nx, ny, wx, wy, src, tmp):
    """
    Shear-X pass.

    Launch with ``launch_config_x(nx, ny)``.

    Parameters
    ----------
    cx, cy, h : float
        Pass geometry
    t0, t1, t2, t3 : float
        Trapezoid knots
    nx, ny : int
        Image dimensions
    wx, wy : float
        Window offsets
    src : device array
        Input image, shape (ny, nx)
    tmp : device array
        Intermediate image, shape (nx, ny)
    """
    tile = cuda.shared.array((BLOCK_Y, BLOCK_X), dtype=float32)
    valid = cuda.shared.array((BLOCK_Y, BLOCK_X), dtype=int32)

    shear_tile(cx, cy, h, t0, t1, t2, t3, nx, ny, wx, wy, src, tmp, tile, valid)


@cuda.jit
def shear_y_kernel(cy, cx, h, t0, t1, t2, t3, nx, ny, wx, wy, tmp, dst):
    """
    Shear-Y pass.

    Same parameter shape as ``shear_x_kernel`` with the coefficients given
    in (cy, cx) order. Launch with ``launch_config_y(nx, ny)``.

    Parameters
    ----------
    tmp : device array
        Intermediate image, shape (nx, ny)
    dst : device array
        Output image, shape (ny, nx)
    """
    tile = cuda.shared.array((BLOCK_Y, BLOCK_X), dtype=float32)
    valid = cuda.shared.array((BLOCK_Y, BLOCK_X), dtype=int32)

    shear_tile(cy, cx, h, t0, t1, t2, t3, ny, nx, wy, wx, tmp, dst, tile, valid)


# =============================================================================
# GPU Resampler Class
# =============================================================================

def check_cuda_available():
    """Check if CUDA is available."""
    return cuda.is_available()


def _kernel_args(params):
    t0, t1, t2, t3 = params.knots
    return (
        np.float32(params.c_along), np.float32(params.c_across),
        np.float32(params.h),
        np.float32(t0), np.float32(t1), np.float32(t2), np.float32(t3),
    )


class GPUShearResampler:
    """
    GPU flux-conserving shear resampler using Numba CUDA.

    The intermediate and output buffers stay on the device between calls.
    Both passes are issued on the default stream, so Shear-Y starts only
    after Shear-X has finished.

    Parameters
    ----------
    nx, ny : int
        Image dimensions (columns, rows)
    wx, wy : float, optional
        Window offsets (default: image centre)
    """

    def __init__(self, nx, ny, wx=None, wy=None):
        if not check_cuda_available():
            raise RuntimeError("CUDA is not available")

        self.nx, self.ny = validate_dimensions(nx, ny)
        self.wx = validate_window(wx, self.nx, "wx")
        self.wy = validate_window(wy, self.ny, "wy")

        self.grid_x, self.block_size = launch_config_x(self.nx, self.ny)
        self.grid_y, _ = launch_config_y(self.nx, self.ny)

        # Allocate device arrays
        self.d_tmp = cuda.device_array((self.nx, self.ny), dtype=DTYPE)
        self.d_out = cuda.device_array((self.ny, self.nx), dtype=DTYPE)

        self.pass_count = 0

    def to_device(self, image):
        """Copy an input image to the device."""
        if image.shape != (self.ny, self.nx):
            raise ValueError(
                f"Image shape {image.shape} does not match resampler "
                f"({self.ny}, {self.nx})"
            )
        return cuda.to_device(np.ascontiguousarray(image, dtype=DTYPE))

    def forward_x(self, d_src, params):
        """
        Launch the Shear-X pass.

        Parameters
        ----------
        d_src : device array
            Input image on the device, shape (ny, nx)
        params : ShearParams
            Shear-X geometry

        Returns
        -------
        d_tmp : device array
            Intermediate image, shape (nx, ny)
        """
        check_support(params, self.nx, "X")
        shear_x_kernel[self.grid_x, self.block_size](
            *_kernel_args(params),
            self.nx, self.ny, np.float32(self.wx), np.float32(self.wy),
            d_src, self.d_tmp
        )
        self.pass_count += 1
        return self.d_tmp

    def forward_y(self, params, d_dst=None):
        """
        Launch the Shear-Y pass on the intermediate buffer.

        Parameters
        ----------
        params : ShearParams
            Shear-Y geometry
        d_dst : device array, optional
            Output buffer, shape (ny, nx) (default: internal buffer)

        Returns
        -------
        d_dst : device array
        """
        check_support(params, self.ny, "Y")
        if d_dst is None:
            d_dst = self.d_out
        else:
            check_shape(d_dst, (self.ny, self.nx), "Output")

        shear_y_kernel[self.grid_y, self.block_size](
            *_kernel_args(params),
            self.nx, self.ny, np.float32(self.wx), np.float32(self.wy),
            self.d_tmp, d_dst
        )
        self.pass_count += 1
        return d_dst

    def forward(self, image, params_x, params_y):
        """
        Shear-X followed by Shear-Y.

        Parameters
        ----------
        image : ndarray or device array
            Input image, shape (ny, nx)
        params_x, params_y : ShearParams
            Pass geometries

        Returns
        -------
        output : ndarray
            Output image on the host, shape (ny, nx)
        """
        if isinstance(image, np.ndarray):
            d_src = self.to_device(image)
        else:
            check_shape(image, (self.ny, self.nx), "Image")
            d_src = image

        self.forward_x(d_src, params_x)
        d_dst = self.forward_y(params_y)
        self.synchronize()
        return d_dst.copy_to_host()

    def get_intermediate(self):
        """Copy the intermediate image to the host, shape (nx, ny)."""
        return self.d_tmp.copy_to_host()

    def synchronize(self):
        """Wait for all launched passes to complete."""
        cuda.synchronize()

    def run(self, image, params_x, params_y, num_repeats, verbose=True,
            report_interval=100):
        """
        Time repeated two-pass resampling on the device.

        Returns
        -------
        mpix : float
            Throughput in million output pixels per second (both passes)
        """
        d_src = self.to_device(image)

        # Warmup (kernel compilation)
        for _ in range(3):
            self.forward_x(d_src, params_x)
            self.forward_y(params_y)
        self.synchronize()

        start = time.perf_counter()
        for rep in range(num_repeats):
            self.forward_x(d_src, params_x)
            self.forward_y(params_y)

            if verbose and (rep + 1) % report_interval == 0:
                self.synchronize()
                elapsed = time.perf_counter() - start
                mpix = (rep + 1) * self.nx * self.ny / elapsed / 1e6
                print(f"Repeat {rep + 1}/{num_repeats}, MPix/s: {mpix:.2f}")

        self.synchronize()
        total = time.perf_counter() - start
        mpix = num_repeats * self.nx * self.ny / total / 1e6

        if verbose:
            print(f"Completed {num_repeats} repeats in {total:.2f}s")
            print(f"Performance: {mpix:.2f} MPix/s")

        return mpix


def benchmark_gpu_resampler(image_sizes=None, num_repeats=200, shear=(1.0, 0.4)):
    """
    Benchmark the GPU resampler across image sizes.

    Returns
    -------
    results : dict
        Image sizes and corresponding MPix/s
    """
    from ..geometry import ShearParams

    if not check_cuda_available():
        print("CUDA not available!")
        return {}

    if image_sizes is None:
        image_sizes = [
            (256, 256),
            (512, 512),
            (1024, 1024),
            (2048, 2048),
            (4096, 4096),
        ]

    params = ShearParams.from_shear_row(*shear)
    results = {}

    print("GPU Shear Resampler Benchmark (Tiled)")
    print("=" * 60)
    print(f"Shear: a={shear[0]}, b={shear[1]}, Repeats: {num_repeats}")
    print()

    for nx, ny in image_sizes:
        print(f"Image size: {nx} x {ny}")

        try:
            resampler = GPUShearResampler(nx, ny)
            image = np.random.rand(ny, nx).astype(DTYPE)
            mpix = resampler.run(image, params, params, num_repeats, verbose=False)
            results[(nx, ny)] = mpix
            print(f"  Performance: {mpix:.2f} MPix/s")
        except Exception as e:
            print(f"  Error: {e}")
            results[(nx, ny)] = 0

        print()

    return results


if __name__ == "__main__":
    if check_cuda_available():
        print("CUDA is available!")
        print()

        results = benchmark_gpu_resampler()

        print("\nSummary")
        print("=" * 60)
        for (nx, ny), mpix in results.items():
            print(f"{nx:4d} x {ny:4d}: {mpix:8.2f} MPix/s")
    else:
        print("CUDA is not available. Install CUDA toolkit and compatible GPU.")
