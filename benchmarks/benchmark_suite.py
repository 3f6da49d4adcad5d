"""
Comprehensive Benchmark Suite

Performance and fidelity testing for all shear resampler backends.
Compares the NumPy reference, Numba CPU and tiled GPU passes, and measures
the flux lost by point-sampled interpolation.
"""

import numpy as np
import time
import sys
import os

from numba import cuda
from scipy import ndimage

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fluxshear.geometry import ShearParams
from fluxshear.layout import DTYPE, default_window
from fluxshear.metrics import flux_error
from fluxshear.shear import shear_x_fast, shear_x_reference, shear_y_reference

CUDA_AVAILABLE = cuda.is_available()


def benchmark_reference(nx, ny, params_x, params_y, num_repeats):
    """
    Benchmark the dense NumPy reference passes.

    Returns
    -------
    mpix : float
        Million output pixels per second (both passes)
    """
    image = np.random.rand(ny, nx).astype(DTYPE)
    wx, wy = default_window(nx), default_window(ny)

    start = time.perf_counter()
    for _ in range(num_repeats):
        tmp = shear_x_reference(image, params_x, wx, wy)
        shear_y_reference(tmp, params_y, wx, wy)
    elapsed = time.perf_counter() - start

    return num_repeats * nx * ny / elapsed / 1e6


def benchmark_cpu(nx, ny, params_x, params_y, num_repeats):
    """Benchmark the Numba CPU resampler."""
    from fluxshear.kernels.cpu_baseline import CPUShearResampler

    image = np.random.rand(ny, nx).astype(DTYPE)
    resampler = CPUShearResampler(nx, ny)
    return resampler.run(image, params_x, params_y, num_repeats, verbose=False)


def benchmark_gpu(nx, ny, params_x, params_y, num_repeats):
    """Benchmark the tiled GPU resampler."""
    if not CUDA_AVAILABLE:
        return 0.0

    from fluxshear.kernels.gpu_tiled import GPUShearResampler

    image = np.random.rand(ny, nx).astype(DTYPE)
    resampler = GPUShearResampler(nx, ny)
    return resampler.run(image, params_x, params_y, num_repeats, verbose=False)


def interpolated_shear_x(image, a, b):
    """
    Shear-X by point-sampled linear interpolation.

    Maps output (x', y) to input x = (x' - wx)/a - (b/a)(y - wy) + wx, the
    same geometry as ``ShearParams.for_x_shear(a, b)``.
    """
    ny, nx = image.shape
    wx, wy = default_window(nx), default_window(ny)
    matrix = np.array([[1.0, 0.0], [-b / a, 1.0 / a]])
    offset = np.array([0.0, wx * (1.0 - 1.0 / a) + b * wy / a])
    return ndimage.affine_transform(image, matrix, offset=offset, order=1,
                                    mode='constant', cval=0.0)


def compare_flux(n=256, shears=None, blob=64, seed=0):
    """
    Flux error of linear interpolation against the flux-conserving pass.

    Returns
    -------
    results : dict
        (a, b) -> (interpolation error, flux-conserving error)
    """
    if shears is None:
        shears = [(1.0, 0.3), (1.0, 1.2), (0.7, 0.5), (1.5, -0.4), (0.4, 0.0)]

    rng = np.random.default_rng(seed)
    image = np.zeros((n, n), dtype=DTYPE)
    lo = (n - blob) // 2
    image[lo:lo + blob, lo:lo + blob] = rng.random((blob, blob))
    w = default_window(n)

    print("Flux Error: Linear Interpolation vs Flux-Conserving Shear")
    print("-" * 60)
    print(f"{'Shear (a, b)':<16} {'Linear':>14} {'Flux-cons.':>14}")

    results = {}
    for a, b in shears:
        interp = interpolated_shear_x(image, a, b)
        exact = shear_x_fast(image, ShearParams.for_x_shear(a, b), w, w)

        err_interp = flux_error(image, interp)
        err_exact = flux_error(image, exact)
        results[(a, b)] = (err_interp, err_exact)
        print(f"({a:4.2f}, {b:5.2f})    {err_interp:>14.3e} {err_exact:>14.3e}")

    print()
    return results


def run_full_benchmark(image_sizes=None, shear=(1.0, 0.4), num_repeats=50):
    """
    Run complete benchmark suite comparing all backends.
    """
    if image_sizes is None:
        image_sizes = [
            (64, 64),
            (128, 128),
            (256, 256),
            (512, 512),
            (1024, 1024),
            (2048, 2048),
        ]

    params_x = ShearParams.for_x_shear(*shear)
    params_y = ShearParams.for_y_shear(*shear)

    print("=" * 70)
    print("Flux-Conserving Shear Benchmark Suite - All Backends")
    print("=" * 70)
    print(f"Shear: a={shear[0]}, b={shear[1]}")
    print(f"Repeats: {num_repeats}")
    print(f"CUDA Available: {CUDA_AVAILABLE}")
    print()

    results = {'reference': {}, 'cpu': {}, 'gpu': {}}

    # Dense reference is O(n^3) per pass
    ref_sizes = [(nx, ny) for nx, ny in image_sizes if nx <= 256]
    print("Benchmarking NumPy reference...")
    print("-" * 40)
    for nx, ny in ref_sizes:
        mpix = benchmark_reference(nx, ny, params_x, params_y, max(1, num_repeats // 10))
        results['reference'][(nx, ny)] = mpix
        print(f"  {nx:4d} x {ny:4d}: {mpix:8.2f} MPix/s")
    print()

    print("Benchmarking CPU (Numba parallel)...")
    print("-" * 40)
    cpu_sizes = [(nx, ny) for nx, ny in image_sizes if nx <= 1024]
    for nx, ny in cpu_sizes:
        mpix = benchmark_cpu(nx, ny, params_x, params_y, num_repeats)
        results['cpu'][(nx, ny)] = mpix
        print(f"  {nx:4d} x {ny:4d}: {mpix:8.2f} MPix/s")
    print()

    if CUDA_AVAILABLE:
        print("Benchmarking GPU (tiled, shared-memory transpose)...")
        print("-" * 40)
        for nx, ny in image_sizes:
            try:
                mpix = benchmark_gpu(nx, ny, params_x, params_y, num_repeats * 4)
                results['gpu'][(nx, ny)] = mpix
                print(f"  {nx:4d} x {ny:4d}: {mpix:8.2f} MPix/s")
            except Exception as e:
                print(f"  {nx:4d} x {ny:4d}: Error - {e}")
                results['gpu'][(nx, ny)] = 0.0
        print()

    # Summary Table
    print("=" * 70)
    print("SUMMARY: Performance Comparison (MPix/s)")
    print("=" * 70)
    print(f"{'Image':<12} {'NumPy':>10} {'CPU':>10} {'GPU':>10} {'Speedup':>10}")
    print("-" * 70)

    for nx, ny in image_sizes:
        ref = results['reference'].get((nx, ny), 0)
        cpu = results['cpu'].get((nx, ny), 0)
        gpu = results['gpu'].get((nx, ny), 0)

        if cpu > 0 and gpu > 0:
            speedup = f"{gpu / cpu:.0f}x"
        else:
            speedup = "N/A"

        print(f"{nx:4d}x{ny:<4d}    {ref:>10.2f} {cpu:>10.1f} {gpu:>10.1f} {speedup:>10}")

    print("=" * 70)
    print()

    return results


def compute_memory_bandwidth(mpix, bytes_per_pixel=16):
    """
    Effective memory bandwidth in GB/s from two-pass MPix/s.

    Each pass reads and writes one float32 per pixel at minimum.
    """
    return mpix * bytes_per_pixel / 1000


if __name__ == "__main__":
    results = run_full_benchmark()
    compare_flux()

    if CUDA_AVAILABLE and results['gpu']:
        best = max(results['gpu'].values())
        print(f"Peak GPU: {best:.1f} MPix/s, "
              f"{compute_memory_bandwidth(best):.1f} GB/s effective")
