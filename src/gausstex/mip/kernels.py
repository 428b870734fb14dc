"""
Numba-optimized kernels for mip variance and LUT filtering.
"""

import math

import numpy as np
from numba import njit, prange

from gausstex.gaussian.kernels import inv_cdf_scalar, quantile_scalar


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def block_average_numba(image: np.ndarray, kernel_height: int, kernel_width: int, out: np.ndarray) -> None:
    """
    Mean of every non-overlapping kernel_height x kernel_width block.

    Args:
        image: Input map [H, W, C]
        kernel_height: Block height dividing H
        kernel_width: Block width dividing W
        out: Output map [H / kernel_height, W / kernel_width, C] (modified in-place)
    """
    out_h, out_w, channels = out.shape
    scale = 1.0 / (kernel_height * kernel_width)

    for y in prange(out_h):
        for x in range(out_w):
            for c in range(channels):
                total = 0.0
                for ky in range(kernel_height):
                    for kx in range(kernel_width):
                        total += image[y * kernel_height + ky, x * kernel_width + kx, c]
                out[y, x, c] = total * scale


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def moment_maps_numba(image: np.ndarray, values: np.ndarray, squares: np.ndarray) -> None:
    """
    Value and squared-value maps in float64.

    Args:
        image: Input image [H, W, C]
        values: Output x [H, W, C] (modified in-place)
        squares: Output x^2 [H, W, C] (modified in-place)
    """
    height, width, channels = image.shape

    for y in prange(height):
        for x in range(width):
            for c in range(channels):
                v = np.float64(image[y, x, c])
                values[y, x, c] = v
                squares[y, x, c] = v * v


@njit(parallel=True, cache=True, nogil=True)
def lut_filter_populate_numba(base: np.ndarray, stddev: np.ndarray, out: np.ndarray) -> None:
    """
    Fill the expanded filter intermediate for one mip level.

    Row j is centered on the Gaussian position of LUT cell j. Sample s of the
    row is ``g = InvCDF(quantile(s, S), quantile(j, N), stddev[c])``, and the
    stored value is the base LUT linearly interpolated at g, where cell i sits
    at quantile(i, N) and positions beyond the first/last cell clamp.

    Args:
        base: Base LUT cells [N, C]
        stddev: Gaussian-domain standard deviation per channel [C]
        out: Intermediate [N, S, C] (modified in-place)
    """
    n = base.shape[0]
    channels = base.shape[1]
    samples = out.shape[1]
    n_f = float(n)
    samples_f = float(samples)
    last = float(n - 1)

    for j in prange(n):
        mu = quantile_scalar(float(j), n_f)
        for s in range(samples):
            u = quantile_scalar(float(s), samples_f)
            for c in range(channels):
                g = inv_cdf_scalar(u, mu, stddev[c])
                pos = g * n_f - 0.5
                pos = min(max(pos, 0.0), last)
                i0 = int(math.floor(pos))
                i1 = min(i0 + 1, n - 1)
                t = pos - i0
                out[j, s, c] = base[i0, c] * (1.0 - t) + base[i1, c] * t
