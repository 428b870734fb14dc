"""
Numba-optimized kernels for the decorrelated colorspace.

Reductions produce one partial result per image row; the caller sums the rows.
Maps rewrite the working image in place.
"""

import numpy as np
from numba import njit, prange


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def channel_sums_numba(image: np.ndarray, out: np.ndarray) -> None:
    """
    Per-row channel sums.

    Args:
        image: Image [H, W, C]
        out: Row sums [H, C] in float64 (modified in-place)
    """
    height, width, channels = image.shape

    for y in prange(height):
        for c in range(channels):
            out[y, c] = 0.0
        for x in range(width):
            for c in range(channels):
                out[y, c] += image[y, x, c]


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def covariance_sums_numba(image: np.ndarray, means: np.ndarray, out: np.ndarray) -> None:
    """
    Per-row sums of centered RGB products.

    Column layout of ``out``: rr, gg, bb, rg, rb, gb.

    Args:
        image: Image [H, W, C], C >= 3
        means: Channel means [3] in float64
        out: Row sums [H, 6] in float64 (modified in-place)
    """
    height, width = image.shape[0], image.shape[1]

    for y in prange(height):
        rr = 0.0
        gg = 0.0
        bb = 0.0
        rg = 0.0
        rb = 0.0
        gb = 0.0
        for x in range(width):
            r = image[y, x, 0] - means[0]
            g = image[y, x, 1] - means[1]
            b = image[y, x, 2] - means[2]
            rr += r * r
            gg += g * g
            bb += b * b
            rg += r * g
            rb += r * b
            gb += g * b

        out[y, 0] = rr
        out[y, 1] = gg
        out[y, 2] = bb
        out[y, 3] = rg
        out[y, 4] = rb
        out[y, 5] = gb


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def project_to_eigenspace_numba(image: np.ndarray, eigenvectors: np.ndarray) -> None:
    """
    Replace RGB by its coordinates along each eigenvector.

    Args:
        image: Image [H, W, C], C >= 3 (modified in-place)
        eigenvectors: Unit eigenvectors as columns [3, 3]
    """
    height, width = image.shape[0], image.shape[1]

    for y in prange(height):
        for x in range(width):
            r = image[y, x, 0]
            g = image[y, x, 1]
            b = image[y, x, 2]
            for k in range(3):
                image[y, x, k] = r * eigenvectors[0, k] + g * eigenvectors[1, k] + b * eigenvectors[2, k]


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def to_bounding_box_numba(
    image: np.ndarray,
    swizzle: np.ndarray,
    mins: np.ndarray,
    ranges: np.ndarray,
) -> None:
    """
    Swizzle channels, then map each color axis onto [0, 1].

    Output channel k takes input channel ``swizzle[k]``. Color channels are then
    rescaled with ``(value - mins[k]) / ranges[k]``.

    Args:
        image: Eigenspace image [H, W, C] (modified in-place)
        swizzle: Source channel per output channel [C]
        mins: Per-axis minimum after swizzling [3]
        ranges: Per-axis range after swizzling [3], all non-zero
    """
    height, width, channels = image.shape

    for y in prange(height):
        pixel = np.empty(channels, dtype=image.dtype)
        for x in range(width):
            for c in range(channels):
                pixel[c] = image[y, x, c]
            for c in range(channels):
                image[y, x, c] = pixel[swizzle[c]]
            for k in range(3):
                image[y, x, k] = (image[y, x, k] - mins[k]) / ranges[k]
