"""
Numba-optimized kernels for the bitonic rank sort.

The network is expressed in its mirror/shear form. Each kernel performs one
data-independent pass of compare-exchanges, and returning from the kernel is
the barrier between passes. Values and their original pixel indices are
swapped in lock-step, and equal values are ordered by index so the result is a
strict total order.
"""

import numpy as np
from numba import njit, prange


@njit(cache=True, nogil=True)
def compare_exchange(values: np.ndarray, index: np.ndarray, i: int, j: int) -> None:
    """Order (values[i], index[i]) <= (values[j], index[j]), swapping both arrays."""
    vi = values[i]
    vj = values[j]
    if vi > vj or (vi == vj and index[i] > index[j]):
        values[i] = vj
        values[j] = vi
        tmp = index[i]
        index[i] = index[j]
        index[j] = tmp


@njit(cache=True, nogil=True)
def mirror_pass(values: np.ndarray, index: np.ndarray, base: int, length: int, height: int) -> None:
    """
    Mirror pass over ``length`` elements starting at ``base``.

    Inside every group of ``height`` elements, offset m is compared with
    offset height - 1 - m.
    """
    half = height // 2
    for t in range(length // 2):
        group = t // half
        m = t - group * half
        start = base + group * height
        compare_exchange(values, index, start + m, start + height - 1 - m)


@njit(cache=True, nogil=True)
def shear_pass(values: np.ndarray, index: np.ndarray, base: int, length: int, height: int) -> None:
    """
    Shear pass over ``length`` elements starting at ``base``.

    Inside every group of ``height`` elements, offset m is compared with
    offset m + height / 2.
    """
    half = height // 2
    for t in range(length // 2):
        group = t // half
        m = t - group * half
        i = base + group * height + m
        compare_exchange(values, index, i, i + half)


@njit(parallel=True, cache=True, nogil=True)
def local_full_sort_numba(values: np.ndarray, index: np.ndarray, block_size: int) -> None:
    """
    Sort every block of ``block_size`` elements completely.

    One worker owns one block, so the passes inside a block are ordered by the
    worker itself and blocks never touch each other.

    Args:
        values: Channel values [N] (modified in-place)
        index: Original flattened pixel indices [N] (modified in-place)
        block_size: Power-of-two block length dividing N
    """
    n_blocks = values.shape[0] // block_size

    for b in prange(n_blocks):
        base = b * block_size
        height = 2
        while height <= block_size:
            mirror_pass(values, index, base, block_size, height)
            shear = height // 2
            while shear >= 2:
                shear_pass(values, index, base, block_size, shear)
                shear //= 2
            height *= 2


@njit(parallel=True, cache=True, nogil=True)
def local_shear_numba(values: np.ndarray, index: np.ndarray, block_size: int, height: int) -> None:
    """
    Finish a shear cascade inside each block.

    Runs shear passes at group sizes height, height / 2, ..., 2 where
    height <= block_size, so every compared pair lies in one block.

    Args:
        values: Channel values [N] (modified in-place)
        index: Original flattened pixel indices [N] (modified in-place)
        block_size: Power-of-two block length dividing N
        height: Group size of the first shear pass
    """
    n_blocks = values.shape[0] // block_size

    for b in prange(n_blocks):
        base = b * block_size
        shear = height
        while shear >= 2:
            shear_pass(values, index, base, block_size, shear)
            shear //= 2


@njit(parallel=True, cache=True, nogil=True)
def global_mirror_numba(values: np.ndarray, index: np.ndarray, height: int) -> None:
    """
    Mirror pass across the whole array, one compare-exchange per iteration.

    Args:
        values: Channel values [N] (modified in-place)
        index: Original flattened pixel indices [N] (modified in-place)
        height: Group size (power of two, <= N)
    """
    half = height // 2
    pairs = values.shape[0] // 2

    for t in prange(pairs):
        group = t // half
        m = t - group * half
        start = group * height
        compare_exchange(values, index, start + m, start + height - 1 - m)


@njit(parallel=True, cache=True, nogil=True)
def global_shear_numba(values: np.ndarray, index: np.ndarray, height: int) -> None:
    """
    Shear pass across the whole array, one compare-exchange per iteration.

    Args:
        values: Channel values [N] (modified in-place)
        index: Original flattened pixel indices [N] (modified in-place)
        height: Group size (power of two, <= N)
    """
    half = height // 2
    pairs = values.shape[0] // 2

    for t in prange(pairs):
        group = t // half
        m = t - group * half
        i = group * height + m
        compare_exchange(values, index, i, i + half)


@njit(parallel=True, cache=True, nogil=True)
def split_channels_numba(pixels: np.ndarray, values: np.ndarray, index: np.ndarray) -> None:
    """
    Split interleaved pixels into per-channel value arrays with identity indices.

    Args:
        pixels: Flattened image [N, C]
        values: Output channel values [C, N]
        index: Output indices [C, N], filled with 0..N-1 per channel
    """
    n = pixels.shape[0]
    channels = pixels.shape[1]

    for i in prange(n):
        for c in range(channels):
            values[c, i] = pixels[i, c]
            index[c, i] = i
