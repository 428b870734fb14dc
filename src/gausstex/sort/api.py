"""
Parallel rank sort for per-channel pixel values.

Sorts each channel ascending while tracking the flattened pixel coordinate
every value came from. Uses a blocked bitonic network:

1. Every block of ``block_size`` elements is sorted completely by one worker.
2. For group sizes above the block size, a global mirror pass is followed by
   global shear passes until the shear size fits in a block again, where the
   per-block shear kernel finishes the cascade.

Every kernel call completes before the next starts, which is the barrier the
network needs between stages.
"""

import logging

import numpy as np

from gausstex.constants import DEFAULT_SORT_BLOCK_SIZE
from gausstex.errors import ValidationError
from gausstex.sort.kernels import (
    global_mirror_numba,
    global_shear_numba,
    local_full_sort_numba,
    local_shear_numba,
    split_channels_numba,
)
from gausstex.validators import is_power_of_two

logger = logging.getLogger(__name__)


def bitonic_sort(
    values: np.ndarray,
    index: np.ndarray,
    block_size: int = DEFAULT_SORT_BLOCK_SIZE,
) -> None:
    """
    Sort ``values`` ascending in-place, permuting ``index`` in lock-step.

    Equal values keep ascending ``index`` order.

    Args:
        values: Channel values [N], N a power of two (modified in-place)
        index: Index array [N] (modified in-place), usually 0..N-1
        block_size: Elements sorted by one worker before global stages (power of two)

    Raises:
        ValidationError: If N or block_size is not a power of two, or lengths differ

    Example:
        >>> values = np.array([0.3, 0.1, 0.2, 0.1], dtype=np.float32)
        >>> index = np.arange(4, dtype=np.int32)
        >>> bitonic_sort(values, index)
        >>> index
        array([1, 3, 2, 0], dtype=int32)
    """
    if values.ndim != 1 or index.ndim != 1:
        raise ValidationError("values and index must be 1D arrays")

    n = values.shape[0]
    if index.shape[0] != n:
        raise ValidationError(
            f"values and index must have the same length, got {n} and {index.shape[0]}"
        )
    if not is_power_of_two(n):
        raise ValidationError(f"Bitonic sort requires a power-of-two length, got {n}")
    if not is_power_of_two(block_size):
        raise ValidationError(f"block_size must be a power of two, got {block_size}")

    block = min(block_size, n)
    local_full_sort_numba(values, index, block)

    height = block * 2
    while height <= n:
        global_mirror_numba(values, index, height)

        shear = height // 2
        while shear > block:
            global_shear_numba(values, index, shear)
            shear //= 2

        local_shear_numba(values, index, block, shear)
        height *= 2

    logger.debug("[bitonic_sort] Sorted %d elements with block size %d", n, block)


def rank_sort(
    values: np.ndarray,
    block_size: int = DEFAULT_SORT_BLOCK_SIZE,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Sort a copy of ``values`` and return it with the originating positions.

    The copy keeps the input dtype, so float64 values that only differ beyond
    float32 precision still sort apart.

    Args:
        values: Channel values [N], N a power of two, integer or floating
        block_size: Elements sorted by one worker before global stages

    Returns:
        (sorted_values, index) where ``values[index[i]] == sorted_values[i]``

    Raises:
        ValidationError: If values are not real numbers
    """
    sorted_values = np.array(values, copy=True).reshape(-1)
    if not (np.issubdtype(sorted_values.dtype, np.floating) or np.issubdtype(sorted_values.dtype, np.integer)):
        raise ValidationError(f"rank_sort requires integer or floating values, got {sorted_values.dtype}")
    index = np.arange(sorted_values.shape[0], dtype=np.int32)
    bitonic_sort(sorted_values, index, block_size)
    return sorted_values, index


def split_channels(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Split a flattened image into channel arrays with identity index arrays.

    Args:
        pixels: Flattened image [N, C]

    Returns:
        (values [C, N] float32, index [C, N] int32)
    """
    n, channels = pixels.shape
    values = np.empty((channels, n), dtype=np.float32)
    index = np.empty((channels, n), dtype=np.int32)
    split_channels_numba(pixels, values, index)
    return values, index


def sort_channels(
    values: np.ndarray,
    index: np.ndarray,
    channels: tuple[int, ...] | list[int],
    block_size: int = DEFAULT_SORT_BLOCK_SIZE,
) -> None:
    """
    Sort the selected rows of per-channel value/index arrays in-place.

    Channels are independent, each gets its own run of the network.

    Args:
        values: Channel values [C, N] (modified in-place)
        index: Index arrays [C, N] (modified in-place)
        channels: Rows to sort
        block_size: Elements sorted by one worker before global stages
    """
    for c in channels:
        bitonic_sort(values[c], index[c], block_size)
    logger.info("[sort_channels] Sorted channels %s of %d elements", tuple(channels), values.shape[1])
