"""
Per-mip LUT filtering.

Interpolating between two entries of a LUT is wrong for a nonlinear transform,
so each coarser mip gets its own LUT slice: the base LUT convolved with a
Gaussian whose width is the average local variance of the Gaussian image over
blocks of that mip's footprint.

Functions:
- mip_count(): number of mip levels of a W x H image
- block_average(), block_reduce(): non-overlapping block means
- block_variance(): mean of per-block variance
- mip_variance(): variance per mip per channel
- filter_lut_level(): one filtered LUT slice
- build_mip_chain(): all filtered slices of a LUT
"""

import logging
import math
from collections.abc import Iterator

import numpy as np

from gausstex.constants import (
    DEFAULT_VARIANCE_KERNEL,
    LUT_FILTER_KERNEL,
    LUT_FILTER_OVERSAMPLE,
)
from gausstex.errors import ValidationError
from gausstex.mip.kernels import (
    block_average_numba,
    lut_filter_populate_numba,
    moment_maps_numba,
)
from gausstex.validators import is_power_of_two

logger = logging.getLogger(__name__)


def mip_count(width: int, height: int) -> int:
    """
    Number of mip levels, ``round(log2(min(width, height))) + 1``.

    Example:
        >>> mip_count(512, 256)
        9
    """
    if width < 1 or height < 1:
        raise ValidationError(f"Image dimensions must be positive, got {width}x{height}")
    return int(round(math.log2(min(width, height)))) + 1


def _reduction_steps(extent: int, kernel: int) -> Iterator[int]:
    """Yield factors that divide ``extent`` down to 1, ``kernel`` while it divides evenly."""
    remaining = extent
    while remaining > 1:
        step = kernel if remaining % kernel == 0 else remaining
        yield step
        remaining //= step


def block_average(image: np.ndarray, kernel_width: int, kernel_height: int) -> np.ndarray:
    """
    Mean of every non-overlapping block.

    Args:
        image: Input map [H, W, C]
        kernel_width: Block width dividing W
        kernel_height: Block height dividing H

    Returns:
        Map [H / kernel_height, W / kernel_width, C], same dtype as ``image``
    """
    height, width, channels = image.shape
    if width % kernel_width or height % kernel_height:
        raise ValidationError(
            f"Block {kernel_width}x{kernel_height} does not divide image {width}x{height}"
        )

    out = np.empty((height // kernel_height, width // kernel_width, channels), dtype=image.dtype)
    block_average_numba(image, kernel_height, kernel_width, out)
    return out


def block_reduce(image: np.ndarray, block: int, kernel: int = DEFAULT_VARIANCE_KERNEL) -> np.ndarray:
    """
    Mean of every block x block region, by repeated factor-``kernel`` averaging.

    The last pass shrinks to whatever extent remains, so block 8 with kernel 4
    averages 4x4 and then 2x2.

    Args:
        image: Input map [H, W, C]
        block: Region size, a power of two dividing H and W
        kernel: Averaging factor per pass

    Returns:
        Map [H / block, W / block, C]
    """
    if not is_power_of_two(block):
        raise ValidationError(f"block must be a power of two, got {block}")

    reduced = image
    for step in _reduction_steps(block, kernel):
        reduced = block_average(reduced, step, step)
    return reduced


def block_variance(image: np.ndarray, block: int, kernel: int = DEFAULT_VARIANCE_KERNEL) -> np.ndarray:
    """
    Average over all block x block regions of each region's variance.

    Per region, ``max(0, E[x^2] - E[x]^2)``.

    Args:
        image: Input image [H, W, C]
        block: Region size, a power of two dividing H and W
        kernel: Averaging factor per reduction pass

    Returns:
        Variance per channel [C] in float64
    """
    values = np.empty(image.shape, dtype=np.float64)
    squares = np.empty(image.shape, dtype=np.float64)
    moment_maps_numba(image, values, squares)

    means = block_reduce(values, block, kernel)
    mean_squares = block_reduce(squares, block, kernel)

    variance = np.maximum(mean_squares - means * means, 0.0)
    return variance.mean(axis=(0, 1))


def mip_variance(
    gaussian_image: np.ndarray,
    count: int | None = None,
    kernel: int = DEFAULT_VARIANCE_KERNEL,
) -> np.ndarray:
    """
    Average local variance of the Gaussian image for every mip level.

    Mip m covers 2^m x 2^m pixel blocks. Mip 0 is a single pixel, variance 0.

    Args:
        gaussian_image: Gaussian image [H, W, C]
        count: Number of mip levels (defaults to ``mip_count`` of the image)
        kernel: Averaging factor per reduction pass

    Returns:
        Variance [count, C] in float64
    """
    height, width, channels = gaussian_image.shape
    if count is None:
        count = mip_count(width, height)

    stats = np.zeros((count, channels), dtype=np.float64)
    for m in range(1, count):
        stats[m] = block_variance(gaussian_image, 1 << m, kernel)
        logger.debug("[mip_variance] Mip %d variance %s", m, stats[m])

    return stats


def filter_lut_level(
    base_slice: np.ndarray,
    stddev: np.ndarray,
    out_slice: np.ndarray | None = None,
) -> np.ndarray:
    """
    Build one filtered LUT slice.

    An intermediate of N rows by 2N samples is filled by
    ``lut_filter_populate_numba`` and then averaged along the sample axis by
    factor 16 per pass (the last pass takes whatever remains) to one value per
    row. Row j becomes LUT cell j.

    Args:
        base_slice: Mip 0 slice [lut_height, lut_width, C]
        stddev: Gaussian-domain standard deviation per channel [C]
        out_slice: Optional output [lut_height, lut_width, C]

    Returns:
        Filtered slice [lut_height, lut_width, C]
    """
    lut_height, lut_width, channels = base_slice.shape
    n = lut_height * lut_width

    stddev = np.ascontiguousarray(stddev, dtype=np.float64)
    if stddev.shape != (channels,):
        raise ValidationError(f"stddev must have shape ({channels},), got {stddev.shape}")
    if np.any(stddev < 0) or not np.all(np.isfinite(stddev)):
        raise ValidationError(f"stddev must be finite and non-negative, got {stddev}")

    if out_slice is None:
        out_slice = np.empty_like(base_slice)

    base = np.ascontiguousarray(base_slice, dtype=np.float64).reshape(n, channels)
    samples = LUT_FILTER_OVERSAMPLE * n
    intermediate = np.empty((n, samples, channels), dtype=np.float64)
    lut_filter_populate_numba(base, stddev, intermediate)

    for step in _reduction_steps(samples, LUT_FILTER_KERNEL):
        intermediate = block_average(intermediate, step, 1)

    out_slice[...] = intermediate.reshape(lut_height, lut_width, channels)
    return out_slice


def build_mip_chain(
    gaussian_image: np.ndarray,
    lut: np.ndarray,
    kernel: int = DEFAULT_VARIANCE_KERNEL,
) -> np.ndarray:
    """
    Fill LUT slices 1..count-1 from slice 0.

    Args:
        gaussian_image: Gaussian image [H, W, C]
        lut: LUT [count, lut_height, lut_width, C] with slice 0 built (modified in-place)
        kernel: Averaging factor for the variance reduction

    Returns:
        Variance [count, C] used for each slice
    """
    count = lut.shape[0]
    stats = mip_variance(gaussian_image, count, kernel)

    for m in range(1, count):
        filter_lut_level(lut[0], np.sqrt(stats[m]), lut[m])

    logger.info("[build_mip_chain] Filtered %d LUT slices", count - 1)
    return stats
