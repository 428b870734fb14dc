"""
Decorrelated colorspace construction.

Functions:
- compute_channel_means(): per-channel mean
- compute_covariance(): Bessel-corrected RGB covariance
- channel_bounds(): per-channel min/max
- project_to_eigenspace(): rotate RGB onto the eigenvectors (in-place)
- to_bounding_box(): swizzle and rescale each axis onto [0, 1] (in-place)
- decorrelate(): the whole stage, returns the ColorspaceBasis

In the decorrelated space the channels are uncorrelated, so gaussianizing them
independently and reconstructing never produces colors absent from the source.
"""

import logging

import numpy as np

from gausstex.colorspace.basis import ColorspaceBasis, order_and_scale
from gausstex.colorspace.eigen import eigendecompose, normalize_eigenvectors
from gausstex.colorspace.kernels import (
    channel_sums_numba,
    covariance_sums_numba,
    project_to_eigenspace_numba,
    to_bounding_box_numba,
)
from gausstex.constants import COLOR_CHANNELS

logger = logging.getLogger(__name__)


def _check_image(image: np.ndarray) -> None:
    if image.ndim != 3 or image.shape[2] < COLOR_CHANNELS:
        raise ValueError(f"image must have shape [H, W, C] with C >= 3, got {image.shape}")


def compute_channel_means(image: np.ndarray) -> np.ndarray:
    """
    Mean of every channel.

    Args:
        image: Image [H, W, C]

    Returns:
        Channel means [C] in float64
    """
    _check_image(image)
    height, width, channels = image.shape
    rows = np.empty((height, channels), dtype=np.float64)
    channel_sums_numba(image, rows)
    return rows.sum(axis=0) / (height * width)


def compute_covariance(image: np.ndarray, means: np.ndarray | None = None) -> np.ndarray:
    """
    Covariance matrix of the RGB channels.

    Divides by N - 1. A single-pixel image yields a zero matrix.

    Args:
        image: Image [H, W, C], C >= 3
        means: Precomputed channel means, optional

    Returns:
        Symmetric matrix [3, 3] in float64
    """
    _check_image(image)
    height, width = image.shape[0], image.shape[1]
    n = height * width

    if means is None:
        means = compute_channel_means(image)
    means = np.ascontiguousarray(means[:COLOR_CHANNELS], dtype=np.float64)

    if n < 2:
        return np.zeros((3, 3), dtype=np.float64)

    rows = np.empty((height, 6), dtype=np.float64)
    covariance_sums_numba(image, means, rows)
    rr, gg, bb, rg, rb, gb = rows.sum(axis=0) / (n - 1)

    return np.array(
        [
            [rr, rg, rb],
            [rg, gg, gb],
            [rb, gb, bb],
        ],
        dtype=np.float64,
    )


def channel_bounds(image: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Minimum and maximum of every channel.

    NumPy's reductions are already vectorized and competitive with a custom
    kernel here.

    Returns:
        (mins [C], maxs [C])
    """
    flat = image.reshape(-1, image.shape[-1])
    return flat.min(axis=0), flat.max(axis=0)


def project_to_eigenspace(image: np.ndarray, eigenvectors: np.ndarray) -> np.ndarray:
    """
    Replace RGB with coordinates along each eigenvector, in-place.

    Args:
        image: Image [H, W, C], C >= 3 (modified in-place)
        eigenvectors: Unit eigenvectors as columns [3, 3]

    Returns:
        ``image``
    """
    _check_image(image)
    project_to_eigenspace_numba(image, np.ascontiguousarray(eigenvectors, dtype=np.float64))
    return image


def to_bounding_box(
    image: np.ndarray,
    swizzle: tuple[int, ...],
    mins: np.ndarray,
    ranges: np.ndarray,
) -> np.ndarray:
    """
    Swizzle channels and map each color axis onto [0, 1], in-place.

    Args:
        image: Eigenspace image [H, W, C] (modified in-place)
        swizzle: Source channel per stored channel, length C or 4
        mins: Per-axis minimum after swizzling [3]
        ranges: Per-axis range after swizzling [3], non-zero

    Returns:
        ``image``
    """
    _check_image(image)
    channels = image.shape[2]
    order = np.asarray(swizzle[:channels], dtype=np.int64)
    to_bounding_box_numba(
        image,
        order,
        np.ascontiguousarray(mins, dtype=image.dtype),
        np.ascontiguousarray(ranges, dtype=image.dtype),
    )
    return image


def decorrelate(image: np.ndarray, compression_correction: bool = False) -> ColorspaceBasis:
    """
    Transform an image into its decorrelated colorspace, in-place.

    Steps: covariance, eigendecomposition, projection onto the eigenvectors,
    bounds, axis ordering, bounding-box rescale.

    Args:
        image: Working image [H, W, C], C >= 3, float32 (modified in-place)
        compression_correction: Store inverse ranges on the basis axes

    Returns:
        ColorspaceBasis for reconstructing RGB from the stored channels

    Example:
        >>> work = image.astype(np.float32)
        >>> basis = decorrelate(work)
        >>> rgb = basis.reconstruct(work[..., :3])
    """
    covariance = compute_covariance(image)
    vectors, values = eigendecompose(covariance)
    vectors = normalize_eigenvectors(vectors)
    logger.debug("[decorrelate] Eigenvalues: %s", values)

    project_to_eigenspace(image, vectors)
    mins, maxs = channel_bounds(image)

    basis = order_and_scale(
        vectors,
        mins,
        maxs,
        eigenvalues=values,
        compression_correction=compression_correction,
    )
    to_bounding_box(image, basis.swizzle, basis.minimums, basis.ranges)

    logger.info(
        "[decorrelate] Axis ranges %s, center %s",
        np.round(basis.ranges, 6).tolist(),
        np.round(basis.center[:COLOR_CHANNELS], 6).tolist(),
    )
    return basis
