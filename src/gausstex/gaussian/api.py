"""
Gaussian mapping between ranks, Gaussian values and original values.

Functions:
- quantile(), erf(), inverse_erf(), cdf(), inv_cdf(): array forms of the
  approximations used by every kernel, float64 in and out
- build_gaussian_image(): scatter InvCDF(rank) back to the pixel each rank came from
- build_base_lut(): mip 0 lookup table from sorted channel values
- apply_compression_correction(): rescale Gaussian colors about 0.5 per axis
"""

import logging

import numpy as np

from gausstex.constants import COLOR_CHANNELS
from gausstex.errors import ValidationError
from gausstex.gaussian.kernels import (
    base_lut_numba,
    cdf_numba,
    compression_correction_numba,
    erf_numba,
    gaussian_scatter_numba,
    inv_cdf_numba,
    inverse_erf_numba,
)

logger = logging.getLogger(__name__)


def _elementwise(kernel, x, *params) -> np.ndarray | float:
    """Run an elementwise kernel over any array shape, returning a float for scalars."""
    arr = np.ascontiguousarray(x, dtype=np.float64)
    flat = arr.reshape(-1)
    out = np.empty_like(flat)
    kernel(flat, *params, out)

    if arr.ndim == 0:
        return float(out[0])
    return out.reshape(arr.shape)


# ============================================================================
# Distribution Functions
# ============================================================================


def quantile(i, n: int) -> np.ndarray | float:
    """
    Map rank(s) i out of n to positions strictly inside (0, 1).

    Example:
        >>> quantile(np.arange(4), 4)
        array([0.125, 0.375, 0.625, 0.875])
    """
    if n <= 0:
        raise ValidationError(f"n must be positive, got {n}")
    result = (np.asarray(i, dtype=np.float64) + 0.5) / n
    return float(result) if result.ndim == 0 else result


def erf(x) -> np.ndarray | float:
    """Approximate error function (two-term Buermann series)."""
    return _elementwise(erf_numba, x)


def inverse_erf(x) -> np.ndarray | float:
    """
    Approximate inverse error function on (-1, 1).

    Uses Vedder's hyperbolic form ``3.8261 * sinh(asinh(0.69488 * atanh(x)) / 3)``.
    """
    return _elementwise(inverse_erf_numba, x)


def cdf(x, mu: float = 0.5, sigma: float = 1.0 / 6.0) -> np.ndarray | float:
    """
    Approximate Gaussian CDF.

    Args:
        x: Gaussian-domain values
        mu: Distribution mean
        sigma: Distribution standard deviation (> 0)

    Returns:
        Probabilities in [0, 1], same shape as ``x``
    """
    if sigma <= 0:
        raise ValidationError(f"sigma must be positive, got {sigma}")
    return _elementwise(cdf_numba, x, float(mu), float(sigma))


def inv_cdf(u, mu: float = 0.5, sigma: float = 1.0 / 6.0) -> np.ndarray | float:
    """
    Approximate inverse Gaussian CDF.

    The argument of the inverse erf is shrunk by 0.9977 so u = 0 and u = 1
    stay finite. ``cdf(inv_cdf(u))`` recovers u within 1e-3.

    Args:
        u: Probabilities in [0, 1]
        mu: Distribution mean
        sigma: Distribution standard deviation (>= 0, 0 returns mu)

    Returns:
        Gaussian-domain values, same shape as ``u``
    """
    if sigma < 0:
        raise ValidationError(f"sigma must be non-negative, got {sigma}")
    return _elementwise(inv_cdf_numba, u, float(mu), float(sigma))


# ============================================================================
# Image and LUT Construction
# ============================================================================


def build_gaussian_image(index: np.ndarray, channel: int, out: np.ndarray) -> np.ndarray:
    """
    Write Gaussian values for one sorted channel into the flattened output image.

    Args:
        index: Sorted-to-original permutation [N]
        channel: Channel to write
        out: Flattened Gaussian image [N, C] (modified in-place)

    Returns:
        ``out``
    """
    if out.ndim != 2 or index.shape[0] != out.shape[0]:
        raise ValidationError(
            f"index of length {index.shape[0]} does not match output of shape {out.shape}"
        )
    if not 0 <= channel < out.shape[1]:
        raise ValidationError(f"channel {channel} out of range for {out.shape[1]} channels")

    gaussian_scatter_numba(np.ascontiguousarray(index), channel, out)
    return out


def build_base_lut(
    sorted_values: np.ndarray,
    lut_width: int,
    lut_height: int,
    out: np.ndarray | None = None,
    sorted_mask: np.ndarray | None = None,
) -> np.ndarray:
    """
    Build the mip 0 lookup table slice.

    Cell ``j = y * lut_width + x`` holds, per channel, the sorted original value
    whose rank corresponds to Gaussian value quantile(j, lut_width * lut_height).

    Args:
        sorted_values: Ascending channel values [C, N]
        lut_width: Slice width in texels
        lut_height: Slice height in texels
        out: Optional output slice [lut_height, lut_width, C]
        sorted_mask: Channels that were sorted [C]. Unsorted channels read 1.0.

    Returns:
        LUT slice [lut_height, lut_width, C]
    """
    channels = sorted_values.shape[0]
    if out is None:
        out = np.empty((lut_height, lut_width, channels), dtype=np.float32)
    elif out.shape != (lut_height, lut_width, channels):
        raise ValidationError(
            f"out must have shape {(lut_height, lut_width, channels)}, got {out.shape}"
        )

    if sorted_mask is None:
        sorted_mask = np.ones(channels, dtype=np.bool_)

    cells = out.reshape(lut_height * lut_width, channels)
    base_lut_numba(sorted_values, np.asarray(sorted_mask, dtype=np.bool_), cells)

    logger.debug(
        "[build_base_lut] Built %dx%d slice from %d sorted values",
        lut_width,
        lut_height,
        sorted_values.shape[1],
    )
    return out


def apply_compression_correction(pixels: np.ndarray, inverse_ranges: np.ndarray) -> np.ndarray:
    """
    Rescale the color channels of a Gaussian image about 0.5.

    Each color channel i becomes ``0.5 + (g - 0.5) / w_i`` where w_i is the
    stored inverse range of axis i. Sampling code undoes it with
    ``0.5 + (g' - 0.5) * w_i``. Alpha is untouched.

    Args:
        pixels: Gaussian image [H, W, C] or [N, C], C >= 3 (modified in-place)
        inverse_ranges: Stored inverse range per color axis [3], all > 0

    Returns:
        ``pixels``
    """
    weights = np.ascontiguousarray(inverse_ranges, dtype=pixels.dtype)
    if weights.shape != (COLOR_CHANNELS,):
        raise ValidationError(f"inverse_ranges must have shape (3,), got {weights.shape}")
    if np.any(weights <= 0):
        raise ValidationError("inverse_ranges must be positive")

    flat = pixels.reshape(-1, pixels.shape[-1])
    compression_correction_numba(flat, weights)
    return pixels
