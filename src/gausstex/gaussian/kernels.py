"""
Numba-optimized kernels for Gaussian mapping.

Scalar approximations of erf, its inverse and the Gaussian CDF pair, plus the
parallel kernels that build the Gaussian image and the base lookup table.

The kernels here are compiled without fastmath: the forward CDF used to build
the LUT must undo the InvCDF used to build the image, bit for bit across runs.
"""

import math

import numpy as np
from numba import njit, prange

from gausstex.constants import (
    CDF_CORRECTION,
    ERF_ALPHA,
    ERF_C1,
    ERF_C2,
    GAUSS_MEAN,
    GAUSS_STD,
    INV_CDF_CLIP_CORRECTION,
    INV_ERF_EPSILON,
    INV_ERF_GAMMA,
    SQRT2,
)

# ============================================================================
# Scalar Approximations
# ============================================================================


@njit(cache=True, nogil=True)
def quantile_scalar(i: float, n: float) -> float:
    """Continuous position of rank i out of n, strictly inside (0, 1)."""
    return (i + 0.5) / n


@njit(cache=True, nogil=True)
def inverse_erf_scalar(x: float) -> float:
    """Vedder's hyperbolic approximation of erf^-1 on (-1, 1)."""
    return INV_ERF_GAMMA * math.sinh(math.asinh(INV_ERF_EPSILON * math.atanh(x)) / 3.0)


@njit(cache=True, nogil=True)
def erf_scalar(x: float) -> float:
    """Two-term Buermann series approximation of erf."""
    e = math.exp(-x * x)
    sign = 0.0
    if x > 0.0:
        sign = 1.0
    elif x < 0.0:
        sign = -1.0
    return ERF_ALPHA * sign * math.sqrt(1.0 - e) * (1.0 / ERF_ALPHA + ERF_C1 * e + ERF_C2 * e * e)


@njit(cache=True, nogil=True)
def inv_cdf_scalar(u: float, mu: float, sigma: float) -> float:
    """Inverse Gaussian CDF, ``u`` in [0, 1]."""
    return mu + sigma * SQRT2 * inverse_erf_scalar(INV_CDF_CLIP_CORRECTION * (2.0 * u - 1.0))


@njit(cache=True, nogil=True)
def cdf_scalar(x: float, mu: float, sigma: float) -> float:
    """Gaussian CDF matching ``inv_cdf_scalar``."""
    return 0.5 * (1.0 + CDF_CORRECTION * erf_scalar((x - mu) / (sigma * SQRT2)))


# ============================================================================
# Elementwise Kernels
# ============================================================================


@njit(parallel=True, cache=True, nogil=True)
def erf_numba(x: np.ndarray, out: np.ndarray) -> None:
    """
    Apply ``erf_scalar`` to every element.

    Args:
        x: Input values [N]
        out: Output buffer [N]
    """
    for i in prange(x.shape[0]):
        out[i] = erf_scalar(x[i])


@njit(parallel=True, cache=True, nogil=True)
def inverse_erf_numba(x: np.ndarray, out: np.ndarray) -> None:
    """
    Apply ``inverse_erf_scalar`` to every element.

    Args:
        x: Input values [N] in (-1, 1)
        out: Output buffer [N]
    """
    for i in prange(x.shape[0]):
        out[i] = inverse_erf_scalar(x[i])


@njit(parallel=True, cache=True, nogil=True)
def cdf_numba(x: np.ndarray, mu: float, sigma: float, out: np.ndarray) -> None:
    """
    Gaussian CDF of every element.

    Args:
        x: Input values [N]
        mu: Distribution mean
        sigma: Distribution standard deviation (> 0)
        out: Output buffer [N]
    """
    for i in prange(x.shape[0]):
        out[i] = cdf_scalar(x[i], mu, sigma)


@njit(parallel=True, cache=True, nogil=True)
def inv_cdf_numba(u: np.ndarray, mu: float, sigma: float, out: np.ndarray) -> None:
    """
    Inverse Gaussian CDF of every element.

    Args:
        u: Probabilities [N] in [0, 1]
        mu: Distribution mean
        sigma: Distribution standard deviation (>= 0)
        out: Output buffer [N]
    """
    for i in prange(u.shape[0]):
        out[i] = inv_cdf_scalar(u[i], mu, sigma)


# ============================================================================
# Image and LUT Construction
# ============================================================================


@njit(parallel=True, cache=True, nogil=True)
def gaussian_scatter_numba(index: np.ndarray, channel: int, out: np.ndarray) -> None:
    """
    Write the Gaussian value of every rank back to its original pixel.

    For sorted rank i the pixel ``index[i]`` receives
    InvCDF(quantile(i, N), 0.5, 1/6). ``index`` is a permutation, so no two
    iterations write the same element.

    Args:
        index: Sorted-to-original index array [N]
        channel: Channel of ``out`` to write
        out: Flattened Gaussian image [N, C] (modified in-place)
    """
    n = index.shape[0]
    n_f = float(n)

    for i in prange(n):
        u = quantile_scalar(float(i), n_f)
        out[index[i], channel] = inv_cdf_scalar(u, GAUSS_MEAN, GAUSS_STD)


@njit(parallel=True, cache=True, nogil=True)
def base_lut_numba(sorted_values: np.ndarray, sorted_mask: np.ndarray, out: np.ndarray) -> None:
    """
    Build the mip 0 lookup table from sorted channel values.

    Cell j represents Gaussian value x = quantile(j, N_LUT). Its CDF gives the
    rank floor(CDF(x) * N) in each sorted channel, whose value is stored.
    Channels with ``sorted_mask`` False are filled with 1.0.

    Args:
        sorted_values: Ascending channel values [C, N]
        sorted_mask: Which channels were sorted [C]
        out: LUT cells [N_LUT, C] (modified in-place)
    """
    n_lut = out.shape[0]
    channels = out.shape[1]
    n = sorted_values.shape[1]
    n_lut_f = float(n_lut)

    for j in prange(n_lut):
        x = quantile_scalar(float(j), n_lut_f)
        u = cdf_scalar(x, GAUSS_MEAN, GAUSS_STD)
        rank = int(math.floor(u * n))
        rank = min(max(rank, 0), n - 1)

        for c in range(channels):
            if sorted_mask[c]:
                out[j, c] = sorted_values[c, rank]
            else:
                out[j, c] = 1.0


@njit(parallel=True, cache=True, nogil=True)
def compression_correction_numba(pixels: np.ndarray, inverse_ranges: np.ndarray) -> None:
    """
    Scale the color channels about 0.5 by each axis range.

    ``g' = 0.5 + (g - 0.5) / w`` with w the stored inverse range. Consumers
    recover g by multiplying (g' - 0.5) by w.

    Args:
        pixels: Flattened Gaussian image [N, C] (modified in-place)
        inverse_ranges: Stored inverse range per color axis [3]
    """
    n = pixels.shape[0]
    axes = inverse_ranges.shape[0]

    for i in prange(n):
        for c in range(axes):
            pixels[i, c] = 0.5 + (pixels[i, c] - 0.5) / inverse_ranges[c]
