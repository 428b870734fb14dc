"""
gausstex - Gaussian textures for histogram-preserving blending

Converts an image into a histogram-Gaussianized texture plus an inverse lookup
table, so tiled samples of the texture can be blended with a variance-preserving
formula instead of linear blending that washes out contrast.

Features:
- Decorrelated colorspace from the eigenvectors of the RGB covariance
- Parallel blocked bitonic rank sort (Numba prange kernels)
- Fast erf / inverse erf approximations for the CDF pair
- LUT mip chain filtered by the local variance of every mip level
- Optional compression correction for block-compressed outputs

Example - Converter:
    >>> from gausstex import Converter
    >>>
    >>> converter = Converter().lut_size(4, 4).compression_correction(True)
    >>> result = converter(image)
    >>> result.gaussian_image.shape, result.lut.shape
    ((512, 512, 4), (10, 16, 16, 4))

Example - One-off conversion:
    >>> from gausstex import convert
    >>>
    >>> result = convert(image, decorrelate=False)
    >>> rgb = result.colorspace.reconstruct(result.lut_slice(0))
"""

__version__ = "0.1.0"

# Colorspace
from gausstex.colorspace import ColorspaceBasis, decorrelate, eigendecompose

# Configuration
from gausstex.config import ConversionConfig

# Errors
from gausstex.errors import GaussTexError, ResourceError, ValidationError

# Gaussian mapping
from gausstex.gaussian import cdf, erf, inv_cdf, inverse_erf, quantile

# Mip filtering
from gausstex.mip import mip_count

# Pipeline
from gausstex.pipeline import ConversionResult, Converter, convert

# Sorting
from gausstex.sort import bitonic_sort, rank_sort

__all__ = [
    # Version
    "__version__",
    # Pipeline
    "Converter",
    "ConversionResult",
    "ConversionConfig",
    "convert",
    # Colorspace
    "ColorspaceBasis",
    "decorrelate",
    "eigendecompose",
    # Gaussian mapping
    "quantile",
    "erf",
    "inverse_erf",
    "cdf",
    "inv_cdf",
    # Sorting
    "bitonic_sort",
    "rank_sort",
    # Mip filtering
    "mip_count",
    # Errors
    "GaussTexError",
    "ValidationError",
    "ResourceError",
]
