"""
Gaussian mapping module.

Fast erf / inverse erf approximations, the CDF pair built on them, and the
construction of the Gaussian image and base lookup table.
"""

from gausstex.gaussian.api import (
    apply_compression_correction,
    build_base_lut,
    build_gaussian_image,
    cdf,
    erf,
    inv_cdf,
    inverse_erf,
    quantile,
)

__all__ = [
    "apply_compression_correction",
    "build_base_lut",
    "build_gaussian_image",
    "cdf",
    "erf",
    "inv_cdf",
    "inverse_erf",
    "quantile",
]
