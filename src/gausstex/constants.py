"""
Constants and default values for gausstex conversions.

Centralizes magic numbers, approximation coefficients and configuration defaults.
"""

from __future__ import annotations

import math

# =============================================================================
# LUT Configuration
# =============================================================================

DEFAULT_LUT_POW2 = 4  # 16 x 16 = 256 entries per LUT slice
MIN_LUT_POW2 = 1  # 2 texels per axis
MAX_LUT_POW2 = 5  # 32 texels per axis

# Filtered LUT levels average the expanded intermediate along the sample axis
LUT_FILTER_KERNEL = 16
LUT_FILTER_OVERSAMPLE = 2  # Samples per LUT cell = 2 * lut elements

# =============================================================================
# Sorting
# =============================================================================

DEFAULT_SORT_BLOCK_SIZE = 2048  # Elements sorted completely by one worker
MIN_SORT_BLOCK_SIZE = 2

# =============================================================================
# Mip Variance
# =============================================================================

DEFAULT_VARIANCE_KERNEL = 4  # Block-averaging factor per reduction pass
MIN_VARIANCE_KERNEL = 2
MAX_VARIANCE_KERNEL = 16

# =============================================================================
# Gaussian Target Distribution
# =============================================================================

GAUSS_MEAN = 0.5
GAUSS_STD = 1.0 / 6.0  # ~99.7% of the mass inside [0, 1]

# =============================================================================
# Approximation Coefficients
# =============================================================================

# Vedder (1987) hyperbolic inverse error function:
#   erfinv(x) ~= GAMMA * sinh(asinh(EPSILON * atanh(x)) / 3)
INV_ERF_GAMMA = 3.8261
INV_ERF_EPSILON = 0.69488

# Shrinks 2u - 1 away from +-1 so InvCDF never reaches the atanh poles
INV_CDF_CLIP_CORRECTION = 0.9977

# Buermann-series error function:
#   erf(x) ~= ALPHA * sgn(x) * sqrt(1 - e^-x^2) * (1 / ALPHA + C1 e^-x^2 + C2 e^-2x^2)
# C1 and C2 are fitted against the inverse above so CDF(InvCDF(u)) stays within 1e-3 of u.
ERF_ALPHA = 2.0 / math.sqrt(math.pi)  # 1.1283791671
ERF_C1 = 0.1751
ERF_C2 = -0.0713

# Compensates INV_CDF_CLIP_CORRECTION on the forward CDF
CDF_CORRECTION = 1.0026

SQRT2 = math.sqrt(2.0)

# =============================================================================
# Colorspace
# =============================================================================

EIGEN_MAX_ITERATIONS = 200
MAX_INVERSE_RANGE = 10.0  # Caps 1 / range for very thin axes
COLOR_CHANNELS = 3
IMAGE_CHANNELS = 4

# =============================================================================
# Output Encoding
# =============================================================================

DEFAULT_OUTPUT_FORMAT = "png"
LOSSLESS_OUTPUT_FORMATS = {"png", "tga", "exr"}
LOSSY_OUTPUT_FORMATS = {"jpg"}
VALID_OUTPUT_FORMATS = LOSSLESS_OUTPUT_FORMATS | LOSSY_OUTPUT_FORMATS
