"""
Decorrelated colorspace module.

Covariance, the 3x3 symmetric eigensolver and the basis that maps stored
colors back to RGB.
"""

from gausstex.colorspace.api import (
    channel_bounds,
    compute_channel_means,
    compute_covariance,
    decorrelate,
    project_to_eigenspace,
    to_bounding_box,
)
from gausstex.colorspace.basis import ColorspaceBasis, order_and_scale
from gausstex.colorspace.eigen import (
    eigendecompose,
    is_relative_zero,
    max_positive,
    normalize_eigenvectors,
    parallel_sin_cos,
)

__all__ = [
    "ColorspaceBasis",
    "channel_bounds",
    "compute_channel_means",
    "compute_covariance",
    "decorrelate",
    "eigendecompose",
    "is_relative_zero",
    "max_positive",
    "normalize_eigenvectors",
    "order_and_scale",
    "parallel_sin_cos",
    "project_to_eigenspace",
    "to_bounding_box",
]
