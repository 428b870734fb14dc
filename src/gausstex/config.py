"""
Conversion configuration for Gaussian texture generation.

Provides the recognized options: LUT dimensions, colorspace decorrelation,
compression correction, output encoding and the tuning knobs of the parallel
stages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gausstex.constants import (
    DEFAULT_LUT_POW2,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_SORT_BLOCK_SIZE,
    DEFAULT_VARIANCE_KERNEL,
    LOSSLESS_OUTPUT_FORMATS,
    MAX_LUT_POW2,
    MAX_VARIANCE_KERNEL,
    MIN_LUT_POW2,
    MIN_SORT_BLOCK_SIZE,
    MIN_VARIANCE_KERNEL,
    VALID_OUTPUT_FORMATS,
)
from gausstex.errors import ValidationError
from gausstex.validators import is_power_of_two

logger = logging.getLogger(__name__)


@dataclass
class ConversionConfig:
    """
    Configuration for converting an image to a Gaussian texture and LUT.

    Attributes:
        lut_width_pow2: LUT slice width as a power of two, clamped to [1, 5] (2 to 32 texels)
        lut_height_pow2: LUT slice height as a power of two, clamped to [1, 5]
        decorrelate: Transform colors to the covariance eigenbasis before sorting.
            Prevents false colors but may reduce compression quality
        compression_correction: Scale Gaussian colors about 0.5 by the axis ranges
            so block compression spends precision where the colorspace is widest
        output_format: Encoding the artifacts are destined for ("png", "jpg", "tga", "exr")
        has_alpha: Whether the alpha channel is gaussianized. None infers it from
            the channel count of the input image
        sort_block_size: Elements sorted completely by one worker before the
            global bitonic stages take over (power of two)
        variance_kernel: Block-averaging factor used when reducing mip variance maps
    """

    lut_width_pow2: int = DEFAULT_LUT_POW2
    lut_height_pow2: int = DEFAULT_LUT_POW2
    decorrelate: bool = True
    compression_correction: bool = False
    output_format: str = DEFAULT_OUTPUT_FORMAT
    has_alpha: bool | None = None
    sort_block_size: int = DEFAULT_SORT_BLOCK_SIZE
    variance_kernel: int = DEFAULT_VARIANCE_KERNEL

    def __post_init__(self):
        """Validate configuration parameters and clamp the LUT exponents."""
        for name in ("lut_width_pow2", "lut_height_pow2", "sort_block_size", "variance_kernel"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{name} must be an int, got {type(value).__name__}")

        for name in ("decorrelate", "compression_correction"):
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(f"{name} must be a bool, got {type(getattr(self, name)).__name__}")

        if self.has_alpha is not None and not isinstance(self.has_alpha, bool):
            raise ValidationError(f"has_alpha must be a bool or None, got {type(self.has_alpha).__name__}")

        for name in ("lut_width_pow2", "lut_height_pow2"):
            value = getattr(self, name)
            clamped = min(max(value, MIN_LUT_POW2), MAX_LUT_POW2)
            if clamped != value:
                logger.info("[ConversionConfig] Clamped %s from %d to %d", name, value, clamped)
                setattr(self, name, clamped)

        if self.output_format not in VALID_OUTPUT_FORMATS:
            raise ValidationError(
                f"Invalid output_format: {self.output_format}. "
                f"Must be one of {sorted(VALID_OUTPUT_FORMATS)}"
            )

        if self.sort_block_size < MIN_SORT_BLOCK_SIZE or not is_power_of_two(self.sort_block_size):
            raise ValidationError(
                f"sort_block_size must be a power of two >= {MIN_SORT_BLOCK_SIZE}, "
                f"got {self.sort_block_size}"
            )

        if not MIN_VARIANCE_KERNEL <= self.variance_kernel <= MAX_VARIANCE_KERNEL:
            raise ValidationError(
                f"variance_kernel must be between {MIN_VARIANCE_KERNEL} and {MAX_VARIANCE_KERNEL}"
            )

    @property
    def lut_width(self) -> int:
        return 1 << self.lut_width_pow2

    @property
    def lut_height(self) -> int:
        return 1 << self.lut_height_pow2

    @property
    def lut_elements(self) -> int:
        """Number of cells in one LUT slice."""
        return self.lut_width * self.lut_height

    @property
    def is_lossless(self) -> bool:
        return self.output_format in LOSSLESS_OUTPUT_FORMATS
