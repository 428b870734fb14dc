"""
Converter: fluent pipeline turning an image into a Gaussian texture and LUT.

Stages, in order:

1. Validate the image (shape, channels, finite values, power-of-two size)
2. Check the parallel backend
3. Copy the image into a float32 RGBA working buffer
4. Decorrelate the colorspace (optional)
5. Rank-sort every gaussianized channel
6. Scatter InvCDF(rank) into the Gaussian image
7. Build LUT mip 0 from the sorted values
8. Build the filtered LUT slices of the coarser mips
9. Apply compression correction (optional)

Validation and the backend check run before any stage buffer is allocated, so a
rejected image leaves nothing behind.

Example:
    >>> converter = Converter().lut_size(5, 5).compression_correction(True)
    >>> result = converter(image)
    >>> result.lut.shape[1:]
    (32, 32, 4)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Self

import numpy as np

from gausstex.backend import ensure_parallel_backend, stage_guard
from gausstex.colorspace import ColorspaceBasis, decorrelate
from gausstex.config import ConversionConfig
from gausstex.constants import (
    COLOR_CHANNELS,
    IMAGE_CHANNELS,
    MAX_VARIANCE_KERNEL,
    MIN_VARIANCE_KERNEL,
    VALID_OUTPUT_FORMATS,
)
from gausstex.errors import ValidationError
from gausstex.gaussian import apply_compression_correction, build_base_lut, build_gaussian_image
from gausstex.mip import build_mip_chain, mip_count
from gausstex.sort import sort_channels, split_channels
from gausstex.validators import (
    validate_choices,
    validate_image,
    validate_power_of_two,
    validate_range,
    validate_type,
)

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """
    Artifacts of one conversion.

    Attributes:
        gaussian_image: Gaussianized image [H, W, 4] float32
        lut: Inverse lookup table [mips, lut_height, lut_width, 4] float32
        colorspace: Basis mapping LUT colors back to RGB
        mip_variance: Gaussian-domain variance per mip per channel [mips, 4]
        config: Configuration the conversion ran with
        has_alpha: Whether the alpha channel was gaussianized
    """

    gaussian_image: np.ndarray
    lut: np.ndarray
    colorspace: ColorspaceBasis
    mip_variance: np.ndarray
    config: ConversionConfig
    has_alpha: bool = True

    @property
    def mip_count(self) -> int:
        return self.lut.shape[0]

    @property
    def lut_shape(self) -> tuple[int, int]:
        """(lut_height, lut_width) of every slice."""
        return self.lut.shape[1], self.lut.shape[2]

    def lut_slice(self, mip: int) -> np.ndarray:
        """LUT slice of one mip level [lut_height, lut_width, 4]."""
        if not 0 <= mip < self.mip_count:
            raise IndexError(f"mip {mip} out of range for {self.mip_count} levels")
        return self.lut[mip]


class Converter:
    """
    Fluent image to Gaussian texture converter.

    Setters return self so options can be chained; ``convert`` (or calling the
    converter) runs the pipeline. A converter holds only its configuration, so
    one instance may convert several images, also from several threads.

    Example:
        >>> converter = (Converter()
        ...     .lut_size(4, 4)
        ...     .decorrelate(True)
        ...     .sort_block_size(1024)
        ... )
        >>> result = converter.convert(image)
        >>> rgb = result.colorspace.reconstruct(result.lut_slice(0))
    """

    __slots__ = ("_config",)

    def __init__(self, config: ConversionConfig | None = None):
        """
        Initialize the converter.

        Args:
            config: Starting configuration (defaults to ``ConversionConfig()``)
        """
        if config is not None and not isinstance(config, ConversionConfig):
            raise TypeError(f"config must be ConversionConfig, got {type(config).__name__}")

        self._config = config if config is not None else ConversionConfig()
        logger.info(
            "[Converter] Initialized with lut=%dx%d, decorrelate=%s",
            self._config.lut_width,
            self._config.lut_height,
            self._config.decorrelate,
        )

    @property
    def config(self) -> ConversionConfig:
        return self._config

    def _update(self, **changes) -> Self:
        self._config = replace(self._config, **changes)
        return self

    # ========================================================================
    # Options
    # ========================================================================

    @validate_type(int, "width_pow2")
    @validate_type((int, type(None)), "height_pow2", 2)
    def lut_size(self, width_pow2: int, height_pow2: int | None = None) -> Self:
        """
        Set the LUT slice size as powers of two.

        Exponents are clamped to [1, 5], i.e. 2 to 32 texels per axis.

        Args:
            width_pow2: Width exponent
            height_pow2: Height exponent (defaults to ``width_pow2``)

        Returns:
            Self for method chaining
        """
        if height_pow2 is None:
            height_pow2 = width_pow2
        return self._update(lut_width_pow2=width_pow2, lut_height_pow2=height_pow2)

    @validate_type(bool, "enabled")
    def decorrelate(self, enabled: bool = True) -> Self:
        """
        Toggle the decorrelated colorspace.

        Prevents false colors from appearing after reconstruction but can
        reduce compression quality.
        """
        return self._update(decorrelate=enabled)

    @validate_type(bool, "enabled")
    def compression_correction(self, enabled: bool = True) -> Self:
        """Toggle scaling Gaussian colors by the colorspace axis ranges."""
        return self._update(compression_correction=enabled)

    @validate_choices(VALID_OUTPUT_FORMATS, "fmt")
    def output_format(self, fmt: str) -> Self:
        """Set the encoding the artifacts are meant for ("png", "jpg", "tga", "exr")."""
        return self._update(output_format=fmt)

    def alpha(self, enabled: bool | None) -> Self:
        """
        Choose whether alpha is gaussianized.

        None infers it from the channel count of each image.
        """
        if enabled is not None and not isinstance(enabled, bool):
            raise TypeError(f"enabled must be bool or None, got {type(enabled).__name__}")
        return self._update(has_alpha=enabled)

    @validate_power_of_two("block_size")
    def sort_block_size(self, block_size: int) -> Self:
        """Set how many elements one worker sorts before the global sort stages."""
        return self._update(sort_block_size=block_size)

    @validate_type(int, "kernel")
    @validate_range(MIN_VARIANCE_KERNEL, MAX_VARIANCE_KERNEL, "kernel")
    def variance_kernel(self, kernel: int) -> Self:
        """Set the block-averaging factor used by the mip variance reduction."""
        return self._update(variance_kernel=kernel)

    def reset(self) -> Self:
        """
        Reset all options to defaults.

        Returns:
            Self for method chaining
        """
        self._config = ConversionConfig()
        logger.debug("[Converter] Reset to defaults")
        return self

    # ========================================================================
    # Conversion
    # ========================================================================

    def _resolve_alpha(self, channels: int) -> bool:
        if channels == COLOR_CHANNELS:
            if self._config.has_alpha:
                raise ValidationError("has_alpha=True requires a 4-channel image")
            return False
        return True if self._config.has_alpha is None else self._config.has_alpha

    def convert(self, image: np.ndarray) -> ConversionResult:
        """
        Convert an image to a Gaussian texture and LUT mip chain.

        The input array is never modified.

        Args:
            image: Image [H, W, 4] (RGBA) or [H, W, 3] (RGB), H and W powers of two

        Returns:
            ConversionResult with the Gaussian image, LUT, colorspace and statistics

        Raises:
            ValidationError: If the image is rejected (nothing is allocated)
            ResourceError: If the parallel backend cannot start
        """
        height, width, channels = validate_image(image)
        has_alpha = self._resolve_alpha(channels)
        layer = ensure_parallel_backend()

        with stage_guard(layer):
            return self._run(image, height, width, channels, has_alpha)

    def _run(
        self, image: np.ndarray, height: int, width: int, channels: int, has_alpha: bool
    ) -> ConversionResult:
        """Run every stage on a validated image."""
        config = self._config
        n = height * width
        count = mip_count(width, height)
        logger.info(
            "[Converter] Converting %dx%d image (%d mips, alpha=%s)", width, height, count, has_alpha
        )

        work = np.ones((height, width, IMAGE_CHANNELS), dtype=np.float32)
        work[..., :channels] = image

        if config.decorrelate:
            basis = decorrelate(work, config.compression_correction)
        else:
            basis = ColorspaceBasis.identity()

        values, index = split_channels(work.reshape(n, IMAGE_CHANNELS))
        del work

        sorted_channels = tuple(range(IMAGE_CHANNELS if has_alpha else COLOR_CHANNELS))
        sort_channels(values, index, sorted_channels, config.sort_block_size)

        gaussian = np.ones((n, IMAGE_CHANNELS), dtype=np.float32)
        for c in sorted_channels:
            build_gaussian_image(index[c], c, gaussian)
        del index

        sorted_mask = np.zeros(IMAGE_CHANNELS, dtype=np.bool_)
        sorted_mask[list(sorted_channels)] = True

        lut = np.empty((count, config.lut_height, config.lut_width, IMAGE_CHANNELS), dtype=np.float32)
        build_base_lut(values, config.lut_width, config.lut_height, lut[0], sorted_mask)
        del values

        gaussian_image = gaussian.reshape(height, width, IMAGE_CHANNELS)
        stats = build_mip_chain(gaussian_image, lut, config.variance_kernel)

        if config.compression_correction and config.decorrelate:
            apply_compression_correction(gaussian_image, basis.inverse_ranges)
            logger.debug("[Converter] Applied compression correction %s", basis.inverse_ranges)

        logger.info("[Converter] Conversion complete")
        return ConversionResult(
            gaussian_image=gaussian_image,
            lut=lut,
            colorspace=basis,
            mip_variance=stats,
            config=config,
            has_alpha=has_alpha,
        )

    def __call__(self, image: np.ndarray) -> ConversionResult:
        """Convert an image, same as ``convert``."""
        return self.convert(image)

    def __repr__(self) -> str:
        c = self._config
        return (
            f"Converter(lut={c.lut_width}x{c.lut_height}, decorrelate={c.decorrelate}, "
            f"compression_correction={c.compression_correction}, format={c.output_format!r})"
        )


def convert(image: np.ndarray, config: ConversionConfig | None = None, **options) -> ConversionResult:
    """
    Convert an image with a one-off configuration.

    Args:
        image: Image [H, W, 4] or [H, W, 3], H and W powers of two
        config: Base configuration (defaults to ``ConversionConfig()``)
        **options: ConversionConfig fields overriding ``config``

    Returns:
        ConversionResult

    Example:
        >>> result = convert(image, lut_width_pow2=5, lut_height_pow2=5)
    """
    if config is None:
        config = ConversionConfig(**options)
    elif options:
        config = replace(config, **options)
    return Converter(config).convert(image)
