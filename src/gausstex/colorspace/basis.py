"""
Colorspace basis record and axis ordering.

A basis maps LUT colors back to RGB with
``rgb = sum_i axes[i, :3] * coord_i + center[:3]``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from gausstex.constants import COLOR_CHANNELS, IMAGE_CHANNELS, MAX_INVERSE_RANGE

logger = logging.getLogger(__name__)

IDENTITY_SWIZZLE = (0, 1, 2, 3)


@dataclass(frozen=True, eq=False)
class ColorspaceBasis:
    """
    Decorrelated colorspace of one converted image.

    Attributes:
        axes: Axis vectors [3, 4]. xyz is the unit direction scaled by the axis
            range, w is the inverse range (1 when compression correction is off)
        center: RGB point of the bounding-box origin [4], w = 0
        swizzle: Source eigenspace channel of each stored channel
        eigenvalues: Eigenvalue of each stored axis [3]
        minimums: Eigenspace minimum of each stored axis [3]
    """

    axes: np.ndarray
    center: np.ndarray
    swizzle: tuple[int, ...] = IDENTITY_SWIZZLE
    eigenvalues: np.ndarray = field(default_factory=lambda: np.zeros(COLOR_CHANNELS))
    minimums: np.ndarray = field(default_factory=lambda: np.zeros(COLOR_CHANNELS))

    def __post_init__(self) -> None:
        axes = np.asarray(self.axes, dtype=np.float32)
        center = np.asarray(self.center, dtype=np.float32)
        if axes.shape != (COLOR_CHANNELS, IMAGE_CHANNELS):
            raise ValueError(f"axes must have shape (3, 4), got {axes.shape}")
        if center.shape != (IMAGE_CHANNELS,):
            raise ValueError(f"center must have shape (4,), got {center.shape}")
        if sorted(self.swizzle) != list(range(IMAGE_CHANNELS)):
            raise ValueError(f"swizzle must be a permutation of 0..3, got {self.swizzle}")

        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "axes", axes)
        object.__setattr__(self, "center", center)
        object.__setattr__(self, "swizzle", tuple(int(s) for s in self.swizzle))
        object.__setattr__(self, "eigenvalues", np.asarray(self.eigenvalues, dtype=np.float64))
        object.__setattr__(self, "minimums", np.asarray(self.minimums, dtype=np.float32))

    @classmethod
    def identity(cls) -> ColorspaceBasis:
        """Basis that leaves RGB untouched."""
        axes = np.zeros((COLOR_CHANNELS, IMAGE_CHANNELS), dtype=np.float32)
        axes[:, :COLOR_CHANNELS] = np.eye(COLOR_CHANNELS)
        axes[:, 3] = 1.0
        return cls(axes=axes, center=np.zeros(IMAGE_CHANNELS, dtype=np.float32))

    @property
    def ranges(self) -> np.ndarray:
        """Length of each axis [3]."""
        return np.linalg.norm(self.axes[:, :COLOR_CHANNELS], axis=1)

    @property
    def inverse_ranges(self) -> np.ndarray:
        """Stored inverse range of each axis [3]."""
        return self.axes[:, 3].copy()

    def reconstruct(self, coords: np.ndarray) -> np.ndarray:
        """
        Map stored colors back to RGB.

        Args:
            coords: Stored colors [..., 3] (or [..., 4], alpha is ignored)

        Returns:
            RGB [..., 3] in float64
        """
        coords = np.asarray(coords, dtype=np.float64)[..., :COLOR_CHANNELS]
        return coords @ self.axes[:, :COLOR_CHANNELS].astype(np.float64) + self.center[:COLOR_CHANNELS]

    def to_dict(self) -> dict:
        """Plain-Python form for serialization by callers."""
        return {
            "axes": self.axes.tolist(),
            "center": self.center.tolist(),
            "swizzle": list(self.swizzle),
            "eigenvalues": self.eigenvalues.tolist(),
        }


def _swap(items: list, i: int, j: int) -> None:
    items[i], items[j] = items[j], items[i]


def order_and_scale(
    eigenvectors: np.ndarray,
    mins: np.ndarray,
    maxs: np.ndarray,
    eigenvalues: np.ndarray | None = None,
    compression_correction: bool = True,
) -> ColorspaceBasis:
    """
    Order eigen axes by range and scale them to the image bounding box.

    The widest axis is moved to the second slot, which gets the most bits in
    common 3-channel block compression. Two pairwise swaps are used: axis 2
    against axis 0, then axis 0 against axis 1.

    Args:
        eigenvectors: Unit eigenvectors as columns [3, 3]
        mins: Per-axis minimum of the projected image [>= 3]
        maxs: Per-axis maximum of the projected image [>= 3]
        eigenvalues: Eigenvalue per column [3], optional
        compression_correction: Store min(1 / range, 10) in w. Otherwise w = 1.

    Returns:
        ColorspaceBasis with axes, center, swizzle and per-axis minimums
    """
    vectors = [np.asarray(eigenvectors, dtype=np.float64)[:, k] for k in range(COLOR_CHANNELS)]
    lows = [float(mins[k]) for k in range(COLOR_CHANNELS)]
    lengths = [float(maxs[k]) - float(mins[k]) for k in range(COLOR_CHANNELS)]
    values = (
        [0.0] * COLOR_CHANNELS
        if eigenvalues is None
        else [float(eigenvalues[k]) for k in range(COLOR_CHANNELS)]
    )
    swizzle = list(IDENTITY_SWIZZLE)

    for i, j in ((2, 0), (0, 1)):
        if lengths[i] > lengths[j]:
            for items in (vectors, lows, lengths, values, swizzle):
                _swap(items, i, j)

    logger.info("[order_and_scale] Swizzle mask: %s", tuple(swizzle))

    for k in range(COLOR_CHANNELS):
        if not np.isfinite(lengths[k]) or lengths[k] <= 0.0:
            logger.info(
                "[order_and_scale] Axis %d has degenerate range %s, using identity scale",
                k,
                lengths[k],
            )
            lengths[k] = 1.0

    center = np.zeros(IMAGE_CHANNELS, dtype=np.float64)
    axes = np.zeros((COLOR_CHANNELS, IMAGE_CHANNELS), dtype=np.float64)
    for k in range(COLOR_CHANNELS):
        center[:COLOR_CHANNELS] += lows[k] * vectors[k]
        axes[k, :COLOR_CHANNELS] = vectors[k] * lengths[k]
        axes[k, 3] = min(1.0 / lengths[k], MAX_INVERSE_RANGE) if compression_correction else 1.0

    return ColorspaceBasis(
        axes=axes,
        center=center,
        swizzle=tuple(swizzle),
        eigenvalues=np.array(values),
        minimums=np.array(lows),
    )
