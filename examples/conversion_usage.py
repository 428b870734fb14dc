"""
Example: converting a texture to a Gaussian texture and LUT.

Demonstrates:
- One-off conversion with the module-level convert()
- Fluent Converter configuration
- Reconstructing RGB from the LUT with the colorspace record
- Alpha-less input
"""

import logging

import numpy as np

from gausstex import ConversionConfig, Converter, convert

# Configure logging to see pipeline stages
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def generate_texture(size: int = 256):
    """Generate a tileable, correlated test texture."""
    rng = np.random.default_rng(42)

    y, x = np.mgrid[0:size, 0:size] / size
    pattern = 0.5 + 0.25 * np.sin(2 * np.pi * 4 * x) * np.cos(2 * np.pi * 3 * y)
    noise = rng.random((size, size, 3)) * 0.2

    rgb = pattern[..., np.newaxis] * np.array([0.9, 0.6, 0.3]) + noise
    alpha = np.clip(pattern + rng.normal(0, 0.05, (size, size)), 0, 1)
    return np.concatenate([rgb, alpha[..., np.newaxis]], axis=2).astype(np.float32)


def example_1_one_off():
    """Example 1: module-level convert()."""
    print("\n" + "=" * 70)
    print("EXAMPLE 1: One-off conversion")
    print("=" * 70)

    result = convert(generate_texture(), lut_width_pow2=5, lut_height_pow2=5)

    print(f"Gaussian image: {result.gaussian_image.shape}")
    print(f"LUT:            {result.lut.shape} ({result.mip_count} mips)")
    print(f"Swizzle:        {result.colorspace.swizzle}")
    print(f"Axis ranges:    {np.round(result.colorspace.ranges, 4)}")


def example_2_fluent():
    """Example 2: fluent configuration and reuse."""
    print("\n" + "=" * 70)
    print("EXAMPLE 2: Fluent Converter")
    print("=" * 70)

    converter = (
        Converter(ConversionConfig(output_format="jpg"))
        .lut_size(4, 3)
        .compression_correction(True)
        .sort_block_size(1024)
    )
    print(converter)

    result = converter(generate_texture(128))
    print(f"Inverse ranges: {np.round(result.colorspace.inverse_ranges, 4)}")
    print(f"Mip variance (R channel): {np.round(result.mip_variance[:, 0], 5)}")


def example_3_reconstruct():
    """Example 3: decode LUT cells back to RGB."""
    print("\n" + "=" * 70)
    print("EXAMPLE 3: Reconstruction")
    print("=" * 70)

    texture = generate_texture(128)
    result = convert(texture)

    rgb = result.colorspace.reconstruct(result.lut_slice(0))
    print(f"Source RGB range:        [{texture[..., :3].min():.3f}, {texture[..., :3].max():.3f}]")
    print(f"Reconstructed LUT range: [{rgb.min():.3f}, {rgb.max():.3f}]")


def example_4_rgb():
    """Example 4: 3-channel input keeps alpha at 1."""
    print("\n" + "=" * 70)
    print("EXAMPLE 4: Alpha-less input")
    print("=" * 70)

    result = convert(generate_texture(64)[..., :3].copy(), decorrelate=False)
    print(f"has_alpha: {result.has_alpha}")
    print(f"Gaussian alpha unique values: {np.unique(result.gaussian_image[..., 3])}")


if __name__ == "__main__":
    example_1_one_off()
    example_2_fluent()
    example_3_reconstruct()
    example_4_rgb()
