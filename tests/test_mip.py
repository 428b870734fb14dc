"""
Tests for mip variance statistics and filtered LUT slices.
"""

import numpy as np
import pytest

from gausstex import ValidationError
from gausstex.gaussian import build_base_lut
from gausstex.mip import (
    block_average,
    block_reduce,
    block_variance,
    build_mip_chain,
    filter_lut_level,
    mip_count,
    mip_variance,
)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


def _brute_force_block_variance(image: np.ndarray, block: int) -> np.ndarray:
    """Average over blocks of the population variance, with explicit loops."""
    height, width, channels = image.shape
    data = image.astype(np.float64)
    totals = np.zeros(channels)
    blocks = 0
    for by in range(0, height, block):
        for bx in range(0, width, block):
            for c in range(channels):
                region = data[by : by + block, bx : bx + block, c]
                mean = 0.0
                for v in region.flat:
                    mean += v
                mean /= region.size
                var = 0.0
                for v in region.flat:
                    var += (v - mean) ** 2
                totals[c] += var / region.size
            blocks += 1
    return totals / blocks


class TestMipCount:
    """Test mip level counting."""

    @pytest.mark.parametrize(
        "width,height,expected",
        [(1, 1, 1), (2, 2, 2), (4, 4, 3), (512, 256, 9), (256, 1024, 9), (2048, 2048, 12)],
    )
    def test_counts(self, width, height, expected):
        """Test round(log2(min(w, h))) + 1."""
        assert mip_count(width, height) == expected

    def test_invalid(self):
        """Test that dimensions must be positive."""
        with pytest.raises(ValidationError):
            mip_count(0, 4)


class TestBlockReduction:
    """Test block averaging."""

    def test_block_average(self, rng):
        """Test block means against a reshape."""
        image = rng.random((8, 16, 3), dtype=np.float32)
        out = block_average(image, 4, 2)

        expected = image.reshape(4, 2, 4, 4, 3).mean(axis=(1, 3))
        assert out.shape == (4, 4, 3)
        np.testing.assert_allclose(out, expected, rtol=1e-6)

    def test_block_average_must_divide(self, rng):
        """Test that the block must tile the image."""
        with pytest.raises(ValidationError):
            block_average(rng.random((8, 8, 1)), 3, 3)

    @pytest.mark.parametrize("block,kernel", [(2, 4), (4, 4), (8, 4), (16, 4), (8, 2), (16, 16), (8, 3)])
    def test_block_reduce(self, rng, block, kernel):
        """Test that repeated passes equal one direct block mean."""
        image = rng.random((16, 32, 2))
        out = block_reduce(image, block, kernel)

        h, w = 16 // block, 32 // block
        expected = image.reshape(h, block, w, block, 2).mean(axis=(1, 3))
        np.testing.assert_allclose(out, expected, rtol=1e-12)

    def test_block_reduce_identity(self, rng):
        """Test that block 1 leaves the map unchanged."""
        image = rng.random((4, 4, 1))
        np.testing.assert_array_equal(block_reduce(image, 1), image)


class TestBlockVariance:
    """Test block variance against brute force."""

    @pytest.mark.parametrize("size,block", [(4, 4), (8, 8), (8, 4), (16, 8), (16, 2)])
    def test_matches_brute_force(self, rng, size, block):
        """Test E[x^2] - E[x]^2 reduction against explicit loops."""
        image = rng.random((size, size, 4), dtype=np.float32)

        np.testing.assert_allclose(
            block_variance(image, block),
            _brute_force_block_variance(image, block),
            atol=1e-5,
        )

    def test_constant_blocks(self):
        """Test that constant blocks have zero variance."""
        image = np.zeros((8, 8, 1), dtype=np.float32)
        image[:4, :4] = 1.0

        np.testing.assert_allclose(block_variance(image, 4), [0.0], atol=1e-12)

    def test_checkerboard(self):
        """Test a 0/1 checkerboard: variance 0.25 in every block of 2 or more."""
        image = (np.indices((8, 8)).sum(axis=0) % 2).astype(np.float32)[..., np.newaxis]

        for block in (2, 4, 8):
            np.testing.assert_allclose(block_variance(image, block), [0.25], atol=1e-12)


class TestMipVariance:
    """Test per-mip variance statistics."""

    def test_shape_and_mip_zero(self, rng):
        """Test output shape and zero variance at mip 0."""
        image = rng.random((16, 16, 4), dtype=np.float32)
        stats = mip_variance(image)

        assert stats.shape == (5, 4)
        np.testing.assert_array_equal(stats[0], 0.0)
        assert np.all(stats[1:] > 0)

    def test_increasing_for_noise(self, rng):
        """Test that larger blocks of white noise hold more variance."""
        image = rng.random((32, 32, 1), dtype=np.float32)
        stats = mip_variance(image)[:, 0]

        assert np.all(np.diff(stats) > 0)

    def test_mip_one_uses_two_by_two(self, rng):
        """Test that mip 1 is the variance of 2x2 blocks."""
        image = rng.random((8, 8, 2), dtype=np.float32)
        stats = mip_variance(image, 2)

        np.testing.assert_allclose(stats[1], _brute_force_block_variance(image, 2), atol=1e-6)


class TestFilterLUTLevel:
    """Test filtered LUT slices."""

    @pytest.fixture
    def base_slice(self, rng):
        values = np.sort(rng.random((4, 4096), dtype=np.float32), axis=1)
        return build_base_lut(values, 8, 8)

    def test_zero_stddev_keeps_base(self, base_slice):
        """Test that zero variance reproduces the base slice."""
        out = filter_lut_level(base_slice, np.zeros(4))

        np.testing.assert_allclose(out, base_slice, atol=1e-6)

    def test_constant_base(self):
        """Test that a constant LUT stays constant under any filter width."""
        base = np.full((4, 4, 4), 0.7, dtype=np.float32)
        out = filter_lut_level(base, np.full(4, 0.1))

        np.testing.assert_allclose(out, 0.7, atol=1e-6)

    def test_monotone_and_bounded(self, base_slice):
        """Test that filtering keeps the LUT monotone and inside its range."""
        out = filter_lut_level(base_slice, np.full(4, 0.08))
        flat = out.reshape(64, 4)
        base_flat = base_slice.reshape(64, 4)

        assert np.all(np.diff(flat, axis=0) >= -1e-6)
        assert np.all(flat >= base_flat.min(axis=0) - 1e-6)
        assert np.all(flat <= base_flat.max(axis=0) + 1e-6)

    def test_wider_filter_flattens(self, base_slice):
        """Test that larger stddev pulls the extremes toward the middle."""
        narrow = filter_lut_level(base_slice, np.full(4, 0.02)).reshape(64, 4)
        wide = filter_lut_level(base_slice, np.full(4, 0.2)).reshape(64, 4)

        assert np.all(wide[0] >= narrow[0] - 1e-6)
        assert np.all(wide[-1] <= narrow[-1] + 1e-6)
        assert np.all(np.ptp(wide, axis=0) < np.ptp(narrow, axis=0))

    @pytest.mark.parametrize("sigma", [0.02, 0.05, 0.12])
    def test_matches_gaussian_weighted_average(self, base_slice, sigma):
        """Test each cell against a dense Gaussian-weighted mean of the interpolated base."""
        out = filter_lut_level(base_slice, np.full(4, sigma)).reshape(64, 4)
        cells = base_slice.reshape(64, 4).astype(np.float64)
        centers = (np.arange(64) + 0.5) / 64

        expected = np.empty((64, 4))
        for j, mu in enumerate(centers):
            x = np.linspace(mu - 6.0 * sigma, mu + 6.0 * sigma, 4001)
            weights = np.exp(-0.5 * ((x - mu) / sigma) ** 2)
            weights /= weights.sum()
            for c in range(4):
                expected[j, c] = np.dot(weights, np.interp(x, centers, cells[:, c]))

        np.testing.assert_allclose(out, expected, atol=5e-3)

    def test_writes_into_out(self, base_slice):
        """Test writing into a preallocated slice."""
        out = np.zeros_like(base_slice)
        result = filter_lut_level(base_slice, np.full(4, 0.05), out)

        assert result is out
        assert out.max() > 0

    def test_invalid_stddev(self, base_slice):
        """Test stddev validation."""
        with pytest.raises(ValidationError):
            filter_lut_level(base_slice, np.full(3, 0.1))
        with pytest.raises(ValidationError):
            filter_lut_level(base_slice, np.full(4, -0.1))


class TestBuildMipChain:
    """Test filling a whole LUT."""

    def test_fills_every_slice(self, rng):
        """Test that slices 1.. are filtered and slice 0 is kept."""
        gaussian = rng.random((16, 16, 4), dtype=np.float32)
        values = np.sort(rng.random((4, 256), dtype=np.float32), axis=1)

        lut = np.full((5, 4, 4, 4), np.nan, dtype=np.float32)
        build_base_lut(values, 4, 4, out=lut[0])
        base = lut[0].copy()
        stats = build_mip_chain(gaussian, lut)

        assert stats.shape == (5, 4)
        assert np.all(np.isfinite(lut))
        np.testing.assert_array_equal(lut[0], base)

    def test_constant_image_slices_equal_base(self, rng):
        """Test that zero variance everywhere copies the base slice."""
        gaussian = np.full((8, 8, 4), 0.5, dtype=np.float32)
        values = np.sort(rng.random((4, 64), dtype=np.float32), axis=1)

        lut = np.empty((4, 2, 4, 4), dtype=np.float32)
        build_base_lut(values, 4, 2, out=lut[0])
        stats = build_mip_chain(gaussian, lut)

        np.testing.assert_array_equal(stats, 0.0)
        for m in range(1, 4):
            np.testing.assert_allclose(lut[m], lut[0], atol=1e-6)
