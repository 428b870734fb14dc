"""
Tests for the decorrelated colorspace and the 3x3 eigensolver.
"""

import logging

import numpy as np
import pytest

from gausstex.colorspace import (
    ColorspaceBasis,
    channel_bounds,
    compute_channel_means,
    compute_covariance,
    decorrelate,
    eigendecompose,
    is_relative_zero,
    max_positive,
    normalize_eigenvectors,
    order_and_scale,
    parallel_sin_cos,
    project_to_eigenspace,
)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def correlated_image(rng):
    """RGBA image whose color channels are strongly correlated."""
    base = rng.random((32, 32, 1), dtype=np.float32)
    noise = rng.random((32, 32, 3), dtype=np.float32) * 0.2
    rgb = base * np.array([0.8, 0.5, 0.3], dtype=np.float32) + noise
    alpha = rng.random((32, 32, 1), dtype=np.float32)
    return np.concatenate([rgb, alpha], axis=2).astype(np.float32)


def _random_symmetric(rng, spd=True):
    m = rng.standard_normal((3, 3))
    return m @ m.T if spd else (m + m.T) * 0.5


# ============================================================================
# Eigensolver
# ============================================================================


class TestEigenHelpers:
    """Test the building blocks of the eigensolver."""

    def test_parallel_sin_cos_zero_vector(self):
        """Test the zero-vector fallback."""
        assert parallel_sin_cos(0.0, 0.0) == (-1.0, 0.0)

    def test_parallel_sin_cos_flips_positive_cos(self):
        """Test that cos is forced non-positive and the pair stays unit length."""
        c, s = parallel_sin_cos(3.0, 4.0)
        assert c == pytest.approx(-0.6)
        assert s == pytest.approx(-0.8)

        c, s = parallel_sin_cos(-3.0, 4.0)
        assert c == pytest.approx(-0.6)
        assert s == pytest.approx(0.8)

    def test_is_relative_zero(self):
        """Test the relative-zero convergence test."""
        assert is_relative_zero(1.0, 1.0, 1e-17)
        assert not is_relative_zero(1.0, 1.0, 1e-10)
        assert is_relative_zero(0.0, 0.0, 0.0)

    def test_max_positive(self):
        """Test sign normalization, first index winning ties."""
        np.testing.assert_array_equal(max_positive(np.array([0.1, -0.9, 0.2])), [-0.1, 0.9, -0.2])
        np.testing.assert_array_equal(max_positive(np.array([-0.5, 0.5, 0.0])), [0.5, -0.5, 0.0])
        np.testing.assert_array_equal(max_positive(np.array([0.5, -0.5, 0.0])), [0.5, -0.5, 0.0])


class TestEigendecompose:
    """Test eigenvectors and eigenvalues of symmetric 3x3 matrices."""

    @pytest.mark.parametrize("seed", range(10))
    def test_random_covariance(self, seed):
        """Test orthonormality and A v = lambda v for random SPD matrices."""
        rng = np.random.default_rng(seed)
        a = _random_symmetric(rng)
        vectors, values = eigendecompose(a)
        vectors = normalize_eigenvectors(vectors)

        np.testing.assert_allclose(vectors.T @ vectors, np.eye(3), atol=1e-4)
        for k in range(3):
            np.testing.assert_allclose(a @ vectors[:, k], values[k] * vectors[:, k], atol=1e-6 * np.abs(a).max())

        np.testing.assert_allclose(np.sort(values), np.linalg.eigvalsh(a), atol=1e-8 * np.abs(a).max())

    @pytest.mark.parametrize("seed", range(5))
    def test_indefinite_matrix(self, seed):
        """Test symmetric matrices with negative eigenvalues."""
        rng = np.random.default_rng(100 + seed)
        a = _random_symmetric(rng, spd=False)
        vectors, values = eigendecompose(a)

        np.testing.assert_allclose(np.sort(values), np.linalg.eigvalsh(a), atol=1e-8)
        np.testing.assert_allclose(a @ vectors, vectors * values, atol=1e-7)

    def test_zero_matrix(self):
        """Test that a zero matrix yields zero eigenvalues and an orthonormal basis."""
        vectors, values = eigendecompose(np.zeros((3, 3)))

        np.testing.assert_array_equal(values, 0.0)
        assert np.all(np.isfinite(vectors))
        np.testing.assert_allclose(vectors.T @ vectors, np.eye(3), atol=1e-12)

    def test_diagonal_matrix(self):
        """Test that a diagonal matrix returns its diagonal."""
        vectors, values = eigendecompose(np.diag([3.0, 1.0, 2.0]))
        vectors = normalize_eigenvectors(vectors)

        assert sorted(values.tolist()) == [1.0, 2.0, 3.0]
        np.testing.assert_allclose(np.abs(vectors) @ np.abs(vectors).T, np.eye(3), atol=1e-12)

    def test_repeated_eigenvalues(self):
        """Test a matrix with a double eigenvalue."""
        a = np.array([[2.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 3.0]])
        vectors, values = eigendecompose(a)

        np.testing.assert_allclose(np.sort(values), [1.0, 3.0, 3.0], atol=1e-12)
        np.testing.assert_allclose(vectors.T @ vectors, np.eye(3), atol=1e-12)

    def test_iteration_cap_logs_warning(self, caplog):
        """Test that hitting the cap warns and still returns an orthonormal basis."""
        a = np.array([[1.0, 0.5, 0.2], [0.5, 2.0, 0.3], [0.2, 0.3, 3.0]])
        with caplog.at_level(logging.WARNING, logger="gausstex.colorspace.eigen"):
            vectors, _ = eigendecompose(a, max_iterations=0)

        assert "No convergence" in caplog.text
        np.testing.assert_allclose(vectors.T @ vectors, np.eye(3), atol=1e-12)

    def test_rejects_wrong_shape(self):
        """Test shape validation."""
        with pytest.raises(ValueError):
            eigendecompose(np.eye(2))


class TestNormalizeEigenvectors:
    """Test eigenvector normalization."""

    def test_unit_columns_with_positive_peak(self, rng):
        """Test unit length and positive largest component per column."""
        vectors = rng.standard_normal((3, 3)) * 5.0
        out = normalize_eigenvectors(vectors)

        np.testing.assert_allclose(np.linalg.norm(out, axis=0), 1.0, atol=1e-12)
        for k in range(3):
            assert out[np.argmax(np.abs(out[:, k])), k] > 0


# ============================================================================
# Statistics
# ============================================================================


class TestStatistics:
    """Test channel means, covariance and bounds."""

    def test_means(self, correlated_image):
        """Test channel means against NumPy."""
        np.testing.assert_allclose(
            compute_channel_means(correlated_image),
            correlated_image.reshape(-1, 4).mean(axis=0, dtype=np.float64),
            rtol=1e-6,
        )

    def test_covariance_matches_numpy(self, correlated_image):
        """Test Bessel-corrected covariance against np.cov."""
        expected = np.cov(correlated_image.reshape(-1, 4)[:, :3].astype(np.float64), rowvar=False)
        np.testing.assert_allclose(compute_covariance(correlated_image), expected, rtol=1e-6, atol=1e-9)

    def test_covariance_symmetric(self, correlated_image):
        """Test symmetry."""
        cov = compute_covariance(correlated_image)
        np.testing.assert_array_equal(cov, cov.T)

    def test_constant_image_zero_covariance(self):
        """Test that a constant image has an all-zero covariance."""
        image = np.full((4, 4, 4), 0.25, dtype=np.float32)
        np.testing.assert_array_equal(compute_covariance(image), np.zeros((3, 3)))

    def test_single_pixel(self):
        """Test that N = 1 yields zeros instead of dividing by zero."""
        image = np.ones((1, 1, 4), dtype=np.float32)
        np.testing.assert_array_equal(compute_covariance(image), np.zeros((3, 3)))

    def test_bounds(self, correlated_image):
        """Test per-channel min and max."""
        mins, maxs = channel_bounds(correlated_image)
        flat = correlated_image.reshape(-1, 4)

        np.testing.assert_array_equal(mins, flat.min(axis=0))
        np.testing.assert_array_equal(maxs, flat.max(axis=0))


# ============================================================================
# Basis
# ============================================================================


class TestOrderAndScale:
    """Test axis ordering and scaling."""

    def test_widest_axis_second(self):
        """Test that the widest range ends up in slot 1."""
        basis = order_and_scale(np.eye(3), np.zeros(3), np.array([0.2, 0.1, 0.9]))

        np.testing.assert_allclose(basis.ranges, [0.1, 0.9, 0.2], rtol=1e-6)
        assert basis.swizzle == (1, 2, 0, 3)

    def test_swap_sequence(self):
        """Test the two pairwise swaps when axis 0 is widest."""
        basis = order_and_scale(np.eye(3), np.zeros(3), np.array([0.9, 0.5, 0.1]))

        assert basis.swizzle == (1, 0, 2, 3)
        np.testing.assert_allclose(basis.ranges, [0.5, 0.9, 0.1], rtol=1e-6)

    def test_inverse_range_capped(self):
        """Test w = min(1 / range, 10) with compression correction."""
        basis = order_and_scale(
            np.eye(3), np.zeros(3), np.array([0.5, 1.0, 0.05]), compression_correction=True
        )
        np.testing.assert_allclose(basis.inverse_ranges, [2.0, 1.0, 10.0], rtol=1e-6)

    def test_unit_weights_without_correction(self):
        """Test w = 1 when compression correction is off."""
        basis = order_and_scale(
            np.eye(3), np.zeros(3), np.array([0.5, 1.0, 0.05]), compression_correction=False
        )
        np.testing.assert_array_equal(basis.inverse_ranges, 1.0)

    def test_zero_range_identity_scale(self, caplog):
        """Test that degenerate axes get range 1 and an INFO log."""
        with caplog.at_level(logging.INFO, logger="gausstex.colorspace.basis"):
            basis = order_and_scale(np.eye(3), np.full(3, 0.3), np.full(3, 0.3))

        np.testing.assert_allclose(basis.ranges, 1.0)
        assert np.all(np.isfinite(basis.axes))
        assert "degenerate range" in caplog.text

    def test_center_from_minimums(self):
        """Test center = sum of min_i * e_i."""
        vectors = normalize_eigenvectors(np.array([[1.0, 1.0, 0.0], [1.0, -1.0, 0.0], [0.0, 0.0, 1.0]]))
        mins = np.array([0.1, -0.2, 0.3])
        basis = order_and_scale(vectors, mins, mins + np.array([0.5, 0.6, 0.4]))

        np.testing.assert_allclose(basis.center[:3], vectors @ mins, atol=1e-6)
        assert basis.center[3] == 0.0

    def test_identity_basis(self):
        """Test the identity basis round trip."""
        basis = ColorspaceBasis.identity()
        rgb = np.array([[0.1, 0.5, 0.9]])

        np.testing.assert_allclose(basis.reconstruct(rgb), rgb, atol=1e-7)
        assert basis.swizzle == (0, 1, 2, 3)
        np.testing.assert_array_equal(basis.inverse_ranges, 1.0)

    def test_rejects_bad_swizzle(self):
        """Test that the swizzle must be a permutation."""
        with pytest.raises(ValueError):
            ColorspaceBasis(axes=np.zeros((3, 4)), center=np.zeros(4), swizzle=(0, 0, 1, 2))


class TestDecorrelate:
    """Test the full colorspace stage."""

    def test_reconstructs_original_rgb(self, correlated_image):
        """Test sum(axis_i * coord_i) + center == original RGB."""
        work = correlated_image.copy()
        basis = decorrelate(work)

        np.testing.assert_allclose(basis.reconstruct(work), correlated_image[..., :3], atol=1e-5)

    def test_known_point(self, correlated_image):
        """Test reconstruction of one known pixel."""
        work = correlated_image.copy()
        basis = decorrelate(work, compression_correction=True)

        np.testing.assert_allclose(basis.reconstruct(work[5, 7]), correlated_image[5, 7, :3], atol=1e-5)

    def test_coordinates_in_unit_box(self, correlated_image):
        """Test that every color coordinate lies in [0, 1] with 0 and 1 attained."""
        work = correlated_image.copy()
        decorrelate(work)
        coords = work[..., :3].reshape(-1, 3)

        assert coords.min() >= -1e-5
        assert coords.max() <= 1.0 + 1e-5
        np.testing.assert_allclose(coords.min(axis=0), 0.0, atol=1e-5)
        np.testing.assert_allclose(coords.max(axis=0), 1.0, atol=1e-5)

    def test_channels_uncorrelated(self, correlated_image):
        """Test that the stored channels have near-zero cross covariance."""
        work = correlated_image.copy()
        decorrelate(work)
        cov = np.cov(work.reshape(-1, 4)[:, :3].astype(np.float64), rowvar=False)

        off_diagonal = cov - np.diag(np.diag(cov))
        assert np.abs(off_diagonal).max() < 1e-4 * np.abs(np.diag(cov)).max() + 1e-7

    def test_widest_axis_in_second_slot(self, correlated_image):
        """Test axis ordering on real data."""
        basis = decorrelate(correlated_image.copy())
        ranges = basis.ranges

        assert ranges[1] >= ranges[0]
        assert ranges[1] >= ranges[2]

    def test_alpha_untouched(self, correlated_image):
        """Test that the alpha channel passes through."""
        work = correlated_image.copy()
        decorrelate(work)

        np.testing.assert_array_equal(work[..., 3], correlated_image[..., 3])

    def test_constant_image(self):
        """Test that a constant image produces no NaN or Inf."""
        work = np.full((4, 4, 4), 0.6, dtype=np.float32)
        basis = decorrelate(work, compression_correction=True)

        assert np.all(np.isfinite(work))
        assert np.all(np.isfinite(basis.axes))
        np.testing.assert_allclose(basis.ranges, 1.0)
        np.testing.assert_allclose(work[..., :3], 0.0)
        np.testing.assert_allclose(basis.reconstruct(work[0, 0]), [0.6, 0.6, 0.6], atol=1e-6)

    def test_projection_preserves_norm(self, correlated_image):
        """Test that projecting onto an orthonormal basis keeps RGB lengths."""
        vectors, _ = eigendecompose(compute_covariance(correlated_image))
        work = correlated_image.copy()
        project_to_eigenspace(work, normalize_eigenvectors(vectors))

        np.testing.assert_allclose(
            np.linalg.norm(work[..., :3], axis=2),
            np.linalg.norm(correlated_image[..., :3], axis=2),
            rtol=1e-5,
        )
