"""
Iterative eigensolver for real symmetric 3x3 matrices.

Follows David Eberly's "A Robust Eigensolver for 3x3 Symmetric Matrices":

1. One reflection zeroes entry (0, 2), leaving a tridiagonal matrix B.
2. Givens rotations are applied to the larger off-diagonal branch of B until
   the remaining superdiagonal term is a relative zero, after which one 2x2
   rotation diagonalizes what is left.

The loop is capped at ``EIGEN_MAX_ITERATIONS`` passes. Every rotation is
orthogonal, so the accumulated basis stays orthonormal even when the cap is
reached and the result is only approximately diagonal.

Operates on Python floats; the matrix is tiny and this runs once per image.
"""

import logging
import math

import numpy as np

from gausstex.constants import EIGEN_MAX_ITERATIONS

logger = logging.getLogger(__name__)


def parallel_sin_cos(u: float, v: float) -> tuple[float, float]:
    """
    Unit vector (cos, sin) parallel to (u, v), flipped so cos <= 0.

    A zero vector yields (-1, 0).
    """
    length = math.sqrt(u * u + v * v)
    if length > 0.0:
        c = u / length
        s = v / length
        if c > 0.0:
            c = -c
            s = -s
        return c, s
    return -1.0, 0.0


def is_relative_zero(diagonal0: float, diagonal1: float, value: float) -> bool:
    """True when ``value`` vanishes against the adjacent diagonal magnitudes."""
    magnitude = abs(diagonal0) + abs(diagonal1)
    return magnitude + value == magnitude


def _half_angle(c2: float, s2: float) -> tuple[float, float]:
    # cos(2t) <= 0 keeps sin(t) >= sqrt(1/2)
    s = math.sqrt(0.5 * (1.0 - c2))
    return s2 / (2.0 * s), s


def eigendecompose(
    matrix: np.ndarray,
    max_iterations: int = EIGEN_MAX_ITERATIONS,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Eigenvectors and eigenvalues of a symmetric 3x3 matrix.

    Args:
        matrix: Symmetric matrix [3, 3]. Only the upper triangle is read.
        max_iterations: Cap on Givens passes

    Returns:
        (eigenvectors [3, 3] with vectors as columns, eigenvalues [3]), float64.
        Column k pairs with eigenvalue k. Vectors are not sign-normalized.

    Example:
        >>> vectors, values = eigendecompose(np.diag([3.0, 1.0, 2.0]))
        >>> sorted(values.tolist())
        [1.0, 2.0, 3.0]
    """
    a = np.asarray(matrix, dtype=np.float64)
    if a.shape != (3, 3):
        raise ValueError(f"matrix must have shape (3, 3), got {a.shape}")

    a00, a01, a02 = float(a[0, 0]), float(a[0, 1]), float(a[0, 2])
    a11, a12, a22 = float(a[1, 1]), float(a[1, 2]), float(a[2, 2])

    # Reflection zeroing (0, 2)
    c0, s0 = parallel_sin_cos(a12, -a02)
    ca00sa01 = c0 * a00 + s0 * a01
    ca01sa11 = c0 * a01 + s0 * a11
    sa00ca01 = s0 * a00 - c0 * a01
    sa01ca11 = s0 * a01 - c0 * a11

    b00 = c0 * ca00sa01 + s0 * ca01sa11
    b11 = s0 * sa00ca01 - c0 * sa01ca11
    b22 = a22
    b01 = s0 * ca00sa01 - c0 * ca01sa11
    b12 = s0 * a02 - c0 * a12

    q = np.array(
        [
            [c0, s0, 0.0],
            [s0, -c0, 0.0],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )

    converged = False

    if abs(b12) < abs(b01):
        # Drive b12 to zero, rotating the (0, 1) block each pass
        for _ in range(max_iterations):
            c, s = _half_angle(*parallel_sin_cos(0.5 * (b11 - b00), -b01))

            p00 = c * (c * b00 + s * b01) + s * (c * b01 + s * b11)
            p11 = b22
            p22 = s * (s * b00 - c * b01) - c * (s * b01 - c * b11)
            p01 = s * b12
            p12 = c * b12
            b00, b01, b11, b12, b22 = p00, p01, p11, p12, p22

            q0 = q[:, 0].copy()
            q1 = q[:, 1].copy()
            q[:, 0] = q0 * c + q1 * s
            q[:, 1] = q[:, 2]
            q[:, 2] = q1 * c - q0 * s

            if is_relative_zero(b11, b22, b12):
                converged = True
                break

        c, s = _half_angle(*parallel_sin_cos(0.5 * (b00 - b11), b01))
        values = np.array(
            [
                c * (c * b00 + s * b01) + s * (c * b01 + s * b11),
                s * (s * b00 - c * b01) - c * (s * b01 - c * b11),
                b22,
            ],
            dtype=np.float64,
        )
        q0 = q[:, 0].copy()
        q1 = q[:, 1].copy()
        q[:, 0] = q0 * c + q1 * s
        q[:, 1] = q0 * s - q1 * c
    else:
        # Drive b01 to zero, rotating the (1, 2) block each pass
        for _ in range(max_iterations):
            c, s = _half_angle(*parallel_sin_cos(0.5 * (b22 - b11), -b12))

            p00 = c * (c * b11 + s * b12) + s * (c * b12 + s * b22)
            p11 = b00
            p22 = s * (s * b11 - c * b12) - c * (s * b12 - c * b22)
            p01 = c * b01
            p12 = -s * b01
            b00, b01, b11, b12, b22 = p00, p01, p11, p12, p22

            q0 = q[:, 0].copy()
            q1 = q[:, 1].copy()
            q2 = q[:, 2].copy()
            q[:, 0] = q1 * c + q2 * s
            q[:, 1] = q0
            q[:, 2] = q2 * c - q1 * s

            if is_relative_zero(b00, b11, b01):
                converged = True
                break

        c, s = _half_angle(*parallel_sin_cos(0.5 * (b11 - b22), b12))
        values = np.array(
            [
                b00,
                c * (c * b11 + s * b12) + s * (c * b12 + s * b22),
                s * (s * b11 - c * b12) - c * (s * b12 - c * b22),
            ],
            dtype=np.float64,
        )
        q1 = q[:, 1].copy()
        q2 = q[:, 2].copy()
        q[:, 1] = q1 * c + q2 * s
        q[:, 2] = q1 * s - q2 * c

    if not converged:
        logger.warning(
            "[eigendecompose] No convergence after %d iterations, result is approximate",
            max_iterations,
        )

    return q, values


def max_positive(vector: np.ndarray) -> np.ndarray:
    """
    Flip ``vector`` so its largest-magnitude component is positive.

    The first index wins ties.
    """
    k = int(np.argmax(np.abs(vector)))
    if vector[k] < 0:
        return -vector
    return vector


def normalize_eigenvectors(vectors: np.ndarray) -> np.ndarray:
    """
    Normalize each column to unit length and remove its sign ambiguity.

    Args:
        vectors: Eigenvectors as columns [3, 3]

    Returns:
        New [3, 3] float64 array
    """
    out = np.array(vectors, dtype=np.float64, copy=True)
    for k in range(out.shape[1]):
        norm = np.linalg.norm(out[:, k])
        if norm > 0:
            out[:, k] /= norm
        out[:, k] = max_positive(out[:, k])
    return out
