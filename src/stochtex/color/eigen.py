"""
Symmetric 3x3 eigen-decomposition.

Wraps the compiled cyclic Jacobi kernel with input validation and turns a
sweep budget overrun into a ConvergenceError.
"""

from __future__ import annotations

import logging

import numpy as np

from stochtex.color.kernels import jacobi_eigen_3x3_numba
from stochtex.constants import JACOBI_MAX_SWEEPS

logger = logging.getLogger(__name__)


class ConvergenceError(ArithmeticError):
    """Raised when the Jacobi solver exhausts its sweep budget."""

    def __init__(self, matrix: np.ndarray, max_sweeps: int):
        self.matrix = matrix
        self.max_sweeps = max_sweeps
        super().__init__(
            f"Jacobi eigen solver did not converge within {max_sweeps} sweeps. "
            f"Skip color decorrelation for this image or raise the sweep budget."
        )


def diagonalize(
    matrix: np.ndarray, max_sweeps: int = JACOBI_MAX_SWEEPS
) -> tuple[np.ndarray, np.ndarray]:
    """
    Eigenvectors and eigenvalues of a symmetric 3x3 matrix.

    Args:
        matrix: Symmetric matrix [3, 3] (not modified)
        max_sweeps: Sweep budget before giving up

    Returns:
        eigenvectors: Orthonormal eigenvectors as columns [3, 3]
        eigenvalues: Eigenvalues [3], in solver order (not sorted)

    Raises:
        ValueError: If the matrix is not a finite symmetric 3x3 matrix
        ConvergenceError: If off-diagonal terms remain after max_sweeps

    Example:
        >>> m = np.array([[2.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 3.0]])
        >>> vectors, values = diagonalize(m)
        >>> np.allclose(m @ vectors, vectors * values)
        True
    """
    a = np.array(matrix, dtype=np.float64)
    if a.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 matrix, got shape {a.shape}.")
    if not np.all(np.isfinite(a)):
        raise ValueError("Matrix contains NaN or infinite entries.")
    if not np.allclose(a, a.T, rtol=1e-6, atol=1e-12):
        raise ValueError("Matrix must be symmetric (covariance matrices always are).")
    if max_sweeps < 0:
        raise ValueError(f"max_sweeps={max_sweeps} must be non-negative.")

    vectors = np.empty((3, 3), dtype=np.float64)
    values = np.empty(3, dtype=np.float64)
    sweeps = jacobi_eigen_3x3_numba(a, vectors, values, max_sweeps)

    if sweeps < 0:
        raise ConvergenceError(np.array(matrix, dtype=np.float64), max_sweeps)

    logger.debug("[Eigen] Converged in %d sweeps, eigenvalues %s", sweeps, values)
    return vectors, values


def sort_eigenpairs(
    vectors: np.ndarray, values: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """
    Reorder eigenpairs by descending eigenvalue.

    Args:
        vectors: Eigenvectors as columns [3, 3]
        values: Eigenvalues [3]

    Returns:
        (vectors, values) with the largest-variance axis first
    """
    order = np.argsort(-values, kind="stable")
    return vectors[:, order], values[order]
