"""
Tests for the symmetric 3x3 Jacobi eigen solver.
"""

import numpy as np
import pytest

from stochtex.color.eigen import ConvergenceError, diagonalize, sort_eigenpairs
from stochtex.color.kernels import jacobi_eigen_3x3_numba


@pytest.fixture
def spd_matrix():
    """Random symmetric positive definite matrix, like an RGB covariance."""
    rng = np.random.default_rng(11)
    m = rng.standard_normal((3, 3))
    return m @ m.T + 0.1 * np.eye(3)


class TestDiagonalize:
    """Test diagonalize() correctness and error handling."""

    def test_diagonal_matrix(self):
        """Test a diagonal matrix needs no rotation."""
        vectors, values = diagonalize(np.diag([3.0, 1.0, 2.0]))

        np.testing.assert_array_equal(vectors, np.eye(3))
        np.testing.assert_array_equal(values, [3.0, 1.0, 2.0])

    def test_zero_matrix(self):
        vectors, values = diagonalize(np.zeros((3, 3)))

        np.testing.assert_array_equal(vectors, np.eye(3))
        np.testing.assert_array_equal(values, np.zeros(3))

    def test_eigen_equation(self, spd_matrix):
        """Test A @ v = lambda * v for every eigenpair."""
        vectors, values = diagonalize(spd_matrix)

        np.testing.assert_allclose(spd_matrix @ vectors, vectors * values, atol=1e-10)

    def test_orthonormal(self, spd_matrix):
        vectors, _ = diagonalize(spd_matrix)
        np.testing.assert_allclose(vectors.T @ vectors, np.eye(3), atol=1e-12)

    def test_matches_numpy(self, spd_matrix):
        _, values = diagonalize(spd_matrix)
        np.testing.assert_allclose(np.sort(values), np.linalg.eigvalsh(spd_matrix), rtol=1e-10)

    def test_input_not_modified(self, spd_matrix):
        snapshot = spd_matrix.copy()
        diagonalize(spd_matrix)
        np.testing.assert_array_equal(spd_matrix, snapshot)

    def test_degenerate_eigenvalues(self):
        """Test a rank-1 matrix (grayscale covariance) still converges."""
        v = np.ones(3) / np.sqrt(3.0)
        matrix = 0.04 * np.outer(v, v)
        vectors, values = diagonalize(matrix)

        np.testing.assert_allclose(matrix @ vectors, vectors * values, atol=1e-12)
        assert np.sort(values)[-1] == pytest.approx(0.04)

    def test_sweep_budget_exhausted(self, spd_matrix):
        """Test a zero sweep budget fails for a non-diagonal matrix."""
        with pytest.raises(ConvergenceError) as excinfo:
            diagonalize(spd_matrix, max_sweeps=0)

        assert isinstance(excinfo.value, ArithmeticError)
        assert excinfo.value.max_sweeps == 0
        np.testing.assert_array_equal(excinfo.value.matrix, spd_matrix)

    def test_kernel_reports_sweeps(self, spd_matrix):
        a = spd_matrix.copy()
        q = np.empty((3, 3))
        w = np.empty(3)

        sweeps = jacobi_eigen_3x3_numba(a, q, w, 50)

        assert 1 <= sweeps <= 50

    @pytest.mark.parametrize("shape", [(2, 2), (3,), (3, 4), (4, 4)])
    def test_wrong_shape(self, shape):
        with pytest.raises(ValueError, match="3x3"):
            diagonalize(np.zeros(shape))

    def test_not_symmetric(self):
        matrix = np.array([[1.0, 2.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
        with pytest.raises(ValueError, match="symmetric"):
            diagonalize(matrix)

    def test_not_finite(self):
        matrix = np.eye(3)
        matrix[1, 1] = np.nan
        with pytest.raises(ValueError, match="NaN"):
            diagonalize(matrix)

    def test_negative_budget(self):
        with pytest.raises(ValueError, match="max_sweeps"):
            diagonalize(np.eye(3), max_sweeps=-1)


class TestSortEigenpairs:
    def test_descending(self, spd_matrix):
        vectors, values = diagonalize(spd_matrix)
        sorted_vectors, sorted_values = sort_eigenpairs(vectors, values)

        assert np.all(np.diff(sorted_values) <= 0.0)
        np.testing.assert_allclose(
            spd_matrix @ sorted_vectors, sorted_vectors * sorted_values, atol=1e-10
        )

    def test_explicit_order(self):
        vectors = np.eye(3)
        values = np.array([1.0, 3.0, 2.0])
        sorted_vectors, sorted_values = sort_eigenpairs(vectors, values)

        np.testing.assert_array_equal(sorted_values, [3.0, 2.0, 1.0])
        np.testing.assert_array_equal(sorted_vectors[:, 0], [0.0, 1.0, 0.0])
