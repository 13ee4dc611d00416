"""
Numba-optimized kernels for color space decorrelation.

Provides the cyclic Jacobi diagonalization of symmetric 3x3 matrices
(Kopp's dsyevj3 formulation). Compiled without fastmath: the convergence
tests compare sums against exact zero and rely on IEEE rounding.
"""

import numpy as np
from numba import njit

from stochtex.constants import JACOBI_THRESHOLD_SWEEPS


@njit(cache=True, nogil=True)
def jacobi_eigen_3x3_numba(a: np.ndarray, q: np.ndarray, w: np.ndarray, max_sweeps: int) -> int:
    """
    Diagonalize a symmetric 3x3 matrix with cyclic Jacobi rotations.

    The upper triangle of ``a`` is destroyed, the diagonal is read and the
    lower triangle is never referenced.

    Args:
        a: Symmetric matrix [3, 3] (float64, modified in-place)
        q: Output eigenvectors as columns [3, 3]
        w: Output eigenvalues [3]
        max_sweeps: Sweep budget

    Returns:
        Number of sweeps used on success, -1 if the budget ran out
    """
    n = 3

    for i in range(n):
        for j in range(n):
            q[i, j] = 0.0
        q[i, i] = 1.0

    for i in range(n):
        w[i] = a[i, i]

    for sweep in range(max_sweeps):
        # Sum of off-diagonal magnitudes
        so = 0.0
        for p in range(n):
            for r in range(p + 1, n):
                so += abs(a[p, r])
        if so == 0.0:
            return sweep

        if sweep < JACOBI_THRESHOLD_SWEEPS:
            thresh = 0.2 * so / (n * n)
        else:
            thresh = 0.0

        for p in range(n):
            for r in range(p + 1, n):
                g = 100.0 * abs(a[p, r])
                if sweep > JACOBI_THRESHOLD_SWEEPS and abs(w[p]) + g == abs(w[p]) and abs(w[r]) + g == abs(w[r]):
                    a[p, r] = 0.0
                elif abs(a[p, r]) > thresh:
                    # Rotation angle
                    h = w[r] - w[p]
                    if abs(h) + g == abs(h):
                        t = a[p, r] / h
                    else:
                        theta = 0.5 * h / a[p, r]
                        if theta < 0.0:
                            t = -1.0 / (np.sqrt(1.0 + theta * theta) - theta)
                        else:
                            t = 1.0 / (np.sqrt(1.0 + theta * theta) + theta)
                    c = 1.0 / np.sqrt(1.0 + t * t)
                    s = t * c
                    z = t * a[p, r]

                    # Apply rotation
                    a[p, r] = 0.0
                    w[p] -= z
                    w[r] += z
                    for k in range(p):
                        tmp = a[k, p]
                        a[k, p] = c * tmp - s * a[k, r]
                        a[k, r] = s * tmp + c * a[k, r]
                    for k in range(p + 1, r):
                        tmp = a[p, k]
                        a[p, k] = c * tmp - s * a[k, r]
                        a[k, r] = s * tmp + c * a[k, r]
                    for k in range(r + 1, n):
                        tmp = a[p, k]
                        a[p, k] = c * tmp - s * a[r, k]
                        a[r, k] = s * tmp + c * a[r, k]

                    # Accumulate eigenvectors
                    for k in range(n):
                        tmp = q[k, p]
                        q[k, p] = c * tmp - s * q[k, r]
                        q[k, r] = s * tmp + c * q[k, r]

    return -1

