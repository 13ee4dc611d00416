"""
Numba status and kernel warmup.

The first call of every compiled kernel pays its JIT compilation cost. Kernels
are compiled with cache=True, so warming up once per environment is enough.
"""

import numba
import numpy as np

from stochtex.color.kernels import jacobi_eigen_3x3_numba
from stochtex.constants import GAUSSIAN_AVERAGE, GAUSSIAN_STD, JACOBI_MAX_SWEEPS, LUT_WIDTH
from stochtex.gaussian import cdf_numba, erf_inv_numba, erf_numba, inv_cdf_numba
from stochtex.lut.kernels import filter_lut_row_numba, window_variance_numba


# Layers that accept parallel kernel launches from several Python threads
THREADSAFE_LAYERS = frozenset({"tbb", "omp"})


def get_threading_layer() -> str:
    """
    Name of the threading layer that runs the parallel kernels.

    Numba selects the layer on the first parallel launch, so a one-pixel
    launch is made first to force the selection.

    Returns:
        "tbb", "omp" or "workqueue"
    """
    window_variance_numba(np.zeros((1, 1), dtype=np.float64), 1)
    return numba.threading_layer()


def parallel_kernels_thread_safe() -> bool:
    """
    Whether parallel kernels may run from several Python threads at once.

    The workqueue layer aborts the process on concurrent launches; only
    tbb and omp are safe.
    """
    return get_threading_layer() in THREADSAFE_LAYERS


def get_numba_status() -> dict:
    """
    Get information about the Numba configuration.

    Returns:
        Dictionary with Numba version and threading information
    """
    return {
        "version": numba.__version__,
        "num_threads": numba.config.NUMBA_NUM_THREADS,
        "threading_layer": numba.config.THREADING_LAYER,
    }


def warmup_numba_kernels() -> None:
    """
    Warm up Numba JIT compilation for all kernels.

    Call this once before timing-sensitive work to avoid first-call
    compilation overhead.
    """
    # Scalar Gaussian kernels
    erf_numba(0.5)
    erf_inv_numba(0.5)
    cdf_numba(0.5, GAUSSIAN_AVERAGE, GAUSSIAN_STD)
    inv_cdf_numba(0.5, GAUSSIAN_AVERAGE, GAUSSIAN_STD)

    # Eigen solver
    a = np.array([[2.0, 1.0, 0.0], [1.0, 2.0, 0.0], [0.0, 0.0, 1.0]])
    q = np.empty((3, 3), dtype=np.float64)
    w = np.empty(3, dtype=np.float64)
    jacobi_eigen_3x3_numba(a, q, w, JACOBI_MAX_SWEEPS)

    # Prefilter kernels
    image = np.random.rand(16, 16)
    window_variance_numba(image, 2)
    row = np.linspace(0.0, 1.0, LUT_WIDTH)
    out = np.empty_like(row)
    filter_lut_row_numba(row, 0.1, out)
