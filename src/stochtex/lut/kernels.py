"""
Numba-optimized kernels for look-up table prefiltering.

Provides JIT-compiled kernels for the two hot loops of prefiltering:
window variance estimation over the Gaussianized texture and Gaussian
filtering of a LUT row (2 * width samples per texel).

The window variance kernel is compiled without fastmath: FMA contraction of
E[x^2] - E[x]^2 leaves a rounding residue where a window is constant, and
level 0 and flat windows must report exactly 0.
"""

import math

import numpy as np
from numba import njit, prange

from stochtex.constants import PREFILTER_SAMPLE_FACTOR
from stochtex.gaussian import inv_cdf_numba


@njit(parallel=True, cache=True, nogil=True)
def window_variance_numba(image: np.ndarray, window: int) -> float:
    """
    Average variance over non-overlapping square windows.

    Windows on the right and bottom edges are clipped to the image when its
    size is not a multiple of ``window``.

    Args:
        image: Single channel [H, W]
        window: Window side in pixels (>= 1)

    Returns:
        Arithmetic mean of max(0, E[x^2] - E[x]^2) over all windows
    """
    H = image.shape[0]
    W = image.shape[1]
    rows = (H + window - 1) // window
    cols = (W + window - 1) // window

    total = 0.0
    for wy in prange(rows):
        y0 = wy * window
        y1 = min(y0 + window, H)
        row_total = 0.0
        for wx in range(cols):
            x0 = wx * window
            x1 = min(x0 + window, W)

            s = 0.0
            s2 = 0.0
            for y in range(y0, y1):
                for x in range(x0, x1):
                    v = image[y, x]
                    s += v
                    s2 += v * v
            count = (y1 - y0) * (x1 - x0)
            mean = s / count
            variance = s2 / count - mean * mean
            if variance < 0.0:
                variance = 0.0
            row_total += variance
        total += row_total

    return total / (rows * cols)


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def filter_lut_row_numba(base: np.ndarray, std: float, out: np.ndarray) -> None:
    """
    Filter a LUT row with a Gaussian kernel N(x, std^2) centered on each texel.

    The kernel is sampled at 2 * width quantiles; each sample position is
    snapped to the texel covering it (clamped to the row) and the fetched
    base values are averaged.

    Args:
        base: Unfiltered row [width]
        std: Kernel standard deviation in the [0, 1] LUT domain
        out: Filtered row [width] (modified in-place)
    """
    width = base.shape[0]
    samples = PREFILTER_SAMPLE_FACTOR * width

    for i in prange(width):
        x = (i + 0.5) / width
        acc = 0.0
        for s in range(samples):
            u = (s + 0.5) / samples
            sample_x = inv_cdf_numba(u, x, std)
            texel = int(math.floor(sample_x * width))
            if texel < 0:
                texel = 0
            elif texel > width - 1:
                texel = width - 1
            acc += base[texel]
        out[i] = acc / samples
