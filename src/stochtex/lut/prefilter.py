"""
Mip-aware prefiltering of the inverse look-up table.

A texel of mip level L averages a 2^L x 2^L window of the Gaussianized
texture. The inverse transform evaluated on such an average must account for
the values it mixed, so row L of the LUT is row 0 blurred by a Gaussian whose
variance is the average subpixel variance of T(input) at that level.
"""

from __future__ import annotations

import logging

import numpy as np

from stochtex.buffer import LookUpTable, PixelBuffer
from stochtex.lut.kernels import filter_lut_row_numba, window_variance_numba
from stochtex.validators import validate_buffer, validate_channel

logger = logging.getLogger(__name__)


@validate_buffer("forward", 0)
@validate_channel("channel", 2)
def compute_subpixel_variance(forward: PixelBuffer, level: int, channel: int) -> float:
    """
    Average variance of one channel inside windows of side 2**level.

    Args:
        forward: Gaussianized texture T(input)
        level: Mip level (0 gives single-pixel windows and variance 0)
        channel: Channel to analyse

    Returns:
        Mean over windows of max(0, E[x^2] - E[x]^2)
    """
    if level < 0:
        raise ValueError(f"level={level} must be non-negative.")
    image = np.ascontiguousarray(forward.channel_2d(channel), dtype=np.float64)
    return float(window_variance_numba(image, 1 << level))


def compute_level_variances(forward: PixelBuffer, channel: int, num_levels: int) -> np.ndarray:
    """
    Subpixel variance for every mip level.

    Returns:
        Variances [num_levels]; entry 0 (the unfiltered level) is 0.0
    """
    variances = np.zeros(num_levels, dtype=np.float64)
    for level in range(1, num_levels):
        variances[level] = compute_subpixel_variance(forward, level, channel)
    return variances


def filter_lut_row(base_row: np.ndarray, std: float) -> np.ndarray:
    """
    Blur one LUT row with a Gaussian kernel of the given standard deviation.

    Args:
        base_row: Unfiltered row [width]
        std: Kernel standard deviation in the [0, 1] LUT domain (>= 0)

    Returns:
        Filtered row [width]; equal to ``base_row`` when std is 0
    """
    if std < 0.0 or not np.isfinite(std):
        raise ValueError(f"std={std} must be a finite, non-negative number.")
    base = np.ascontiguousarray(base_row, dtype=np.float64)
    out = np.empty_like(base)
    filter_lut_row_numba(base, float(std), out)
    return out


@validate_buffer("forward", 0)
@validate_channel("channel", 2)
def prefilter_lut(forward: PixelBuffer, lut: LookUpTable, channel: int) -> LookUpTable:
    """
    Fill rows 1..levels-1 of one LUT channel from its row 0.

    Args:
        forward: Gaussianized texture T(input) the variances are measured on
        lut: Table whose row 0 holds the unfiltered inverse transform
            (not modified)
        channel: Channel to prefilter

    Returns:
        New table with every level of ``channel`` filled in

    Example:
        >>> t = compute_forward_transform(buffer, 0)
        >>> lut = compute_inverse_lut(buffer, 0)
        >>> lut = prefilter_lut(t, lut, 0)
    """
    result = lut.copy()
    base = result.row(0, channel)

    for level in range(1, result.num_levels):
        variance = compute_subpixel_variance(forward, level, channel)
        std = float(np.sqrt(variance))
        result.set_row(level, channel, filter_lut_row(base, std))
        logger.debug(
            "[Prefilter] Channel %d level %d: window %d, std %.5f",
            channel,
            level,
            1 << level,
            std,
        )

    return result
