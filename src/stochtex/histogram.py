"""
Histogram transformation T and its inverse look-up table T^-1.

T remaps one channel of an example texture by rank: the i-th smallest of N
samples receives the target Gaussian quantile inv_cdf((i + 0.5) / N), so the
output keeps the input's ordering while following N(0.5, 0.16666^2).

T^-1 is stored in row 0 of a LookUpTable: texel i, whose center G lies on the
Gaussian value axis, holds the input sample at quantile cdf(G).
"""

from __future__ import annotations

import logging

import numpy as np

from stochtex.buffer import LookUpTable, PixelBuffer
from stochtex.constants import GAUSSIAN_AVERAGE, GAUSSIAN_STD
from stochtex.gaussian import cdf, inv_cdf
from stochtex.validators import validate_buffer, validate_channel

logger = logging.getLogger(__name__)


def sort_order(values: np.ndarray) -> np.ndarray:
    """
    Indices that sort ``values`` ascending, ties broken by linear index.

    A stable sort keyed on value then position keeps the result reproducible
    for images with repeated values.
    """
    return np.argsort(values, kind="stable")


def gaussian_quantiles(n: int) -> np.ndarray:
    """Target Gaussian values for ranks 0..n-1: inv_cdf((i + 0.5) / n)."""
    u = (np.arange(n, dtype=np.float64) + 0.5) / n
    return inv_cdf(u, GAUSSIAN_AVERAGE, GAUSSIAN_STD)


@validate_buffer("input", 0)
@validate_channel("channel", 1)
def compute_forward_transform(
    input: PixelBuffer, channel: int, output: PixelBuffer | None = None
) -> PixelBuffer:
    """
    Apply the histogram transformation T to one channel.

    Args:
        input: Example texture
        channel: Channel to transform (0=R, 1=G, 2=B, 3=A)
        output: Buffer holding channels transformed so far. It is copied, not
            modified. If None, a zeroed buffer of the input's size is used.

    Returns:
        New buffer equal to ``output`` with ``channel`` replaced by T(input)

    Example:
        >>> buffer = PixelBuffer.from_array(np.random.rand(64, 64, 3))
        >>> t = compute_forward_transform(buffer, 0)
        >>> t = compute_forward_transform(buffer, 1, output=t)
    """
    if output is None:
        result = PixelBuffer.zeros(input.width, input.height)
    else:
        if (output.width, output.height) != (input.width, input.height):
            raise ValueError(
                f"output is {output.width}x{output.height} but input is "
                f"{input.width}x{input.height}. Both buffers must have the same size."
            )
        result = output.copy()

    values = input.channel(channel)
    order = sort_order(values)

    # Rank order of the input becomes rank order of the output
    transformed = np.empty(input.num_pixels, dtype=np.float64)
    transformed[order] = gaussian_quantiles(input.num_pixels)
    result.data[:, channel] = transformed

    logger.debug(
        "[Histogram] Forward transform channel %d: %d pixels, input range [%.4f, %.4f]",
        channel,
        input.num_pixels,
        float(values[order[0]]),
        float(values[order[-1]]),
    )
    return result


@validate_buffer("input", 0)
@validate_channel("channel", 1)
def compute_inverse_lut(
    input: PixelBuffer, channel: int, lut: LookUpTable | None = None
) -> LookUpTable:
    """
    Compute row 0 of the inverse transform T^-1 for one channel.

    For texel i the Gaussian value G = (i + 0.5) / width is converted to the
    quantile U = cdf(G) and the input sample of rank floor(U * N) is stored.

    Args:
        input: Example texture (the untransformed values)
        channel: Channel to process
        lut: Table holding channels computed so far. It is copied, not
            modified. If None, a zeroed table sized for the input is used.

    Returns:
        New table with row 0 of ``channel`` filled in
    """
    if lut is None:
        result = LookUpTable.for_texture(input.width)
    else:
        result = lut.copy()

    sorted_values = np.sort(input.channel(channel))
    n = sorted_values.shape[0]

    g = (np.arange(result.width, dtype=np.float64) + 0.5) / result.width
    u = cdf(g, GAUSSIAN_AVERAGE, GAUSSIAN_STD)
    indices = np.clip(np.floor(u * n).astype(np.int64), 0, n - 1)

    result.set_row(0, channel, sorted_values[indices])

    logger.debug(
        "[Histogram] Inverse LUT channel %d: %d texels from %d samples",
        channel,
        result.width,
        n,
    )
    return result
