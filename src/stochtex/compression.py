"""
Block-compression aware rescaling of Gaussianized color channels.

DXT-style block compression quantizes each channel over a fixed range. After
decorrelation the basis vectors have different lengths, so the Gaussian
channels are re-spread around 0.5 by the inverse vector length before
storage and the renderer multiplies the scale back in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from stochtex.buffer import PixelBuffer
from stochtex.color.decorrelate import ColorBasis
from stochtex.constants import COLOR_CHANNELS, DISABLED_SCALER, GAUSSIAN_AVERAGE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompressionScalers:
    """
    Per-channel scale factors for the three decorrelated channels.

    Attributes:
        values: Positive scale factors [3], or (-1, -1, -1) when disabled
    """

    values: tuple[float, float, float]

    def __post_init__(self) -> None:
        values = tuple(float(v) for v in self.values)
        if len(values) != COLOR_CHANNELS:
            raise ValueError(f"Expected 3 scalers, got {len(values)}.")
        if values != (DISABLED_SCALER,) * COLOR_CHANNELS and any(v <= 0.0 for v in values):
            raise ValueError(
                f"Scalers {values} must all be positive, or all {DISABLED_SCALER} to disable."
            )
        object.__setattr__(self, "values", values)

    @classmethod
    def disabled(cls) -> CompressionScalers:
        """Sentinel meaning "no rescale needed"."""
        return cls((DISABLED_SCALER,) * COLOR_CHANNELS)

    @property
    def enabled(self) -> bool:
        return self.values[0] >= 0.0

    def as_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=np.float64)


def compute_scalers(basis: ColorBasis, block_compressed: bool) -> CompressionScalers:
    """
    Scalers for a decorrelated texture.

    Args:
        basis: Color basis returned by decorrelation
        block_compressed: Whether the output is stored block compressed

    Returns:
        1 / ||basis.vectors[k]|| per channel when block compressed (1.0 for a
        zero-length vector), the disabled sentinel otherwise
    """
    if not block_compressed:
        return CompressionScalers.disabled()

    lengths = np.linalg.norm(basis.vectors, axis=1)
    if np.any(lengths == 0.0):
        logger.warning(
            "[Compression] Zero-length basis vectors %s keep scaler 1.0",
            np.flatnonzero(lengths == 0.0).tolist(),
        )
    scalers = np.where(lengths > 0.0, 1.0 / np.where(lengths > 0.0, lengths, 1.0), 1.0)
    return CompressionScalers(tuple(scalers.tolist()))


def rescale(forward: PixelBuffer, scalers: CompressionScalers) -> PixelBuffer:
    """
    Re-spread the Gaussian RGB channels for block-compressed storage.

    Each of the first three channels maps v -> (v - 0.5) / s + 0.5.

    Args:
        forward: Gaussianized texture (not modified)
        scalers: Scalers from compute_scalers

    Returns:
        New buffer; an unchanged copy when the scalers are disabled
    """
    result = forward.copy()
    if not scalers.enabled:
        return result

    rgb = result.data[:, :COLOR_CHANNELS].astype(np.float64)
    rgb = (rgb - GAUSSIAN_AVERAGE) / scalers.as_array() + GAUSSIAN_AVERAGE
    result.data[:, :COLOR_CHANNELS] = rgb

    logger.debug("[Compression] Rescaled RGB with scalers %s", scalers.values)
    return result


def restore(forward: PixelBuffer, scalers: CompressionScalers) -> PixelBuffer:
    """
    Undo rescale: v -> (v - 0.5) * s + 0.5 on the first three channels.

    This is the operation the renderer applies before the inverse LUT fetch.
    """
    result = forward.copy()
    if not scalers.enabled:
        return result

    rgb = result.data[:, :COLOR_CHANNELS].astype(np.float64)
    result.data[:, :COLOR_CHANNELS] = (rgb - GAUSSIAN_AVERAGE) * scalers.as_array() + GAUSSIAN_AVERAGE
    return result
