"""
Decorrelated (PCA) color space for RGB textures.

Histogram transforms are applied per channel, which only preserves the joint
color distribution when the channels are uncorrelated. The input RGB is
rotated onto the principal axes of its covariance, each axis is remapped to
[0, 1], and the affine basis that undoes both steps is returned for the
renderer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from stochtex.buffer import PixelBuffer
from stochtex.color.eigen import diagonalize, sort_eigenpairs
from stochtex.constants import COLOR_CHANNELS, DEGENERATE_RANGE_TOLERANCE, JACOBI_MAX_SWEEPS
from stochtex.validators import validate_buffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorBasis:
    """
    Affine map from normalized decorrelated space back to RGB.

    rgb = origin + sum_k(normalized[k] * vectors[k])

    Attributes:
        origin: RGB of the all-zero decorrelated color [3]
        vectors: Basis vector k as row k [3, 3]
    """

    origin: np.ndarray
    vectors: np.ndarray

    def __post_init__(self) -> None:
        origin = np.asarray(self.origin, dtype=np.float64)
        vectors = np.asarray(self.vectors, dtype=np.float64)
        if origin.shape != (3,) or vectors.shape != (3, 3):
            raise ValueError(
                f"ColorBasis needs origin [3] and vectors [3, 3], "
                f"got {origin.shape} and {vectors.shape}."
            )
        # Frozen dataclass: bypass __setattr__ to store the coerced arrays
        object.__setattr__(self, "origin", origin)
        object.__setattr__(self, "vectors", vectors)

    @classmethod
    def identity(cls) -> ColorBasis:
        """Basis of a texture that was not decorrelated."""
        return cls(np.zeros(3), np.eye(3))

    def to_rgb(self, normalized: np.ndarray) -> np.ndarray:
        """
        Map normalized decorrelated colors back to RGB.

        Args:
            normalized: Decorrelated values [..., 3]

        Returns:
            RGB colors [..., 3]
        """
        return self.origin + np.asarray(normalized, dtype=np.float64) @ self.vectors

    def from_rgb(self, rgb: np.ndarray) -> np.ndarray:
        """
        Map RGB colors to normalized decorrelated space.

        Inverse of to_rgb; requires all three basis vectors to be non-zero.
        """
        return np.linalg.solve(
            self.vectors.T, (np.asarray(rgb, dtype=np.float64) - self.origin).T
        ).T


@validate_buffer("input", 0)
def compute_covariance(input: PixelBuffer) -> tuple[np.ndarray, np.ndarray]:
    """
    First and second order RGB moments.

    Returns:
        mean: Per-channel mean [3]
        covariance: Covariance matrix [3, 3] (E[xy] - E[x]E[y])
    """
    rgb = input.data[:, :COLOR_CHANNELS].astype(np.float64)
    mean = rgb.mean(axis=0)
    second = rgb.T @ rgb / rgb.shape[0]
    covariance = second - np.outer(mean, mean)
    return mean, covariance


def compute_principal_axes(
    input: PixelBuffer, sort_axes: bool = False, max_sweeps: int = JACOBI_MAX_SWEEPS
) -> tuple[np.ndarray, np.ndarray]:
    """
    Principal axes of the RGB distribution.

    Args:
        input: Texture to analyse
        sort_axes: If True, order axes by descending variance. Otherwise the
            solver order is kept.
        max_sweeps: Jacobi sweep budget

    Returns:
        axes: Unit axes as rows [3, 3]
        variances: Variance along each axis [3]
    """
    _, covariance = compute_covariance(input)
    vectors, values = diagonalize(covariance, max_sweeps=max_sweeps)
    if sort_axes:
        vectors, values = sort_eigenpairs(vectors, values)
    return vectors.T.copy(), values


@validate_buffer("input", 0)
def decorrelate(
    input: PixelBuffer, sort_axes: bool = False, max_sweeps: int = JACOBI_MAX_SWEEPS
) -> tuple[PixelBuffer, ColorBasis]:
    """
    Rotate RGB onto its principal axes and normalize each axis to [0, 1].

    Alpha is copied unchanged. An axis whose range is at most
    DEGENERATE_RANGE_TOLERANCE times the largest range (every pixel projects
    to the same value up to rounding) maps to 0 and gets a zero-length basis
    vector.

    Args:
        input: Texture to decorrelate (not modified)
        sort_axes: Order axes by descending variance instead of solver order
        max_sweeps: Jacobi sweep budget

    Returns:
        decorrelated: New buffer with normalized decorrelated RGB
        basis: Affine basis with basis.to_rgb(decorrelated RGB) == input RGB

    Raises:
        ConvergenceError: If the covariance matrix could not be diagonalized

    Example:
        >>> buffer = PixelBuffer.from_array(np.random.rand(32, 32, 3))
        >>> decorrelated, basis = decorrelate(buffer)
        >>> np.allclose(basis.to_rgb(decorrelated.data[:, :3]), buffer.data[:, :3], atol=1e-4)
        True
    """
    axes, variances = compute_principal_axes(input, sort_axes=sort_axes, max_sweeps=max_sweeps)

    rgb = input.data[:, :COLOR_CHANNELS].astype(np.float64)
    projected = rgb @ axes.T

    minimums = projected.min(axis=0)
    maximums = projected.max(axis=0)
    ranges = maximums - minimums

    # Collapsed axes (grayscale, affine channels) only carry rounding noise
    degenerate = ranges <= DEGENERATE_RANGE_TOLERANCE * ranges.max()
    if np.any(degenerate):
        logger.warning(
            "[Decorrelate] Axes %s have near zero range %s; their channels are set to 0",
            np.flatnonzero(degenerate).tolist(),
            ranges[degenerate].tolist(),
        )
        ranges = np.where(degenerate, 0.0, ranges)
    safe_ranges = np.where(degenerate, 1.0, ranges)
    normalized = np.where(degenerate, 0.0, (projected - minimums) / safe_ranges)

    result = input.copy()
    result.data[:, :COLOR_CHANNELS] = normalized

    basis = ColorBasis(
        origin=minimums @ axes,
        vectors=axes * ranges[:, np.newaxis],
    )

    logger.info(
        "[Decorrelate] %dx%d texture: axis variances %s, ranges %s",
        input.width,
        input.height,
        np.array2string(variances, precision=5),
        np.array2string(ranges, precision=4),
    )
    return result, basis
