"""
stochtex - Stochastic Texturing Precomputation

Offline precomputation for histogram-preserving stochastic texture tiling.

Features:
- Histogram transformation T: per-channel rank remap onto N(0.5, 0.16666^2)
- Inverse transform T^-1 stored as a 128-texel look-up table
- Mip-aware LUT prefiltering driven by per-level subpixel variance
- PCA color space decorrelation (cyclic Jacobi 3x3 eigen solver)
- Block-compression (DXT) aware rescaling of decorrelated channels
- Per-map pipeline (albedo, normal, height, ...) with progress reporting
- Numba-compiled kernels that release the GIL for concurrent maps

Example - Single map:
    >>> import numpy as np
    >>> from stochtex import MapKind, PixelBuffer, precompute
    >>>
    >>> albedo = PixelBuffer.from_array(np.random.rand(256, 256, 4))
    >>> result = precompute(albedo, MapKind.ALBEDO)
    >>> result.forward      # Gaussianized texture T(input)
    >>> result.lut          # 128 x 9 prefiltered inverse LUT
    >>> result.basis        # Decorrelated color space origin and vectors

Example - Explicit channels and options:
    >>> from stochtex import PrecomputationPipeline, PrecomputeConfig
    >>>
    >>> pipeline = PrecomputationPipeline(PrecomputeConfig(block_compressed=True))
    >>> result = pipeline.run(albedo, channels=(0, 1, 2), uses_decorrelation=True)
    >>> result.scalers.values

Example - Several maps concurrently:
    >>> from stochtex import precompute_many
    >>>
    >>> results = precompute_many({"albedo": albedo, "height": height}, max_workers=2)
"""

__version__ = "0.1.0"

# Data structures
from stochtex.buffer import LookUpTable, PixelBuffer, lut_levels

# Decorrelation
from stochtex.color import (
    ColorBasis,
    ConvergenceError,
    compute_covariance,
    compute_principal_axes,
    decorrelate,
    diagonalize,
    sort_eigenpairs,
)

# Compression
from stochtex.compression import CompressionScalers, compute_scalers, rescale, restore

# Configuration
from stochtex.config import PrecomputeConfig

# Constants
from stochtex.constants import GAUSSIAN_AVERAGE, GAUSSIAN_STD, LUT_WIDTH

# Gaussian statistics
from stochtex.gaussian import cdf, erf, erf_inv, inv_cdf

# Histogram transformation
from stochtex.histogram import compute_forward_transform, compute_inverse_lut

# LUT prefiltering
from stochtex.lut import (
    compute_level_variances,
    compute_subpixel_variance,
    filter_lut_row,
    prefilter_lut,
)

# Numba utilities
from stochtex.numba_ops import get_numba_status, warmup_numba_kernels

# Pipeline
from stochtex.pipeline import (
    CHANNEL_SELECTIONS,
    MapKind,
    PrecomputationPipeline,
    PrecomputationResult,
    StochasticLayers,
    is_selected,
    precompute,
    precompute_many,
)

# Protocols
from stochtex.protocols import LoggingProgress, ProgressSink

__all__ = [
    # Version
    "__version__",
    # Data structures
    "PixelBuffer",
    "LookUpTable",
    "lut_levels",
    "ColorBasis",
    "CompressionScalers",
    "PrecomputationResult",
    # Pipeline
    "PrecomputationPipeline",
    "PrecomputeConfig",
    "MapKind",
    "StochasticLayers",
    "CHANNEL_SELECTIONS",
    "is_selected",
    "precompute",
    "precompute_many",
    # Protocols
    "ProgressSink",
    "LoggingProgress",
    # Gaussian statistics
    "erf",
    "erf_inv",
    "cdf",
    "inv_cdf",
    "GAUSSIAN_AVERAGE",
    "GAUSSIAN_STD",
    "LUT_WIDTH",
    # Histogram transformation
    "compute_forward_transform",
    "compute_inverse_lut",
    # Decorrelation
    "compute_covariance",
    "compute_principal_axes",
    "decorrelate",
    "diagonalize",
    "sort_eigenpairs",
    "ConvergenceError",
    # Prefiltering
    "compute_subpixel_variance",
    "compute_level_variances",
    "filter_lut_row",
    "prefilter_lut",
    # Compression
    "compute_scalers",
    "rescale",
    "restore",
    # Numba utilities
    "get_numba_status",
    "warmup_numba_kernels",
]
