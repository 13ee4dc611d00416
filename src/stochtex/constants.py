"""
Constants and default values for stochtex precomputation.

Centralizes the target distribution, look-up table layout and solver limits.
"""

from __future__ import annotations

# =============================================================================
# Target Gaussian Distribution
# =============================================================================

GAUSSIAN_AVERAGE = 0.5  # Expectation of the target Gaussian
GAUSSIAN_STD = 0.16666  # Almost all of the mass fits inside [0, 1]

# =============================================================================
# Look-Up Table Constants
# =============================================================================

LUT_WIDTH = 128  # Texels along the Gaussian value axis
PREFILTER_SAMPLE_FACTOR = 2  # Samples per texel when filtering a LUT level

# =============================================================================
# Pixel Buffer Constants
# =============================================================================

NUM_CHANNELS = 4  # R, G, B, A
COLOR_CHANNELS = 3  # R, G, B
VALID_CHANNELS = (0, 1, 2, 3)
BUFFER_DTYPE = "float32"

# =============================================================================
# Eigen Solver Constants
# =============================================================================

JACOBI_MAX_SWEEPS = 50  # Sweep budget before reporting non-convergence
JACOBI_MAX_SWEEPS_LIMIT = 1000
JACOBI_THRESHOLD_SWEEPS = 4  # Sweeps that use a rotation threshold

# =============================================================================
# Compression Constants
# =============================================================================

DISABLED_SCALER = -1.0  # Sentinel for "no block-compression rescale"

# =============================================================================
# Decorrelation Constants
# =============================================================================

DEGENERATE_RANGE_TOLERANCE = 1e-6  # Axis ranges below this share of the largest are dropped
