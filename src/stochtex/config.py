"""
Precomputation configuration.

Provides the options a caller can set per pipeline run. The target Gaussian
and LUT layout are fixed constants (see stochtex.constants).
"""

from dataclasses import dataclass

from stochtex.constants import JACOBI_MAX_SWEEPS, JACOBI_MAX_SWEEPS_LIMIT


@dataclass(frozen=True)
class PrecomputeConfig:
    """
    Configuration for stochastic texturing precomputation.

    Attributes:
        block_compressed: Output textures are stored block compressed (DXT/BC);
            enables compression rescaling of decorrelated maps
        prefilter: Fill LUT rows above level 0 (mip-aware prefiltering)
        sort_axes: Order decorrelated axes by descending variance instead of
            eigen solver order
        skip_decorrelation_on_failure: If the eigen solver does not converge,
            process raw RGB instead of raising
        max_jacobi_sweeps: Sweep budget of the eigen solver
    """

    block_compressed: bool = False
    prefilter: bool = True
    sort_axes: bool = False
    skip_decorrelation_on_failure: bool = False
    max_jacobi_sweeps: int = JACOBI_MAX_SWEEPS

    def __post_init__(self):
        """Validate configuration parameters."""
        for name in ("block_compressed", "prefilter", "sort_axes", "skip_decorrelation_on_failure"):
            if not isinstance(getattr(self, name), bool):
                raise TypeError(f"{name} must be a bool, got {type(getattr(self, name)).__name__}")

        if isinstance(self.max_jacobi_sweeps, bool) or not isinstance(self.max_jacobi_sweeps, int):
            raise TypeError("max_jacobi_sweeps must be an integer")
        if not 1 <= self.max_jacobi_sweeps <= JACOBI_MAX_SWEEPS_LIMIT:
            raise ValueError(
                f"max_jacobi_sweeps must be between 1 and {JACOBI_MAX_SWEEPS_LIMIT}"
            )
