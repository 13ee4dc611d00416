"""
Look-up table prefiltering module.

Extends the inverse histogram transform into one row per mip level, each
blurred by the subpixel variance of the Gaussianized texture at that level.
"""

from stochtex.lut.prefilter import (
    compute_level_variances,
    compute_subpixel_variance,
    filter_lut_row,
    prefilter_lut,
)

__all__ = [
    "compute_level_variances",
    "compute_subpixel_variance",
    "filter_lut_row",
    "prefilter_lut",
]
