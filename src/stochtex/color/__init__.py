"""
Color space decorrelation module.

Provides the symmetric 3x3 Jacobi eigen solver and the PCA color space used
to decorrelate RGB textures before per-channel histogram transforms.
"""

from stochtex.color.decorrelate import (
    ColorBasis,
    compute_covariance,
    compute_principal_axes,
    decorrelate,
)
from stochtex.color.eigen import ConvergenceError, diagonalize, sort_eigenpairs

__all__ = [
    "ColorBasis",
    "ConvergenceError",
    "compute_covariance",
    "compute_principal_axes",
    "decorrelate",
    "diagonalize",
    "sort_eigenpairs",
]
