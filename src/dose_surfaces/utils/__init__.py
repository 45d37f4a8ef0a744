"""
utils: utility helpers for the dose_surfaces package.

Submodules
----------
synthetic       Synthetic phantom meshes.
visualization   Radius grid, contour, and SSD profile plotting.
"""

from . import synthetic, visualization

__all__ = ["synthetic", "visualization"]
