"""
External surface representations for SSD and depth queries.

Provides constant, planar, triangulated-mesh, cylindrical-grid and
angle-interpolated surface models, plus utilities for sampling reduced
models from a mesh.
"""

from dose_surfaces.surfaces.base import ExternalSurface, get_depth, get_ssd
from dose_surfaces.surfaces.constant import ConstantSurface
from dose_surfaces.surfaces.plane import PlaneSurface
from dose_surfaces.surfaces.mesh import MeshSurface, TriangleMesh
from dose_surfaces.surfaces.cylindrical import CylindricalSurface
from dose_surfaces.surfaces.linear import LinearSurface

__all__ = [
    "ExternalSurface",
    "ConstantSurface",
    "PlaneSurface",
    "MeshSurface",
    "TriangleMesh",
    "CylindricalSurface",
    "LinearSurface",
    "get_ssd",
    "get_depth",
]
