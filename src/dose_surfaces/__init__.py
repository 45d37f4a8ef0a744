"""
Source-Surface Distance and depth computation for external-beam dose engines.

Every surface model answers the same two queries for a calculation point
and a source position:

    get_ssd(surface, point, source)     distance from the source to the body entry
    get_depth(surface, point, source)   |point - source| - SSD
"""

import logging

from dose_surfaces.config import CylinderGrid, GantryPosition
from dose_surfaces.errors import (
    ConfigurationError,
    DegenerateConstructionError,
    InvalidRayError,
    NoIntersectionError,
    SurfaceError,
)
from dose_surfaces.surfaces import (
    ConstantSurface,
    CylindricalSurface,
    ExternalSurface,
    LinearSurface,
    MeshSurface,
    PlaneSurface,
    TriangleMesh,
    get_depth,
    get_ssd,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ConfigurationError",
    "ConstantSurface",
    "CylinderGrid",
    "CylindricalSurface",
    "DegenerateConstructionError",
    "ExternalSurface",
    "GantryPosition",
    "InvalidRayError",
    "LinearSurface",
    "MeshSurface",
    "NoIntersectionError",
    "PlaneSurface",
    "SurfaceError",
    "TriangleMesh",
    "get_depth",
    "get_ssd",
]
