"""
Ray geometry for source-surface distance queries.

Provides the NumPy reference implementation of ray parameterization and
ray-plane / ray-triangle intersection, plus GPU-accelerated (Taichi)
batched ray-mesh casting.
"""

from dose_surfaces.raytracing.cpu_ref import (
    cast_rays,
    intersect_mesh,
    intersect_plane,
    intersect_triangle,
    ray_direction,
    ray_point,
)
from dose_surfaces.raytracing.kernels import cast_rays_gpu

__all__ = [
    "cast_rays",
    "cast_rays_gpu",
    "intersect_mesh",
    "intersect_plane",
    "intersect_triangle",
    "ray_direction",
    "ray_point",
]
