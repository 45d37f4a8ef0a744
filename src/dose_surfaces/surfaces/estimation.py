"""
Surface sampling and selection.

Provides helpers to derive reduced surface models from a mesh and to pick
one concrete surface model by name:
  - Central-axis sampling of a mesh at a set of gantry angles
  - LinearSurface construction from those samples
  - Name-based construction of any surface model
"""

from __future__ import annotations

import logging

import numpy as np
from typing import Literal

from dose_surfaces.config import DEFAULT_SAD, GantryPosition
from dose_surfaces.errors import ConfigurationError
from dose_surfaces.surfaces.base import ExternalSurface
from dose_surfaces.surfaces.constant import ConstantSurface
from dose_surfaces.surfaces.cylindrical import CylindricalSurface
from dose_surfaces.surfaces.linear import LinearSurface
from dose_surfaces.surfaces.mesh import MeshSurface
from dose_surfaces.surfaces.plane import PlaneSurface

logger = logging.getLogger(__name__)


def sample_surface(
    mesh_surface: MeshSurface,
    angles:       np.ndarray,
    sad:          float = DEFAULT_SAD,
    isocenter:    np.ndarray = (0.0, 0.0, 0.0),
) -> tuple[np.ndarray, np.ndarray]:
    """Sample entry points and normals along the central axis.

    For each gantry angle, the ray from the source to the isocenter is
    cast against the mesh.

    Parameters
    ----------
    mesh_surface : MeshSurface
        Exact surface to sample.
    angles : np.ndarray, shape (k,)
        Gantry angles in radians.
    sad : float
        Source-axis distance.
    isocenter : array-like, shape (3,)
        Gantry rotation center.

    Returns
    -------
    points : np.ndarray, shape (k, 3)
        Entry point of each central axis.
    normals : np.ndarray, shape (k, 3)
        Unit normal of the face hit, oriented against the beam.

    Raises
    ------
    NoIntersectionError
        If a central axis misses the mesh.
    """
    angles    = np.asarray(angles, dtype=np.float64).ravel()
    isocenter = tuple(float(c) for c in isocenter)

    points  = np.zeros((len(angles), 3), dtype=np.float64)
    normals = np.zeros((len(angles), 3), dtype=np.float64)

    for i, phi in enumerate(angles):
        gantry    = GantryPosition(gantry_angle=phi, sad=sad, isocenter=isocenter)
        source    = gantry.position()
        direction = gantry.central_axis_direction()

        t, face = mesh_surface.intersect(np.asarray(isocenter), source)
        n = mesh_surface.face_normal(face)
        if np.dot(n, direction) > 0:
            n = -n

        points[i]  = source + t * direction
        normals[i] = n

    logger.debug("Sampled %d central-axis entry points", len(angles))
    return points, normals


def linear_surface_from_mesh(
    mesh_surface: MeshSurface,
    angles:       np.ndarray,
    sad:          float = DEFAULT_SAD,
    isocenter:    np.ndarray = (0.0, 0.0, 0.0),
) -> LinearSurface:
    """Build a LinearSurface from central-axis samples of a mesh.

    Parameters
    ----------
    mesh_surface : MeshSurface
        Exact surface to sample.
    angles : np.ndarray
        Gantry angles in radians, strictly increasing.
    sad : float
        Source-axis distance.
    isocenter : array-like, shape (3,)
        Gantry rotation center.

    Returns
    -------
    LinearSurface
    """
    points, normals = sample_surface(mesh_surface, angles, sad=sad, isocenter=isocenter)
    return LinearSurface(angles, points, normals)


def create_surface(
    geometry: Literal["constant", "plane", "mesh", "cylindrical", "linear"],
    **kwargs,
) -> ExternalSurface:
    """Construct one concrete surface model by name.

    Parameters
    ----------
    geometry : str
        'constant', 'plane', 'mesh', 'cylindrical' or 'linear'.
    **kwargs :
        Arguments passed to the surface constructor.

    Returns
    -------
    ExternalSurface
    """
    surfaces = {
        "constant":    ConstantSurface,
        "plane":       PlaneSurface,
        "mesh":        MeshSurface,
        "cylindrical": CylindricalSurface,
        "linear":      LinearSurface,
    }
    if geometry not in surfaces:
        raise ConfigurationError(
            f"Unknown surface geometry '{geometry}', expected one of {sorted(surfaces)}"
        )
    return surfaces[geometry](**kwargs)
