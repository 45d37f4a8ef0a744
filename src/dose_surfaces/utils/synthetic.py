"""
Synthetic phantom meshes for validation and testing.

Generates closed triangle meshes of simple phantoms (box, cylinder,
ellipsoid) whose SSD is known analytically or to within the facet size.
This module is used to validate the surface models without requiring
patient contours.

All meshes use counter-clockwise winding seen from outside, so face
normals point outward.
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass

from dose_surfaces.surfaces.mesh import TriangleMesh


@dataclass
class Phantom:
    """Named phantom mesh.

    Parameters
    ----------
    mesh : TriangleMesh
        Closed triangulated surface.
    name : str
        Optional label.
    """

    mesh: TriangleMesh
    name: str = ""


def box_mesh(
    half_size: tuple[float, float, float] = (100.0, 100.0, 100.0),
    center: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> TriangleMesh:
    """Axis-aligned box made of 12 triangles.

    Parameters
    ----------
    half_size : tuple
        Half-extent along x, y and z.
    center : tuple
        Box center.

    Returns
    -------
    TriangleMesh
    """
    hx, hy, hz = half_size
    corners = np.array([
        [-hx, -hy, -hz], [ hx, -hy, -hz], [ hx,  hy, -hz], [-hx,  hy, -hz],
        [-hx, -hy,  hz], [ hx, -hy,  hz], [ hx,  hy,  hz], [-hx,  hy,  hz],
    ]) + np.asarray(center, dtype=np.float64)

    faces = np.array([
        [0, 2, 1], [0, 3, 2],  # -z
        [4, 5, 6], [4, 6, 7],  # +z
        [0, 1, 5], [0, 5, 4],  # -y
        [3, 7, 6], [3, 6, 2],  # +y
        [0, 4, 7], [0, 7, 3],  # -x
        [1, 2, 6], [1, 6, 5],  # +x
    ])
    return TriangleMesh(corners, faces)


def cylinder_mesh(
    radius: float = 100.0,
    length: float = 200.0,
    n_segments: int = 360,
    center: tuple[float, float, float] = (0.0, 0.0, 0.0),
    capped: bool = True,
) -> TriangleMesh:
    """Capped polygonal cylinder along the y axis.

    Vertices sit at azimuths φ_k = 2πk/n_segments with
    (x, z) = R·(sin φ, cos φ), matching the gantry-angle convention.

    Parameters
    ----------
    radius : float
        Circumradius of the polygon.
    length : float
        Extent along y.
    n_segments : int
        Number of side facets.
    center : tuple
        Cylinder center.
    capped : bool
        Close the ends with triangle fans.

    Returns
    -------
    TriangleMesh
    """
    phi = 2.0 * np.pi * np.arange(n_segments) / n_segments
    x   = radius * np.sin(phi)
    z   = radius * np.cos(phi)
    h   = length / 2.0

    bottom = np.column_stack([x, np.full(n_segments, -h), z])
    top    = np.column_stack([x, np.full(n_segments,  h), z])
    vertices = [bottom, top]

    k  = np.arange(n_segments)
    k1 = (k + 1) % n_segments
    b, t = k, k + n_segments
    b1, t1 = k1, k1 + n_segments

    # Side quads split in two; outward for φ increasing from +z toward +x
    faces = [
        np.column_stack([b, b1, t1]),
        np.column_stack([b, t1, t]),
    ]

    if capped:
        c_bottom = 2 * n_segments
        c_top    = c_bottom + 1
        vertices.append(np.array([[0.0, -h, 0.0], [0.0, h, 0.0]]))
        faces.append(np.column_stack([np.full(n_segments, c_bottom), b1, b]))
        faces.append(np.column_stack([np.full(n_segments, c_top), t, t1]))

    vertices = np.vstack(vertices) + np.asarray(center, dtype=np.float64)
    return TriangleMesh(vertices, np.vstack(faces))


def ellipsoid_mesh(
    semi_axes: tuple[float, float, float] = (150.0, 100.0, 100.0),
    n_theta: int = 90,
    n_phi: int = 180,
    center: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> TriangleMesh:
    """UV-sampled ellipsoid.

    Parameters
    ----------
    semi_axes : tuple
        Semi-axes along x, y and z.
    n_theta : int
        Number of latitude bands (pole to pole, about the y axis).
    n_phi : int
        Number of longitude segments.
    center : tuple
        Ellipsoid center.

    Returns
    -------
    TriangleMesh
    """
    a, b, c = semi_axes
    theta = np.pi * np.arange(1, n_theta) / n_theta          # interior rings
    phi   = 2.0 * np.pi * np.arange(n_phi) / n_phi
    T, P  = np.meshgrid(theta, phi, indexing="ij")

    rings = np.column_stack([
        (a * np.sin(T) * np.sin(P)).ravel(),
        (-b * np.cos(T)).ravel(),
        (c * np.sin(T) * np.cos(P)).ravel(),
    ])
    south = np.array([[0.0, -b, 0.0]])
    north = np.array([[0.0,  b, 0.0]])
    vertices = np.vstack([rings, south, north]) + np.asarray(center, dtype=np.float64)

    n_rings = n_theta - 1
    i_south = len(rings)
    i_north = i_south + 1

    def idx(ring: np.ndarray, seg: np.ndarray) -> np.ndarray:
        return ring * n_phi + (seg % n_phi)

    seg = np.arange(n_phi)
    faces = [np.column_stack([np.full(n_phi, i_south), idx(0, seg + 1), idx(0, seg)])]
    for r in range(n_rings - 1):
        faces.append(np.column_stack([idx(r, seg), idx(r, seg + 1), idx(r + 1, seg + 1)]))
        faces.append(np.column_stack([idx(r, seg), idx(r + 1, seg + 1), idx(r + 1, seg)]))
    last = n_rings - 1
    faces.append(np.column_stack([np.full(n_phi, i_north), idx(last, seg), idx(last, seg + 1)]))

    return TriangleMesh(vertices, np.vstack(faces))


def water_phantom(size: float = 300.0) -> Phantom:
    """Cubic water phantom centered on the isocenter."""
    h = size / 2.0
    return Phantom(mesh=box_mesh((h, h, h)), name=f"Water phantom {size:.0f}")
