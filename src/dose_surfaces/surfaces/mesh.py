"""
Triangulated (mesh) surface geometry.

Models an arbitrary closed external contour as a triangle soup, typically
parsed from a PLY/STL structure by the caller. SSD is computed exactly by
casting the source→point ray against every face and keeping the nearest
forward hit: the first crossing of the body surface seen from the source.

Construction stores the vertices and faces as flat arrays plus the
per-face (v0, edge1, edge2) arrays consumed by the ray caster; no
acceleration structure is built. CylindricalSurface exists to amortize the
per-query cost over many queries.
"""

from __future__ import annotations

import logging

import numpy as np
from dataclasses import dataclass, field

from dose_surfaces.errors import DegenerateConstructionError, NoIntersectionError
from dose_surfaces.raytracing.cpu_ref import cast_rays, intersect_mesh, ray_direction
from dose_surfaces.surfaces.base import ExternalSurface

logger = logging.getLogger(__name__)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class TriangleMesh:
    """Immutable triangle soup.

    Parameters
    ----------
    vertices : np.ndarray, shape (N, 3)
        Vertex coordinates.
    faces : np.ndarray, shape (F, 3)
        Vertex indices of each triangle. Counter-clockwise winding seen
        from outside gives outward normals.
    """

    vertices: np.ndarray
    faces:    np.ndarray
    v0:       np.ndarray = field(init=False, repr=False)
    edge1:    np.ndarray = field(init=False, repr=False)
    edge2:    np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        vertices = np.array(self.vertices, dtype=np.float64)
        faces    = np.array(self.faces)

        if vertices.ndim != 2 or vertices.shape[1] != 3:
            raise DegenerateConstructionError(
                f"vertices must have shape (N, 3), got {vertices.shape}"
            )
        if faces.size == 0:
            raise DegenerateConstructionError("Mesh has no faces")
        if faces.ndim != 2 or faces.shape[1] != 3:
            raise DegenerateConstructionError(
                f"faces must have shape (F, 3), got {faces.shape}"
            )
        if not np.issubdtype(faces.dtype, np.integer):
            raise DegenerateConstructionError("faces must hold integer vertex indices")
        faces = faces.astype(np.int64)
        if faces.min() < 0 or faces.max() >= len(vertices):
            raise DegenerateConstructionError("Face index out of range of vertices")
        if not np.all(np.isfinite(vertices)):
            raise DegenerateConstructionError("Mesh vertices must be finite")

        tri = vertices[faces]
        # Frozen dataclass: bypass __setattr__ for the derived arrays
        object.__setattr__(self, "vertices", _readonly(vertices))
        object.__setattr__(self, "faces",    _readonly(faces))
        object.__setattr__(self, "v0",       _readonly(np.ascontiguousarray(tri[:, 0])))
        object.__setattr__(self, "edge1",    _readonly(np.ascontiguousarray(tri[:, 1] - tri[:, 0])))
        object.__setattr__(self, "edge2",    _readonly(np.ascontiguousarray(tri[:, 2] - tri[:, 0])))

    @classmethod
    def from_triangles(cls, triangles: np.ndarray) -> "TriangleMesh":
        """Create a mesh from a raw soup of shape (F, 3, 3).

        Vertices are not merged; each face gets its own three vertices.
        """
        triangles = np.asarray(triangles, dtype=np.float64)
        if triangles.ndim != 3 or triangles.shape[1:] != (3, 3):
            raise DegenerateConstructionError(
                f"triangles must have shape (F, 3, 3), got {triangles.shape}"
            )
        n_faces = len(triangles)
        return cls(
            vertices=triangles.reshape(-1, 3),
            faces=np.arange(3 * n_faces).reshape(n_faces, 3),
        )

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Axis-aligned bounding box (min corner, max corner)."""
        return self.vertices.min(axis=0), self.vertices.max(axis=0)

    def face_normals(self) -> np.ndarray:
        """Unit normals of all faces, shape (F, 3)."""
        n    = np.cross(self.edge1, self.edge2)
        norm = np.linalg.norm(n, axis=1, keepdims=True)
        return n / np.where(norm > 0, norm, 1.0)


class MeshSurface(ExternalSurface):
    """Exact ray-cast SSD against a triangulated external contour.

    Parameters
    ----------
    mesh : TriangleMesh or tuple
        The triangle soup, or a ``(vertices, faces)`` pair.
    """

    def __init__(self, mesh: TriangleMesh | tuple[np.ndarray, np.ndarray]) -> None:
        if not isinstance(mesh, TriangleMesh):
            vertices, faces = mesh
            mesh = TriangleMesh(vertices, faces)
        self.mesh = mesh
        logger.debug("MeshSurface with %d faces, %d vertices", mesh.n_faces, mesh.n_vertices)

    def intersect(self, point: np.ndarray, source: np.ndarray) -> tuple[float, int]:
        """Nearest forward hit of the source→point ray.

        Returns
        -------
        t : float
            Distance from the source to the entry point.
        face : int
            Index of the face hit.

        Raises
        ------
        NoIntersectionError
            If the ray hits no face.
        """
        direction, _ = ray_direction(point, source)
        source = np.asarray(source, dtype=np.float64)
        t = intersect_mesh(source, direction, self.mesh.v0, self.mesh.edge1, self.mesh.edge2)

        if np.all(np.isnan(t)):
            raise NoIntersectionError(
                f"Ray from {source} through {point} does not intersect the mesh"
            )
        face = int(np.nanargmin(t))
        return float(t[face]), face

    def get_ssd(self, point: np.ndarray, source: np.ndarray) -> float:
        t, _ = self.intersect(point, source)
        return t

    def get_ssd_many(self, points: np.ndarray, source: np.ndarray) -> np.ndarray:
        """Batched SSD; raises NoIntersectionError if any ray misses."""
        points  = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        source  = np.asarray(source, dtype=np.float64)
        delta   = points - source
        lengths = np.linalg.norm(delta, axis=1)
        if np.any(lengths == 0.0):
            # Delegate to the single-point path for its error message
            ray_direction(points[np.argmin(lengths)], source)

        t, _ = cast_rays(
            np.broadcast_to(source, points.shape),
            delta / lengths[:, np.newaxis],
            self.mesh.v0, self.mesh.edge1, self.mesh.edge2,
            mode="nearest",
        )
        missed = np.isnan(t)
        if np.any(missed):
            raise NoIntersectionError(
                f"{int(missed.sum())} of {len(points)} rays do not intersect the mesh"
            )
        return t

    def entry_point(self, point: np.ndarray, source: np.ndarray) -> np.ndarray:
        """Coordinates of the surface entry point along the ray."""
        direction, _ = ray_direction(point, source)
        return np.asarray(source, dtype=np.float64) + self.get_ssd(point, source) * direction

    def face_normal(self, face: int) -> np.ndarray:
        """Unit normal of one face (outward for counter-clockwise winding)."""
        n = np.cross(self.mesh.edge1[face], self.mesh.edge2[face])
        return n / np.linalg.norm(n)

    def __repr__(self) -> str:
        lo, hi = self.mesh.bounds()
        return (
            f"MeshSurface(n_faces={self.mesh.n_faces}, "
            f"bounds=[{np.array2string(lo, precision=1)}, {np.array2string(hi, precision=1)}])"
        )
