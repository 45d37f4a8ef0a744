"""
Taichi GPU kernels for batched ray-mesh intersection.

Implements the Möller-Trumbore ray-triangle test using Taichi lang for
massively parallel execution. Used to precompute the radius grid of a
CylindricalSurface, whose cell raycasts are independent of each other.

Architecture
- @ti.func helper: _intersect_triangle
- @ti.kernel cast_rays_kernel: parallel loop over rays, serial loop over faces
- Python wrapper: cast_rays_gpu(), converts NumPy arrays and launches the kernel

All intermediate computations use float64 for precision.
"""

import logging

import numpy as np
from typing import Literal, Optional

from dose_surfaces.config import EPS_BARY, EPS_PARALLEL, EPS_T

try:
    import taichi as ti
    _TAICHI_AVAILABLE = True
except ImportError:  # pragma: no cover
    _TAICHI_AVAILABLE = False
    ti = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

# — Taichi initialization ————————————————————————————————————————————————————
# Lazily initialized; call ensure_initialized() before any kernel use.
_ti_initialized = False

MISS = -1.0  # Sentinel distance for rays that hit no face


def is_available() -> bool:
    """Whether the Taichi runtime can be imported."""
    return _TAICHI_AVAILABLE


def ensure_initialized(arch: Optional[str] = None) -> None:
    """Initialize Taichi runtime if not already done.

    Parameters
    ----------
    arch : str, optional
        Architecture: 'gpu', 'cuda', 'vulkan', 'cpu'.
        Default: try GPU, fall back to CPU.

    Raises
    ------
    RuntimeError
        If Taichi is not installed.
    """
    global _ti_initialized
    if _ti_initialized:
        return
    if not _TAICHI_AVAILABLE:
        raise RuntimeError(
            "The GPU backend requires taichi (pip install 'dose-surfaces[gpu]')"
        )

    archs = {
        "cuda":   ti.cuda,
        "vulkan": ti.vulkan,
        "cpu":    ti.cpu,
    }
    ti.init(arch=archs.get(arch, ti.gpu), default_fp=ti.f64)
    logger.debug("Taichi initialized (arch=%s)", arch or "gpu")

    _ti_initialized = True


# ——————————————————————————————————————————————————————————————————————————————
# Taichi device functions (@ti.func)
# ——————————————————————————————————————————————————————————————————————————————

if _TAICHI_AVAILABLE:

    @ti.func
    def _intersect_triangle(o, d, a, e1, e2):
        """Möller-Trumbore: forward hit distance, or MISS."""
        t = MISS
        p   = d.cross(e2)
        det = e1.dot(p)
        if ti.abs(det) > EPS_PARALLEL:
            inv = 1.0 / det
            s = o - a
            u = s.dot(p) * inv
            if u >= -EPS_BARY and u <= 1.0 + EPS_BARY:
                q = s.cross(e1)
                v = d.dot(q) * inv
                if v >= -EPS_BARY and u + v <= 1.0 + EPS_BARY:
                    t_hit = e2.dot(q) * inv
                    if t_hit > EPS_T:
                        t = t_hit
        return t

    # ——————————————————————————————————————————————————————————————————————————
    # Main GPU kernel
    # ——————————————————————————————————————————————————————————————————————————

    @ti.kernel
    def cast_rays_kernel(
        origins:     ti.types.ndarray(),
        directions:  ti.types.ndarray(),
        v0:          ti.types.ndarray(),
        edge1:       ti.types.ndarray(),
        edge2:       ti.types.ndarray(),
        n_rays:      int,
        n_faces:     int,
        farthest:    int,
        t_result:    ti.types.ndarray(),
        face_result: ti.types.ndarray(),
    ):
        """GPU kernel: nearest or farthest hit of every ray.

        Each thread handles one ray and loops over all faces serially.
        The outer for loop is automatically parallelized by Taichi.
        """
        for r in range(n_rays):
            o = ti.Vector([origins[r, 0],    origins[r, 1],    origins[r, 2]])
            d = ti.Vector([directions[r, 0], directions[r, 1], directions[r, 2]])

            best_t    = MISS
            best_face = -1

            for f in range(n_faces):
                a  = ti.Vector([v0[f, 0],    v0[f, 1],    v0[f, 2]])
                e1 = ti.Vector([edge1[f, 0], edge1[f, 1], edge1[f, 2]])
                e2 = ti.Vector([edge2[f, 0], edge2[f, 1], edge2[f, 2]])

                t = _intersect_triangle(o, d, a, e1, e2)
                if t > 0.0:
                    better = False
                    if best_face < 0:
                        better = True
                    elif farthest == 1 and t > best_t:
                        better = True
                    elif farthest == 0 and t < best_t:
                        better = True
                    if better:
                        best_t    = t
                        best_face = f

            t_result[r]    = best_t
            face_result[r] = best_face


# ——————————————————————————————————————————————————————————————————————————————
# Python wrapper functions
# ——————————————————————————————————————————————————————————————————————————————

def cast_rays_gpu(
    origins:    np.ndarray,
    directions: np.ndarray,
    v0:         np.ndarray,
    edge1:      np.ndarray,
    edge2:      np.ndarray,
    mode:       Literal["nearest", "farthest"] = "nearest",
    arch:       Optional[str] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Cast many rays against a triangle soup on GPU.

    Same contract as :func:`dose_surfaces.raytracing.cpu_ref.cast_rays`.

    Parameters
    ----------
    origins, directions : np.ndarray, shape (R, 3)
        Ray origins and unit directions.
    v0, edge1, edge2 : np.ndarray, shape (F, 3)
        First vertex of each face and its two edge vectors.
    mode : str
        'nearest' or 'farthest' hit per ray.
    arch : str, optional
        Taichi architecture override.

    Returns
    -------
    t : np.ndarray, shape (R,)
        Hit distance per ray, NaN for misses.
    face : np.ndarray, shape (R,)
        Index of the face hit, -1 for misses.
    """
    if mode not in ("nearest", "farthest"):
        raise ValueError(f"Unknown mode '{mode}'")

    ensure_initialized(arch)

    # Prepare contiguous arrays (float64)
    origins    = np.ascontiguousarray(origins,    dtype=np.float64).reshape(-1, 3)
    directions = np.ascontiguousarray(directions, dtype=np.float64).reshape(-1, 3)
    v0         = np.ascontiguousarray(v0,         dtype=np.float64)
    edge1      = np.ascontiguousarray(edge1,      dtype=np.float64)
    edge2      = np.ascontiguousarray(edge2,      dtype=np.float64)

    n_rays  = len(origins)
    n_faces = len(v0)

    t_result    = np.zeros(n_rays, dtype=np.float64)
    face_result = np.zeros(n_rays, dtype=np.int32)

    cast_rays_kernel(
        origins, directions,
        v0, edge1, edge2,
        n_rays, n_faces,
        1 if mode == "farthest" else 0,
        t_result, face_result,
    )

    face_result = face_result.astype(np.int64)
    t_result[face_result < 0] = np.nan
    return t_result, face_result
