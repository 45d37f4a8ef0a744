"""
CPU reference implementation of the ray geometry.

Provides pure NumPy ray parameterization, ray-plane and ray-triangle
intersection, plus a batched ray-mesh caster. This serves as ground truth
for validating the GPU (Taichi) kernels and is the default backend of
every surface model.

Conventions
-----------
A ray from ``source`` through ``point`` is

    R(λ) = source + λ·(point - source),   λ ≥ 0,

with λ = 1 at ``point``. Intersection routines take a *unit* direction, so
the returned parameter ``t`` is a distance: t = λ·|point - source|.

Ray-triangle tests use the Möller-Trumbore algorithm with inclusive
barycentric bounds widened by ``EPS_BARY``. A ray through an edge shared by
two faces therefore hits both with the same ``t``; the result does not
depend on which face is tested first.

Reference
---------
Möller, T. & Trumbore, B. (1997). "Fast, minimum storage ray-triangle
intersection." Journal of Graphics Tools, 2(1), pp. 21-28.
"""

from __future__ import annotations

import numpy as np
from typing import Literal, Optional

from dose_surfaces.config import EPS_BARY, EPS_PARALLEL, EPS_T
from dose_surfaces.errors import InvalidRayError

# Rays per batch in cast_rays; bounds the (rays × faces) temporaries
CHUNK_SIZE = 256


def ray_direction(point: np.ndarray, source: np.ndarray) -> tuple[np.ndarray, float]:
    """Unit direction and length of the ray from ``source`` to ``point``.

    Raises
    ------
    InvalidRayError
        If ``point`` coincides with ``source``.
    """
    delta  = np.asarray(point, dtype=np.float64) - np.asarray(source, dtype=np.float64)
    length = float(np.linalg.norm(delta))
    if length == 0.0 or not np.isfinite(length):
        raise InvalidRayError(f"Point {point} does not define a ray from source {source}")
    return delta / length, length


def ray_point(source: np.ndarray, point: np.ndarray, lam: float) -> np.ndarray:
    """Evaluate R(λ) = source + λ·(point - source)."""
    source = np.asarray(source, dtype=np.float64)
    return source + lam * (np.asarray(point, dtype=np.float64) - source)


def intersect_plane(
    origin:       np.ndarray,
    direction:    np.ndarray,
    plane_point:  np.ndarray,
    plane_normal: np.ndarray,
) -> Optional[float]:
    """Intersect a ray with the plane through ``plane_point``.

    Parameters
    ----------
    origin : np.ndarray, shape (3,)
        Ray origin.
    direction : np.ndarray, shape (3,)
        Unit ray direction.
    plane_point : np.ndarray, shape (3,)
        Any point on the plane.
    plane_normal : np.ndarray, shape (3,)
        Plane normal (need not be unit length, sign irrelevant).

    Returns
    -------
    t : float or None
        Distance along the ray, or None if the ray is parallel to the
        plane or the plane lies behind the origin.
    """
    n      = np.asarray(plane_normal, dtype=np.float64)
    n_norm = np.linalg.norm(n)
    if n_norm == 0.0:
        return None
    n = n / n_norm

    denom = float(np.dot(direction, n))
    if abs(denom) < EPS_PARALLEL:
        return None

    t = float(np.dot(np.asarray(plane_point, dtype=np.float64) - origin, n)) / denom
    if t <= EPS_T:
        return None
    return t


def intersect_triangle(
    origin:    np.ndarray,
    direction: np.ndarray,
    v0:        np.ndarray,
    v1:        np.ndarray,
    v2:        np.ndarray,
) -> Optional[float]:
    """Möller-Trumbore test of a single ray against one triangle.

    Returns
    -------
    t : float or None
        Distance to the hit, or None if the ray misses.
    """
    t = intersect_mesh(
        np.asarray(origin, dtype=np.float64),
        np.asarray(direction, dtype=np.float64),
        np.asarray(v0, dtype=np.float64)[np.newaxis, :],
        (np.asarray(v1, dtype=np.float64) - v0)[np.newaxis, :],
        (np.asarray(v2, dtype=np.float64) - v0)[np.newaxis, :],
    )[0]
    return None if np.isnan(t) else float(t)


def intersect_mesh(
    origin:    np.ndarray,
    direction: np.ndarray,
    v0:        np.ndarray,
    edge1:     np.ndarray,
    edge2:     np.ndarray,
) -> np.ndarray:
    """Intersect one ray with every face of a triangle soup.

    Parameters
    ----------
    origin, direction : np.ndarray, shape (3,)
        Ray origin and unit direction.
    v0, edge1, edge2 : np.ndarray, shape (F, 3)
        First vertex of each face and its two edge vectors.

    Returns
    -------
    t : np.ndarray, shape (F,)
        Forward hit distance per face, NaN where the face is missed.
    """
    return _intersect_batch(
        origin[np.newaxis, :], direction[np.newaxis, :], v0, edge1, edge2
    )[0]


def _intersect_batch(
    origins:    np.ndarray,
    directions: np.ndarray,
    v0:         np.ndarray,
    edge1:      np.ndarray,
    edge2:      np.ndarray,
) -> np.ndarray:
    """Möller-Trumbore for R rays × F faces, returns t of shape (R, F)."""
    d = directions[:, np.newaxis, :]                    # (R, 1, 3)
    pvec = np.cross(d, edge2[np.newaxis, :, :])         # (R, F, 3)
    det  = np.einsum("fk,rfk->rf", edge1, pvec)

    valid   = np.abs(det) > EPS_PARALLEL
    inv_det = np.divide(1.0, det, out=np.zeros_like(det), where=valid)

    tvec = origins[:, np.newaxis, :] - v0[np.newaxis, :, :]
    u    = np.einsum("rfk,rfk->rf", tvec, pvec) * inv_det
    valid &= (u >= -EPS_BARY) & (u <= 1.0 + EPS_BARY)

    qvec = np.cross(tvec, edge1[np.newaxis, :, :])
    v    = np.einsum("rfk,rfk->rf", qvec, np.broadcast_to(d, qvec.shape)) * inv_det
    valid &= (v >= -EPS_BARY) & (u + v <= 1.0 + EPS_BARY)

    t = np.einsum("fk,rfk->rf", edge2, qvec) * inv_det
    valid &= t > EPS_T

    return np.where(valid, t, np.nan)


def cast_rays(
    origins:    np.ndarray,
    directions: np.ndarray,
    v0:         np.ndarray,
    edge1:      np.ndarray,
    edge2:      np.ndarray,
    mode:       Literal["nearest", "farthest"] = "nearest",
    chunk_size: int = CHUNK_SIZE,
) -> tuple[np.ndarray, np.ndarray]:
    """Cast many rays against a triangle soup.

    Parameters
    ----------
    origins, directions : np.ndarray, shape (R, 3)
        Ray origins and unit directions.
    v0, edge1, edge2 : np.ndarray, shape (F, 3)
        Face data as in :func:`intersect_mesh`.
    mode : str
        'nearest' keeps the first hit along each ray (surface entry),
        'farthest' keeps the last one (outer contour seen from inside).
    chunk_size : int
        Number of rays processed per vectorized batch.

    Returns
    -------
    t : np.ndarray, shape (R,)
        Hit distance per ray, NaN for rays that miss every face.
    face : np.ndarray, shape (R,)
        Index of the face hit, -1 for misses.
    """
    if mode not in ("nearest", "farthest"):
        raise ValueError(f"Unknown mode '{mode}'")

    origins    = np.ascontiguousarray(origins,    dtype=np.float64).reshape(-1, 3)
    directions = np.ascontiguousarray(directions, dtype=np.float64).reshape(-1, 3)
    n_rays     = len(origins)

    t_result    = np.full(n_rays, np.nan, dtype=np.float64)
    face_result = np.full(n_rays, -1, dtype=np.int64)

    for start in range(0, n_rays, chunk_size):
        stop = min(start + chunk_size, n_rays)
        t = _intersect_batch(origins[start:stop], directions[start:stop], v0, edge1, edge2)

        hit = ~np.all(np.isnan(t), axis=1)
        if not np.any(hit):
            continue

        # nanargmin/nanargmax raise on all-NaN rows, so only reduce the hits
        if mode == "nearest":
            best = np.nanargmin(t[hit], axis=1)
        else:
            best = np.nanargmax(t[hit], axis=1)

        rows = np.arange(start, stop)[hit]
        t_result[rows]    = t[hit][np.arange(len(best)), best]
        face_result[rows] = best

    return t_result, face_result
