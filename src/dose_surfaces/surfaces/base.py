"""
Abstract base class for external surface representations.

All surface classes must implement the ExternalSurface protocol,
answering the two queries every dose algorithm needs: the Source-Surface
Distance (SSD) along the ray from a source through a calculation point,
and the depth of that point past the surface entry.
"""

from __future__ import annotations

import numpy as np
from abc import ABC, abstractmethod

from dose_surfaces.raytracing.cpu_ref import ray_direction


class ExternalSurface(ABC):
    """Abstract interface for patient (or phantom) external surfaces.

    The ray from ``source`` through ``point`` is R(λ) = source +
    λ·(point - source). SSD is the distance from the source to where this
    ray first enters the body, so it is the same for every point along
    the ray (λ > 0). Depth is defined for all subclasses as

        depth = |point - source| - SSD

    which is negative for points outside the body.
    """

    @abstractmethod
    def get_ssd(self, point: np.ndarray, source: np.ndarray) -> float:
        """Source-Surface Distance along the ray from ``source`` to ``point``.

        Parameters
        ----------
        point : array-like, shape (3,)
            Calculation point.
        source : array-like, shape (3,)
            Radiation source position.

        Returns
        -------
        ssd : float
            Distance from the source to the surface entry point.

        Raises
        ------
        NoIntersectionError
            If the ray never enters the surface.
        InvalidRayError
            If ``point`` coincides with ``source``.
        """

    def get_depth(self, point: np.ndarray, source: np.ndarray) -> float:
        """Depth of ``point`` below the surface along the source ray.

        Parameters
        ----------
        point : array-like, shape (3,)
            Calculation point.
        source : array-like, shape (3,)
            Radiation source position.

        Returns
        -------
        depth : float
            |point - source| - SSD.
        """
        _, length = ray_direction(point, source)
        return length - self.get_ssd(point, source)

    def get_ssd_many(self, points: np.ndarray, source: np.ndarray) -> np.ndarray:
        """SSD for many calculation points sharing one source.

        Parameters
        ----------
        points : np.ndarray, shape (N, 3)
        source : array-like, shape (3,)

        Returns
        -------
        ssd : np.ndarray, shape (N,)
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return np.array([self.get_ssd(p, source) for p in points], dtype=np.float64)

    def get_depth_many(self, points: np.ndarray, source: np.ndarray) -> np.ndarray:
        """Depth for many calculation points sharing one source."""
        points  = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        lengths = np.linalg.norm(points - np.asarray(source, dtype=np.float64), axis=1)
        return lengths - self.get_ssd_many(points, source)


def get_ssd(surface: ExternalSurface, point: np.ndarray, source: np.ndarray) -> float:
    """SSD of ``point`` seen from ``source`` through ``surface``."""
    return surface.get_ssd(point, source)


def get_depth(surface: ExternalSurface, point: np.ndarray, source: np.ndarray) -> float:
    """Depth of ``point`` seen from ``source`` through ``surface``."""
    return surface.get_depth(point, source)
