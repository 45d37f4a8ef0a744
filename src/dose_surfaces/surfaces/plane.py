"""
Flat (planar) surface geometry.

Models a flat phantom surface perpendicular to the beam central axis at a
distance SSD₀ from the source. An off-axis ray making an angle γ with the
central axis crosses the plane after

    SSD = SSD₀ / cos(γ)

This is the simplest geometry and admits the "3-4-5 triangle" check: a
ray offset by ρ = 300 at a plane with SSD₀ = 400 gives SSD = 500.
"""

from __future__ import annotations

import numpy as np
from typing import Optional

from dose_surfaces.config import EPS_PARALLEL
from dose_surfaces.errors import ConfigurationError, NoIntersectionError
from dose_surfaces.raytracing.cpu_ref import ray_direction
from dose_surfaces.surfaces.base import ExternalSurface


class PlaneSurface(ExternalSurface):
    """Infinite plane perpendicular to the beam central axis.

    Parameters
    ----------
    ssd0 : float
        Source-Surface Distance along the central axis.
    axis : array-like, shape (3,), optional
        Fixed plane normal. Its sign is irrelevant: it is oriented from the
        source toward the isocenter at every query, so the source always
        lies on the far side of the plane. If None, the central
        axis follows the source: it is the direction from the source to
        the isocenter. SSD then depends only on the angle between the ray
        and that axis, so a common rotation of source and point about the
        isocenter leaves it unchanged.
    isocenter : array-like, shape (3,)
        Point the central axis passes through; also orients a fixed ``axis``.
    """

    def __init__(
        self,
        ssd0: float,
        axis: Optional[np.ndarray] = None,
        isocenter: np.ndarray = (0.0, 0.0, 0.0),
    ) -> None:
        if not (np.isfinite(ssd0) and ssd0 > 0):
            raise ConfigurationError(f"Central-axis SSD must be positive, got {ssd0}")
        self.ssd0      = float(ssd0)
        self.isocenter = np.array(isocenter, dtype=np.float64)
        self.isocenter.setflags(write=False)

        if axis is None:
            self.axis = None
        else:
            axis = np.asarray(axis, dtype=np.float64)
            norm = np.linalg.norm(axis)
            if norm == 0.0:
                raise ConfigurationError("Plane axis must be a non-zero vector")
            self.axis = axis / norm
            self.axis.setflags(write=False)

    def central_axis(self, source: np.ndarray) -> np.ndarray:
        """Unit beam central-axis direction for a given source."""
        if self.axis is not None:
            toward = np.dot(self.axis, self.isocenter - np.asarray(source, dtype=np.float64))
            return -self.axis if toward < 0 else self.axis
        direction, _ = ray_direction(self.isocenter, source)
        return direction

    def cos_gamma(self, point: np.ndarray, source: np.ndarray) -> float:
        """cos of the angle between the source→point ray and the central axis."""
        direction, _ = ray_direction(point, source)
        return float(np.dot(direction, self.central_axis(source)))

    def get_ssd(self, point: np.ndarray, source: np.ndarray) -> float:
        """SSD = SSD₀ / cos(γ)

        Raises
        ------
        NoIntersectionError
            If the ray runs parallel to, or away from, the plane.
        """
        cos_g = self.cos_gamma(point, source)
        if cos_g <= EPS_PARALLEL:
            raise NoIntersectionError(
                f"Ray from {source} through {point} never reaches the plane "
                f"(cos γ = {cos_g:.3e})"
            )
        return self.ssd0 / cos_g

    def __repr__(self) -> str:
        axis = "source→isocenter" if self.axis is None else np.array2string(self.axis, precision=3)
        return f"PlaneSurface(ssd0={self.ssd0:.1f}, axis={axis})"
