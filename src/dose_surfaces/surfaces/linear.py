"""
Linearly interpolated (angle-sampled) surface geometry.

Models a contour known only at a few gantry angles φ_i, each sample giving
a surface point p_i and outward normal n_i (for example where the central
axis enters the patient). For a query source the gantry angle is
recovered from its position, the bracketing samples are interpolated

    p(φ) = (1 - w)·p_i + w·p_{i+1}
    n(φ) = normalize((1 - w)·n_i + w·n_{i+1}),   w = (φ - φ_i)/(φ_{i+1} - φ_i)

and the ray is intersected with the local tangent plane through p(φ) with
normal n(φ).

Gantry angles follow the GantryPosition convention: rotation about the y
axis, φ = atan2(x, z) of the source.
"""

from __future__ import annotations

import numpy as np

from dose_surfaces.config import EPS_PARALLEL
from dose_surfaces.errors import ConfigurationError, NoIntersectionError
from dose_surfaces.raytracing.cpu_ref import intersect_plane, ray_direction
from dose_surfaces.surfaces.base import ExternalSurface

TWO_PI = 2.0 * np.pi


class LinearSurface(ExternalSurface):
    """Tangent planes interpolated between gantry-angle samples.

    Parameters
    ----------
    angles : np.ndarray, shape (k,)
        Gantry angles in radians, strictly increasing.
    points : np.ndarray, shape (k, 3)
        Surface point sampled at each angle.
    normals : np.ndarray, shape (k, 3)
        Outward surface normal at each point (normalized on input).

    Notes
    -----
    A sample set is periodic, covering every gantry angle, when it spans
    exactly 2π (e.g. 0 … 2π, endpoint repeated) or when it has at least
    three samples and the wrap-around gap from angles[-1] back to
    angles[0] + 2π is no larger than its largest interior gap (e.g. 0°,
    90°, 180°, 270°). In the latter case the first sample closes the loop.
    Otherwise angles outside [angles[0], angles[-1]] (modulo 2π) are not
    covered.
    """

    def __init__(self, angles: np.ndarray, points: np.ndarray, normals: np.ndarray) -> None:
        self.angles  = np.array(angles,  dtype=np.float64).ravel()
        self.points  = np.array(points,  dtype=np.float64).reshape(-1, 3)
        self.normals = np.array(normals, dtype=np.float64).reshape(-1, 3)

        k = len(self.angles)
        if k < 2:
            raise ConfigurationError("At least 2 angle samples are required")
        if len(self.points) != k or len(self.normals) != k:
            raise ConfigurationError("angles, points and normals must have the same length")
        if np.any(np.diff(self.angles) <= 0):
            raise ConfigurationError("angles must be strictly increasing")
        if self.angles[-1] - self.angles[0] > TWO_PI + 1e-9:
            raise ConfigurationError("angles must not span more than a full turn")

        norms = np.linalg.norm(self.normals, axis=1)
        if np.any(norms == 0.0):
            raise ConfigurationError("normals must be non-zero vectors")
        self.normals /= norms[:, np.newaxis]

        span   = self.angles[-1] - self.angles[0]
        closed = bool(np.isclose(span, TWO_PI))
        self.periodic = closed or bool(
            k >= 3 and TWO_PI - span <= np.diff(self.angles).max() + 1e-12
        )

        # Interpolation knots; an open periodic set wraps onto its first sample
        self._knots   = self.angles
        self._points  = self.points
        self._normals = self.normals
        if self.periodic and not closed:
            self._knots   = np.append(self.angles, self.angles[0] + TWO_PI)
            self._points  = np.vstack([self.points, self.points[:1]])
            self._normals = np.vstack([self.normals, self.normals[:1]])

        for arr in (self.angles, self.points, self.normals,
                    self._knots, self._points, self._normals):
            arr.setflags(write=False)

    @staticmethod
    def gantry_angle(source: np.ndarray) -> float:
        """Gantry angle of a source position, in [0, 2π)."""
        source = np.asarray(source, dtype=np.float64)
        return float(np.mod(np.arctan2(source[0], source[2]), TWO_PI))

    def _wrap(self, phi: float) -> float:
        """Map an angle into the covered range, or raise."""
        phi0, phi1 = self.angles[0], self.angles[-1]
        if self.periodic:
            return phi0 + np.mod(phi - phi0, TWO_PI)

        for candidate in (phi, phi - TWO_PI, phi + TWO_PI):
            if phi0 - 1e-12 <= candidate <= phi1 + 1e-12:
                return min(max(candidate, phi0), phi1)
        raise NoIntersectionError(
            f"Gantry angle {np.degrees(phi):.2f}° outside sampled range "
            f"[{np.degrees(phi0):.2f}°, {np.degrees(phi1):.2f}°]"
        )

    def tangent_plane(self, phi: float) -> tuple[np.ndarray, np.ndarray]:
        """Interpolated surface point and unit normal at gantry angle φ."""
        phi = self._wrap(phi)

        knots = self._knots
        i = int(np.searchsorted(knots, phi, side="right")) - 1
        i = min(max(i, 0), len(knots) - 2)
        w = (phi - knots[i]) / (knots[i + 1] - knots[i])

        p = (1.0 - w) * self._points[i]  + w * self._points[i + 1]
        n = (1.0 - w) * self._normals[i] + w * self._normals[i + 1]
        norm = np.linalg.norm(n)
        if norm < EPS_PARALLEL:
            raise NoIntersectionError(
                f"Normals cancel at gantry angle {np.degrees(phi):.2f}°"
            )
        return p, n / norm

    def get_ssd(self, point: np.ndarray, source: np.ndarray) -> float:
        """SSD to the interpolated tangent plane.

        Raises
        ------
        NoIntersectionError
            If the gantry angle is not covered, or the ray is parallel to
            or points away from the tangent plane.
        """
        direction, _ = ray_direction(point, source)
        source = np.asarray(source, dtype=np.float64)

        p, n = self.tangent_plane(self.gantry_angle(source))
        t = intersect_plane(source, direction, p, n)
        if t is None:
            raise NoIntersectionError(
                f"Ray from {source} through {point} does not reach the tangent plane"
            )
        return t

    @property
    def n_samples(self) -> int:
        return len(self.angles)

    def __repr__(self) -> str:
        return (
            f"LinearSurface(n_samples={self.n_samples}, "
            f"angles=[{np.degrees(self.angles[0]):.1f}°, {np.degrees(self.angles[-1]):.1f}°], "
            f"periodic={self.periodic})"
        )
