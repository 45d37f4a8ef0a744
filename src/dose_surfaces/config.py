"""
Configuration module for SSD and depth computations.

Defines dataclasses for the beam source position and the resolution of
precomputed surface grids, plus the numerical tolerances shared by the
ray-geometry routines.

All lengths are in the units of the supplied geometry (typically mm) and
all angles in radians unless noted otherwise.
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass

from dose_surfaces.errors import ConfigurationError

# — Tolerances ———————————————————————————————————————————————————————————————
EPS_T        = 1e-9   # Minimum ray parameter counted as a forward hit
EPS_BARY     = 1e-9   # Barycentric slack making shared edges watertight
EPS_PARALLEL = 1e-12  # |cos| below which a ray is parallel to a plane

DEFAULT_SAD = 1000.0


@dataclass(frozen=True)
class GantryPosition:
    """Source position of a gantry-mounted beam.

    The gantry rotates about the y axis through the isocenter. At a gantry
    angle of 0 the source sits on +z; positive angles rotate it toward +x.

    Parameters
    ----------
    gantry_angle : float
        Gantry angle in radians.
    collimator_angle : float
        Collimator rotation in radians. Kept so the signature matches the
        gantry collaborator's (gantry angle, collimator angle, SAD); it
        does not move the source and no surface model reads it.
    sad : float
        Source-axis distance.
    isocenter : tuple[float, float, float]
        Rotation center of the gantry.
    """

    gantry_angle: float
    collimator_angle: float = 0.0
    sad: float = DEFAULT_SAD
    isocenter: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if not self.sad > 0:
            raise ConfigurationError(f"SAD must be positive, got {self.sad}")

    def rotation(self) -> np.ndarray:
        """Rotation matrix about y taking the gantry-0 frame to this angle."""
        c, s = np.cos(self.gantry_angle), np.sin(self.gantry_angle)
        return np.array([
            [ c, 0.0,   s],
            [0.0, 1.0, 0.0],
            [-s, 0.0,   c],
        ])

    def position(self) -> np.ndarray:
        """Source position, shape (3,)."""
        iso = np.asarray(self.isocenter, dtype=np.float64)
        return iso + self.sad * (self.rotation() @ np.array([0.0, 0.0, 1.0]))

    def central_axis_direction(self) -> np.ndarray:
        """Unit vector from the source toward the isocenter."""
        return -self.rotation() @ np.array([0.0, 0.0, 1.0])


@dataclass(frozen=True)
class CylinderGrid:
    """Resolution of a cylindrical radius grid.

    Parameters
    ----------
    dphi_deg : float
        Azimuthal resolution in degrees. Rounded so that an integer number
        of bins covers the full turn.
    dy : float
        Longitudinal resolution along the cylinder axis.
    """

    dphi_deg: float = 1.0
    dy: float = 1.0

    def __post_init__(self) -> None:
        if not (np.isfinite(self.dphi_deg) and self.dphi_deg > 0):
            raise ConfigurationError(
                f"Azimuthal resolution must be positive, got {self.dphi_deg}"
            )
        if not (np.isfinite(self.dy) and self.dy > 0):
            raise ConfigurationError(
                f"Longitudinal resolution must be positive, got {self.dy}"
            )
        if self.n_phi < 3:
            raise ConfigurationError(
                f"Azimuthal resolution {self.dphi_deg}° leaves fewer than 3 bins"
            )

    @property
    def n_phi(self) -> int:
        """Number of azimuth bins over a full turn."""
        return int(round(360.0 / self.dphi_deg))

    @property
    def dphi(self) -> float:
        """Effective azimuthal bin width in radians."""
        return 2.0 * np.pi / self.n_phi
