"""
Constant surface: a fixed SSD regardless of beam direction.
"""

from __future__ import annotations

import numpy as np

from dose_surfaces.errors import ConfigurationError
from dose_surfaces.surfaces.base import ExternalSurface


class ConstantSurface(ExternalSurface):
    """Surface with a fixed Source-Surface Distance.

    Parameters
    ----------
    ssd : float
        Source-Surface Distance returned for every ray.
    """

    def __init__(self, ssd: float) -> None:
        if not (np.isfinite(ssd) and ssd >= 0):
            raise ConfigurationError(f"SSD must be finite and non-negative, got {ssd}")
        self._ssd = float(ssd)

    @property
    def ssd(self) -> float:
        return self._ssd

    def get_ssd(self, point: np.ndarray, source: np.ndarray) -> float:
        return self._ssd

    def get_ssd_many(self, points: np.ndarray, source: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return np.full(len(points), self._ssd)

    def __repr__(self) -> str:
        return f"ConstantSurface(ssd={self._ssd:.1f})"
