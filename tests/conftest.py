"""Shared test fixtures for dose_surfaces tests."""

import numpy as np
import pytest


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(20240611)


@pytest.fixture
def random_source(rng):
    """Draw a random source on the upper hemisphere of radius SAD."""
    def _source(sad: float) -> np.ndarray:
        phi   = 2.0 * np.pi * rng.random()
        theta = 0.5 * np.pi * rng.random()
        return sad * np.array([
            np.sin(phi) * np.cos(theta),
            np.cos(phi) * np.cos(theta),
            np.sin(theta),
        ])

    return _source


@pytest.fixture
def random_position(rng):
    """Draw a random point in a cube centered on the isocenter."""
    def _position(half_width: float = 100.0) -> np.ndarray:
        return 2.0 * half_width * rng.random(3) - half_width

    return _position


@pytest.fixture
def check_surface(rng):
    """Check SSD, depth and SSD scaling of a surface for one ray.

    The SSD is also checked at a second point on the same ray, which must
    give the same value.
    """
    def _check(surface, point, source, ssd_truth, depth_truth, rtol=1e-9):
        point  = np.asarray(point, dtype=np.float64)
        source = np.asarray(source, dtype=np.float64)

        np.testing.assert_allclose(surface.get_ssd(point, source), ssd_truth, rtol=rtol)
        np.testing.assert_allclose(surface.get_depth(point, source), depth_truth,
                                   rtol=rtol, atol=rtol * ssd_truth)

        lam  = 0.1 + 1.9 * rng.random()
        pos2 = source + lam * (point - source)
        np.testing.assert_allclose(surface.get_ssd(pos2, source), ssd_truth, rtol=rtol)

    return _check
