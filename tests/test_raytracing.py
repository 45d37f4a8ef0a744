"""
Tests for the ray geometry primitives.

Validates ray parameterization, ray-plane and ray-triangle intersection,
and the batched ray-mesh caster against hand-computed hits.
"""

import numpy as np
import pytest

from dose_surfaces.errors import InvalidRayError
from dose_surfaces.raytracing.cpu_ref import (
    cast_rays,
    intersect_mesh,
    intersect_plane,
    intersect_triangle,
    ray_direction,
    ray_point,
)
from dose_surfaces.utils.synthetic import box_mesh


class TestRayParameterization:
    """Test ray direction and parameterization."""

    def test_direction_is_unit(self):
        d, length = ray_direction([3.0, 4.0, 0.0], [0.0, 0.0, 0.0])
        np.testing.assert_allclose(d, [0.6, 0.8, 0.0], atol=1e-15)
        assert length == pytest.approx(5.0)

    def test_coincident_point_raises(self):
        with pytest.raises(InvalidRayError):
            ray_direction([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])

    def test_ray_point(self):
        src = np.array([0.0, 0.0, 1000.0])
        pos = np.array([10.0, 0.0, 0.0])
        np.testing.assert_allclose(ray_point(src, pos, 0.0), src)
        np.testing.assert_allclose(ray_point(src, pos, 1.0), pos)
        np.testing.assert_allclose(ray_point(src, pos, 0.5), [5.0, 0.0, 500.0])


class TestPlaneIntersection:
    """Test ray-plane intersection."""

    def test_normal_incidence(self):
        t = intersect_plane(
            np.array([0.0, 0.0, 1000.0]), np.array([0.0, 0.0, -1.0]),
            np.array([0.0, 0.0, 600.0]), np.array([0.0, 0.0, 1.0]),
        )
        assert t == pytest.approx(400.0)

    def test_normal_sign_irrelevant(self):
        args = (np.array([0.0, 0.0, 1000.0]), np.array([0.6, 0.0, -0.8]),
                np.array([0.0, 0.0, 600.0]))
        t_up   = intersect_plane(*args, np.array([0.0, 0.0,  1.0]))
        t_down = intersect_plane(*args, np.array([0.0, 0.0, -1.0]))
        assert t_up == pytest.approx(500.0)
        assert t_down == pytest.approx(500.0)

    def test_parallel_returns_none(self):
        t = intersect_plane(
            np.zeros(3), np.array([1.0, 0.0, 0.0]),
            np.array([0.0, 0.0, 5.0]), np.array([0.0, 0.0, 1.0]),
        )
        assert t is None

    def test_behind_returns_none(self):
        t = intersect_plane(
            np.zeros(3), np.array([0.0, 0.0, 1.0]),
            np.array([0.0, 0.0, -5.0]), np.array([0.0, 0.0, 1.0]),
        )
        assert t is None


class TestTriangleIntersection:
    """Test single ray-triangle intersection."""

    def setup_method(self):
        self.v0 = np.array([0.0, 0.0, 0.0])
        self.v1 = np.array([1.0, 0.0, 0.0])
        self.v2 = np.array([0.0, 1.0, 0.0])
        self.down = np.array([0.0, 0.0, -1.0])

    def test_hit_inside(self):
        t = intersect_triangle(np.array([0.25, 0.25, 2.0]), self.down, self.v0, self.v1, self.v2)
        assert t == pytest.approx(2.0)

    def test_miss_outside(self):
        t = intersect_triangle(np.array([0.75, 0.75, 2.0]), self.down, self.v0, self.v1, self.v2)
        assert t is None

    def test_miss_behind(self):
        t = intersect_triangle(np.array([0.25, 0.25, -2.0]), self.down, self.v0, self.v1, self.v2)
        assert t is None

    def test_hit_on_vertex(self):
        t = intersect_triangle(np.array([0.0, 0.0, 3.0]), self.down, self.v0, self.v1, self.v2)
        assert t == pytest.approx(3.0)

    def test_shared_edge_is_watertight(self):
        """A ray through a shared edge hits both faces at the same t."""
        v3 = np.array([1.0, 1.0, 0.0])
        origin = np.array([0.5, 0.5, 1.0])
        t1 = intersect_triangle(origin, self.down, self.v1, self.v2, self.v0)
        t2 = intersect_triangle(origin, self.down, self.v1, v3, self.v2)
        assert t1 is not None and t2 is not None
        assert t1 == pytest.approx(1.0)
        assert t2 == pytest.approx(t1)


class TestMeshCasting:
    """Test batched ray casting on a box."""

    def setup_method(self):
        self.mesh = box_mesh((100.0, 100.0, 100.0))

    def test_intersect_mesh_hits_two_faces(self):
        t = intersect_mesh(
            np.array([10.0, 20.0, 1000.0]), np.array([0.0, 0.0, -1.0]),
            self.mesh.v0, self.mesh.edge1, self.mesh.edge2,
        )
        hits = np.sort(t[~np.isnan(t)])
        np.testing.assert_allclose(hits, [900.0, 1100.0])

    def test_nearest_and_farthest(self):
        origins    = np.array([[10.0, 20.0, 1000.0], [0.0, 0.0, 0.0]])
        directions = np.array([[0.0, 0.0, -1.0], [1.0, 0.0, 0.0]])

        t_near, face_near = cast_rays(origins, directions, self.mesh.v0,
                                      self.mesh.edge1, self.mesh.edge2, mode="nearest")
        t_far, _ = cast_rays(origins, directions, self.mesh.v0,
                             self.mesh.edge1, self.mesh.edge2, mode="farthest")

        np.testing.assert_allclose(t_near, [900.0, 100.0])
        np.testing.assert_allclose(t_far, [1100.0, 100.0])
        assert np.all(face_near >= 0)

    def test_miss_gives_nan(self):
        t, face = cast_rays(
            np.array([[500.0, 0.0, 0.0]]), np.array([[0.0, 0.0, 1.0]]),
            self.mesh.v0, self.mesh.edge1, self.mesh.edge2,
        )
        assert np.isnan(t[0])
        assert face[0] == -1

    def test_chunking_is_consistent(self, rng):
        origins    = rng.uniform(-50.0, 50.0, size=(40, 3))
        directions = rng.normal(size=(40, 3))
        directions /= np.linalg.norm(directions, axis=1, keepdims=True)

        t1, f1 = cast_rays(origins, directions, self.mesh.v0,
                           self.mesh.edge1, self.mesh.edge2, chunk_size=1)
        t2, f2 = cast_rays(origins, directions, self.mesh.v0,
                           self.mesh.edge1, self.mesh.edge2, chunk_size=256)

        np.testing.assert_array_equal(t1, t2)
        np.testing.assert_array_equal(f1, f2)
        # Every ray from inside the box leaves it
        assert not np.any(np.isnan(t1))

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            cast_rays(np.zeros((1, 3)), np.array([[1.0, 0.0, 0.0]]), self.mesh.v0,
                      self.mesh.edge1, self.mesh.edge2, mode="middle")
