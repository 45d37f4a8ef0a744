"""
Tests for the triangulated mesh surface.

Uses synthetic box and ellipsoid phantoms whose entry points are known
analytically.
"""

import numpy as np
import pytest

from dose_surfaces import MeshSurface, TriangleMesh
from dose_surfaces.errors import DegenerateConstructionError, NoIntersectionError
from dose_surfaces.utils.synthetic import box_mesh, ellipsoid_mesh


class TestTriangleMesh:
    """Test TriangleMesh storage and validation."""

    def test_edges(self):
        mesh = TriangleMesh([[0, 0, 0], [1, 0, 0], [0, 1, 0]], [[0, 1, 2]])
        np.testing.assert_array_equal(mesh.v0, [[0, 0, 0]])
        np.testing.assert_array_equal(mesh.edge1, [[1, 0, 0]])
        np.testing.assert_array_equal(mesh.edge2, [[0, 1, 0]])
        np.testing.assert_allclose(mesh.face_normals(), [[0, 0, 1]])

    def test_immutable(self):
        mesh = box_mesh()
        with pytest.raises(ValueError):
            mesh.vertices[0, 0] = 1.0
        with pytest.raises(ValueError):
            mesh.v0[0, 0] = 1.0

    def test_from_triangles(self):
        box  = box_mesh()
        soup = box.vertices[box.faces]
        mesh = TriangleMesh.from_triangles(soup)
        assert mesh.n_faces == 12
        assert mesh.n_vertices == 36
        np.testing.assert_allclose(mesh.edge1, box.edge1)

    def test_box_normals_point_outward(self):
        mesh    = box_mesh()
        centers = mesh.vertices[mesh.faces].mean(axis=1)
        assert np.all(np.einsum("ij,ij->i", mesh.face_normals(), centers) > 0)

    def test_no_faces(self):
        with pytest.raises(DegenerateConstructionError):
            TriangleMesh(np.zeros((3, 3)), np.zeros((0, 3), dtype=int))

    def test_index_out_of_range(self):
        with pytest.raises(DegenerateConstructionError):
            TriangleMesh(np.zeros((3, 3)), [[0, 1, 3]])

    def test_bad_shapes(self):
        with pytest.raises(DegenerateConstructionError):
            TriangleMesh(np.zeros((3, 2)), [[0, 1, 2]])
        with pytest.raises(DegenerateConstructionError):
            TriangleMesh(np.zeros((4, 3)), [[0, 1, 2, 3]])
        with pytest.raises(DegenerateConstructionError):
            TriangleMesh.from_triangles(np.zeros((2, 4, 3)))

    def test_float_indices_rejected(self):
        with pytest.raises(DegenerateConstructionError):
            TriangleMesh(np.zeros((3, 3)), [[0.0, 1.0, 2.0]])


class TestMeshSurfaceBox:
    """Test MeshSurface on a 200 mm cube centered on the isocenter."""

    def setup_method(self):
        self.surface = MeshSurface(box_mesh((100.0, 100.0, 100.0)))

    def test_central_axis(self, check_surface):
        src = np.array([0.0, 0.0, 1000.0])
        pos = np.array([0.0, 0.0, 0.0])
        check_surface(self.surface, pos, src, 900.0, 100.0)

    def test_oblique(self, check_surface):
        src = np.array([-335.0, 0.0, 942.0])
        pos = np.array([30.0, 20.0, 10.0])

        # Entry through the top face z = 100
        lam   = (942.0 - 100.0) / (942.0 - 10.0)
        ssd   = lam * np.linalg.norm(pos - src)
        depth = (1.0 - lam) * np.linalg.norm(pos - src)
        check_surface(self.surface, pos, src, ssd, depth)

        entry = self.surface.entry_point(pos, src)
        np.testing.assert_allclose(entry[2], 100.0, atol=1e-9)

    def test_lateral_entry(self, check_surface):
        src = np.array([1000.0, 0.0, 0.0])
        pos = np.array([-50.0, 10.0, 5.0])
        lam = (1000.0 - 100.0) / 1050.0
        ssd = lam * np.linalg.norm(pos - src)
        check_surface(self.surface, pos, src, ssd, np.linalg.norm(pos - src) - ssd)

    def test_point_outside_body(self):
        """Depth is negative before the ray reaches the surface."""
        src = np.array([0.0, 0.0, 1000.0])
        pos = np.array([0.0, 0.0, 500.0])
        assert self.surface.get_ssd(pos, src) == pytest.approx(900.0)
        assert self.surface.get_depth(pos, src) == pytest.approx(-400.0)

    def test_entry_face(self):
        src = np.array([0.0, 0.0, 1000.0])
        _, face = self.surface.intersect([10.0, 20.0, 0.0], src)
        np.testing.assert_allclose(self.surface.face_normal(face), [0.0, 0.0, 1.0])

    def test_miss(self):
        with pytest.raises(NoIntersectionError):
            self.surface.get_ssd([500.0, 0.0, 900.0], [0.0, 0.0, 1000.0])

    def test_batch_matches_single(self, rng):
        src    = np.array([-335.0, 40.0, 942.0])
        points = rng.uniform(-80.0, 80.0, size=(25, 3))

        batch  = self.surface.get_ssd_many(points, src)
        single = [self.surface.get_ssd(p, src) for p in points]
        np.testing.assert_allclose(batch, single, rtol=1e-12)

        np.testing.assert_allclose(
            self.surface.get_depth_many(points, src),
            [self.surface.get_depth(p, src) for p in points],
            rtol=1e-9, atol=1e-9,
        )

    def test_batch_miss(self):
        points = np.array([[0.0, 0.0, 0.0], [500.0, 0.0, 900.0]])
        with pytest.raises(NoIntersectionError):
            self.surface.get_ssd_many(points, [0.0, 0.0, 1000.0])

    def test_accepts_arrays(self):
        mesh    = box_mesh()
        surface = MeshSurface((mesh.vertices, mesh.faces))
        assert surface.get_ssd([0, 0, 0], [0, 0, 1000]) == pytest.approx(900.0)


class TestMeshSurfaceEllipsoid:
    """Test MeshSurface against an analytic ellipsoid."""

    def setup_method(self):
        self.axes    = np.array([150.0, 100.0, 120.0])
        self.surface = MeshSurface(ellipsoid_mesh(tuple(self.axes), n_theta=90, n_phi=180))

    def _analytic_ssd(self, pos, src):
        d = (pos - src) / np.linalg.norm(pos - src)
        a = np.sum((d / self.axes) ** 2)
        b = 2.0 * np.sum(src * d / self.axes ** 2)
        c = np.sum((src / self.axes) ** 2) - 1.0
        return (-b - np.sqrt(b * b - 4 * a * c)) / (2 * a)

    def test_vertex_on_axis(self):
        src = np.array([0.0, 0.0, 1000.0])
        assert self.surface.get_ssd([0.0, 0.0, 0.0], src) == pytest.approx(880.0)

    def test_against_analytic(self, rng):
        for _ in range(10):
            gantry = 2.0 * np.pi * rng.random()
            src = 1000.0 * np.array([np.sin(gantry), 0.0, np.cos(gantry)])
            pos = rng.uniform(-40.0, 40.0, size=3)
            np.testing.assert_allclose(
                self.surface.get_ssd(pos, src), self._analytic_ssd(pos, src), atol=0.1
            )
