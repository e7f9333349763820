"""Tests for NavMesh facade."""

import unittest
import numpy as np

from pathnav import InvalidTopology, NavMesh, NavPathMode, NavQuery, NoPathError


STRIP_VERTICES = [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1), (0, 2), (1, 2)]
STRIP_TRIANGLES = [(0, 1, 4), (4, 3, 0), (1, 2, 5), (5, 4, 1), (3, 4, 7), (7, 6, 3)]


class NavMeshTest(unittest.TestCase):
    """Тесты для NavMesh."""

    def setUp(self):
        self.mesh = NavMesh(STRIP_VERTICES, STRIP_TRIANGLES)

    def test_shape(self):
        self.assertEqual(self.mesh.region_count(), 6)
        self.assertEqual(self.mesh.vertices.shape, (8, 3))
        self.assertEqual(self.mesh.triangles.shape, (6, 3))
        self.assertEqual(self.mesh.island_count, 1)

    def test_neighbors(self):
        """Соседи треугольника 0 — треугольники 1 и 3."""
        neighbors = self.mesh.neighbors
        self.assertEqual(neighbors.shape, (6, 3))
        self.assertEqual(sorted(n for n in neighbors[0] if n >= 0), [1, 3])

    def test_find_path_triangles(self):
        result = self.mesh.find_path_triangles(2, 5)
        self.assertIsNotNone(result)
        triangles, cost = result
        self.assertEqual(triangles, [2, 3, 0, 1, 4, 5])
        self.assertGreater(cost, 0.0)

    def test_find_path_triangles_same(self):
        self.assertEqual(self.mesh.find_path_triangles(0, 0), ([0], 0.0))

    def test_find_path_triangles_out_of_range(self):
        self.assertIsNone(self.mesh.find_path_triangles(0, 17))
        self.assertIsNone(self.mesh.find_path_triangles(-1, 0))

    def test_find_path_triangles_filter(self):
        """Фильтр, запрещающий вход в треугольник 0, отрезает путь."""
        self.assertIsNone(self.mesh.find_path_triangles(2, 5, lambda a, b: b != 0))

    def test_find_closest_triangle(self):
        self.assertEqual(self.mesh.find_closest_triangle((3.0, 0.5)), 2)
        self.assertIsNone(self.mesh.find_closest_triangle((3.0, 0.5), NavQuery.ACCURACY))

    def test_closest_point(self):
        np.testing.assert_allclose(self.mesh.closest_point((3.0, 0.5)), [2.0, 0.5, 0.0], atol=1e-6)

    def test_locate(self):
        self.assertEqual(self.mesh.locate((0.5, 0.5)), 0)
        self.assertIsNone(self.mesh.locate((5.0, 5.0)))

    def test_find_path_outside_accuracy(self):
        self.assertIsNone(self.mesh.find_path((3.0, 0.5), (0.5, 1.5)))

    def test_find_path_closest_clamps(self):
        """CLOSEST: концы пути прижимаются к сетке."""
        path = self.mesh.find_path((3.0, 0.5), (0.5, 2.5), NavQuery.CLOSEST, NavPathMode.FUNNEL)

        self.assertIsNotNone(path)
        np.testing.assert_allclose(path[0], [2.0, 0.5, 0.0], atol=1e-6)
        np.testing.assert_allclose(path[-1], [0.5, 2.0, 0.0], atol=1e-6)

    def test_find_path_custom_filter(self):
        path = self.mesh.find_path_custom(
            (1.8, 0.1), (0.2, 1.9), NavQuery.ACCURACY, NavPathMode.FUNNEL, lambda a, b: b != 0
        )
        self.assertIsNone(path)

    def test_expect_path(self):
        path = self.mesh.expect_path((2, 1), (1, 2))
        self.assertEqual(len(path), 3)

        with self.assertRaises(NoPathError):
            self.mesh.expect_path((3.0, 0.5), (1, 2))

    def test_find_islands(self):
        self.assertEqual(self.mesh.find_islands(), [[0, 1, 2, 3, 4, 5]])

    def test_with_costs(self):
        """Стоимости умножают вес рёбер, исходная сетка не меняется."""
        _, cost = self.mesh.find_path_triangles(2, 5)
        expensive = self.mesh.with_costs([2.0] * 6)

        _, new_cost = expensive.find_path_triangles(2, 5)

        self.assertAlmostEqual(new_cost, cost * 4.0, places=4)
        np.testing.assert_allclose(self.mesh.costs, np.ones(6))
        np.testing.assert_allclose(expensive.costs, np.full(6, 2.0))
        self.assertIsInstance(expensive, NavMesh)
        self.assertEqual(expensive.triangles.shape, (6, 3))

    def test_vertex_normals(self):
        normals = self.mesh.vertex_normals()
        np.testing.assert_allclose(normals, np.tile([0.0, 0.0, 1.0], (8, 1)), atol=1e-6)

    def test_thicken(self):
        thick = self.mesh.thicken(0.5)

        np.testing.assert_allclose(thick.vertices[:, 2], np.full(8, 0.5), atol=1e-6)
        np.testing.assert_array_equal(thick.triangles, self.mesh.triangles)

    def test_scale(self):
        scaled = self.mesh.scale(2.0, origin=(0.0, 0.0, 0.0))
        np.testing.assert_allclose(scaled.vertices, self.mesh.vertices * 2.0, atol=1e-6)

    def test_scale_about_mean(self):
        """По умолчанию масштаб относительно среднего вершин."""
        scaled = self.mesh.scale(0.5)
        np.testing.assert_allclose(
            scaled.vertices.mean(axis=0), self.mesh.vertices.mean(axis=0), atol=1e-5
        )

    def test_invalid_index(self):
        with self.assertRaises(InvalidTopology):
            NavMesh(STRIP_VERTICES, [(0, 1, 40)])


class NavMeshFromPointsTest(unittest.TestCase):
    """Тесты для NavMesh.from_points."""

    def test_square(self):
        mesh = NavMesh.from_points([(0, 0), (2, 0), (2, 2), (0, 2), (1, 1)])

        self.assertEqual(mesh.region_count(), 4)
        self.assertEqual(mesh.island_count, 1)
        path = mesh.find_path((0.1, 0.2), (1.9, 1.7))
        np.testing.assert_allclose(path[0], [0.1, 0.2, 0.0], atol=1e-6)
        np.testing.assert_allclose(path[-1], [1.9, 1.7, 0.0], atol=1e-6)

    def test_small_scale(self):
        mesh = NavMesh.from_points([(0, 0), (1e-3, 0), (0, 1e-3), (1e-3, 1e-3)])

        self.assertEqual(mesh.region_count(), 2)
        self.assertEqual(mesh.island_count, 1)

    def test_nearly_collinear(self):
        """Сетка строится по собственной триангуляции даже с почти вырожденными тройками точек."""
        mesh = NavMesh.from_points([(0, 0), (1, 0), (0.5, 1.5e-6), (0.5, 1)])

        self.assertEqual(mesh.region_count(), 2)


if __name__ == "__main__":
    unittest.main()
