"""
Тесты для построения пути по коридору: MID_POINTS, FUNNEL и развёртка сгибов.
"""

import math

import numpy as np
import pytest

from pathnav import NavGrid, NavMesh, NavPathMode, NavQuery
from pathnav.geometry import path_length
from pathnav.refiner import dedupe_points, unfold_corridor


# 0,2 -- 1,2
#  |  \  |
# 0,1 -- 1,1 -- 2,1
#  |  \  |  \  |
# 0,0 -- 1,0 -- 2,0
STRIP_VERTICES = [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1), (0, 2), (1, 2)]
STRIP_TRIANGLES = [(0, 1, 4), (4, 3, 0), (1, 2, 5), (5, 4, 1), (3, 4, 7), (7, 6, 3)]

# Г-образный коридор с внутренним углом (1, 1)
CORNER_VERTICES = [(0, 0), (2, 0), (2, 1), (1, 1), (0, 2)]
CORNER_TRIANGLES = [(0, 3, 4), (0, 1, 3), (1, 2, 3)]

# Полоса, согнутая по прямой x = 1: правая половина поднимается под 45°
FOLD_VERTICES = [(0, 0, 0), (1, 0, 0), (2, 0, 1), (0, 1, 0), (1, 1, 0), (2, 1, 1)]
FOLD_TRIANGLES = [(0, 1, 4), (4, 3, 0), (1, 2, 5), (5, 4, 1)]


def assert_path(path, expected, atol=1e-5):
    assert path is not None
    assert len(path) == len(expected), f"path: {[p.tolist() for p in path]}"
    for point, target in zip(path, expected):
        target = list(target) + [0.0] * (3 - len(target))
        np.testing.assert_allclose(point, target, atol=atol)


@pytest.fixture
def strip():
    return NavMesh(STRIP_VERTICES, STRIP_TRIANGLES)


@pytest.fixture
def corner():
    return NavMesh(CORNER_VERTICES, CORNER_TRIANGLES)


@pytest.fixture
def fold():
    return NavMesh(FOLD_VERTICES, FOLD_TRIANGLES)


class TestMidPoints:
    """Тесты для режима MID_POINTS."""

    def test_corner(self, strip):
        """Путь огибает угол через середину портала."""
        path = strip.find_path((2, 1), (1, 2), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(2, 1), (0.5, 1), (1, 2)])

    def test_straight_diagonal(self, strip):
        """Прямая видимость — промежуточные середины отбрасываются."""
        path = strip.find_path((2, 0), (0, 2), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(2, 0), (0, 2)])

    def test_straight_along_edge(self, strip):
        path = strip.find_path((0, 0), (2, 0), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(0, 0), (2, 0)])

    def test_straight_vertical(self, strip):
        path = strip.find_path((0.5, 0), (0.5, 2), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(0.5, 0), (0.5, 2)])

    def test_inner_corner(self, corner):
        path = corner.find_path((2, 1), (0, 2), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(2, 1), (0.5, 0.5), (0, 2)])

    def test_fold_kept(self, fold):
        """Середина портала на сгибе остаётся в пути."""
        path = fold.find_path((0, 1, 0), (1.5, 0.25, 0.5), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(0, 1, 0), (1, 0.5, 0), (1.5, 0.25, 0.5)])

    def test_fold_straight(self, fold):
        path = fold.find_path((0, 0.5, 0), (2, 0.5, 1), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(0, 0.5, 0), (1, 0.5, 0), (2, 0.5, 1)])

    def test_fold_diagonal(self, fold):
        path = fold.find_path((0, 1, 0), (2, 0, 1), NavQuery.ACCURACY, NavPathMode.MID_POINTS)
        assert_path(path, [(0, 1, 0), (1, 0.5, 0), (2, 0, 1)])


class TestFunnel:
    """Тесты для режима FUNNEL."""

    def test_corner(self, strip):
        """Путь проходит через вершину угла."""
        path = strip.find_path((2, 1), (1, 2), NavQuery.ACCURACY, NavPathMode.FUNNEL)
        assert_path(path, [(2, 1), (1, 1), (1, 2)])

    def test_straight(self, strip):
        path = strip.find_path((2, 0), (0, 2), NavQuery.ACCURACY, NavPathMode.FUNNEL)
        assert_path(path, [(2, 0), (0, 2)])

    def test_inner_corner(self, corner):
        path = corner.find_path((2, 1), (0, 2), NavQuery.ACCURACY, NavPathMode.FUNNEL)
        assert_path(path, [(2, 1), (1, 1), (0, 2)])

    def test_fold_crossing_inserted(self, fold):
        """На сгибе добавляется точка пересечения пути с порталом."""
        path = fold.find_path((0, 1, 0), (1.2, 0.4, 0.2), NavQuery.ACCURACY, NavPathMode.FUNNEL)

        y = 1.0 - 0.6 / (1.0 + 0.2 * math.sqrt(2.0))
        assert_path(path, [(0, 1, 0), (1, y, 0), (1.2, 0.4, 0.2)], atol=1e-3)

    def test_grid_corner(self):
        """Сетка 3x3 с непроходимым центром: путь огибает угол центра."""
        cells = np.ones((3, 3), dtype=bool)
        cells[1, 1] = False
        grid = NavGrid(cells)

        path = grid.find_path((0.5, 0.5), (1.5, 2.5), NavQuery.ACCURACY, NavPathMode.FUNNEL)

        assert_path(path, [(0.5, 0.5, 0), (1, 2, 0), (1.5, 2.5, 0)])

    def test_not_longer_than_mid_points(self, strip, corner, fold):
        cases = [
            (strip, (2, 1), (1, 2)),
            (strip, (1.8, 0.1), (0.2, 1.9)),
            (corner, (1.9, 0.9), (0.1, 1.5)),
            (fold, (0, 1, 0), (2, 0, 1)),
        ]
        for mesh, start, end in cases:
            funnel = mesh.find_path(start, end, NavQuery.ACCURACY, NavPathMode.FUNNEL)
            mid = mesh.find_path(start, end, NavQuery.ACCURACY, NavPathMode.MID_POINTS)
            assert path_length(funnel) <= path_length(mid) + 1e-4


class TestPathInvariants:
    """Общие свойства построенных путей."""

    @pytest.mark.parametrize("mode", [NavPathMode.MID_POINTS, NavPathMode.FUNNEL])
    def test_endpoints(self, strip, mode):
        path = strip.find_path((1.8, 0.1), (0.2, 1.9), NavQuery.ACCURACY, mode)

        np.testing.assert_allclose(path[0], [1.8, 0.1, 0.0], atol=1e-6)
        np.testing.assert_allclose(path[-1], [0.2, 1.9, 0.0], atol=1e-6)

    @pytest.mark.parametrize("mode", [NavPathMode.MID_POINTS, NavPathMode.FUNNEL])
    def test_no_consecutive_duplicates(self, fold, mode):
        path = fold.find_path((0, 0, 0), (2, 1, 1), NavQuery.ACCURACY, mode)

        for a, b in zip(path, path[1:]):
            assert np.linalg.norm(a - b) > 1e-4

    @pytest.mark.parametrize("mode", [NavPathMode.MID_POINTS, NavPathMode.FUNNEL])
    def test_deterministic(self, corner, mode):
        first = corner.find_path((2, 1), (0, 2), NavQuery.ACCURACY, mode)
        second = corner.find_path((2, 1), (0, 2), NavQuery.ACCURACY, mode)

        assert len(first) == len(second)
        for a, b in zip(first, second):
            np.testing.assert_array_equal(a, b)

    def test_same_region(self, strip):
        """Обе точки в одном треугольнике — прямой отрезок."""
        path = strip.find_path((0.8, 0.1), (0.9, 0.5), NavQuery.ACCURACY, NavPathMode.FUNNEL)
        assert_path(path, [(0.8, 0.1), (0.9, 0.5)])

    def test_same_point(self, strip):
        path = strip.find_path((0.8, 0.1), (0.8, 0.1), NavQuery.ACCURACY, NavPathMode.FUNNEL)
        assert_path(path, [(0.8, 0.1)])

    def test_dtype_follows_storage(self, strip):
        path = strip.find_path((2, 1), (1, 2), NavQuery.ACCURACY, NavPathMode.FUNNEL)
        assert all(p.dtype == strip.vertices.dtype for p in path)


class TestUnfoldCorridor:
    """Тесты для unfold_corridor."""

    def test_flat_corridor_has_no_folds(self, strip):
        corridor, start, end = strip.find_corridor((2, 1), (1, 2))
        unfolded = unfold_corridor(corridor, strip.graph, start, end)

        assert len(unfolded) == len(corridor.portals)
        assert not any(unfolded.fold)

    def test_fold_detected(self, fold):
        corridor, start, end = fold.find_corridor((0, 1, 0), (1.5, 0.25, 0.5))
        unfolded = unfold_corridor(corridor, fold.graph, start, end)

        assert sum(unfolded.fold) == 1

    def test_unfolded_distance(self, fold):
        """После развёртки расстояние до финиша равно длине по поверхности."""
        corridor, start, end = fold.find_corridor((0, 1, 0), (1.5, 0.25, 0.5))
        unfolded = unfold_corridor(corridor, fold.graph, start, end)

        along = 1.0 + math.sqrt(0.5)
        expected = math.hypot(along, 0.75)
        assert np.linalg.norm(unfolded.end2 - unfolded.start2) == pytest.approx(expected, abs=1e-4)

    def test_portals_split_left_right(self, strip):
        """Левый и правый концы портала различны."""
        corridor, start, end = strip.find_corridor((2, 1), (1, 2))
        unfolded = unfold_corridor(corridor, strip.graph, start, end)

        for left, right in zip(unfolded.left2, unfolded.right2):
            assert np.linalg.norm(left - right) > 0.5


class TestDedupePoints:
    """Тесты для dedupe_points."""

    def test_removes_consecutive(self):
        points = [np.zeros(3), np.zeros(3), np.ones(3), np.zeros(3)]
        assert len(dedupe_points(points)) == 3

    def test_empty(self):
        assert dedupe_points([]) == []
