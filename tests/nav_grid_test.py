"""
Тесты для NavGrid.
"""

import numpy as np
import pytest

from pathnav import InvalidTopology, NavConfig, NavGrid, NavPathMode, NavQuery


@pytest.fixture
def ring():
    """Сетка 3x3 с непроходимым центром."""
    cells = np.ones((3, 3), dtype=bool)
    cells[1, 1] = False
    return NavGrid(cells)


class TestFindPathCells:
    """Тесты для find_path_cells."""

    def test_around_blocked_center(self, ring):
        assert ring.find_path_cells((0, 0), (1, 2)) == [(0, 0), (0, 1), (0, 2), (1, 2)]

    def test_to_blocked_cell(self, ring):
        assert ring.find_path_cells((0, 0), (1, 1)) is None

    def test_outside_grid(self, ring):
        assert ring.find_path_cells((0, 0), (7, 7)) is None

    def test_same_cell(self, ring):
        assert ring.find_path_cells((2, 2), (2, 2)) == [(2, 2)]

    def test_tie_break(self):
        """При равных путях выбирается первый найденный."""
        grid = NavGrid(np.ones((2, 2), dtype=bool))
        assert grid.find_path_cells((0, 0), (1, 1)) == [(0, 0), (1, 0), (1, 1)]

    def test_costs(self):
        """Дорогая ячейка (1, 0) обходится."""
        grid = NavGrid(np.ones((2, 2), dtype=bool), costs=[1.0, 10.0, 1.0, 1.0])
        assert grid.find_path_cells((0, 0), (1, 1)) == [(0, 0), (0, 1), (1, 1)]

    def test_filter_on_cells(self, ring):
        """Фильтр получает координаты ячеек."""
        seen = []

        def forbid_left_column(a, b):
            seen.append((a, b))
            return b[0] != 0

        path = ring.find_path_cells((0, 0), (1, 2), forbid_left_column)

        assert path == [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2), (1, 2)]
        assert all(isinstance(a, tuple) and isinstance(b, tuple) for a, b in seen)

    def test_diagonal(self):
        grid = NavGrid(np.ones((3, 3), dtype=bool), diagonal=True)
        assert grid.find_path_cells((0, 0), (2, 2)) == [(0, 0), (1, 1), (2, 2)]

    def test_corner_cutting(self):
        """Диагональ между двумя непроходимыми ячейками только с corner_cutting."""
        cells = np.array([[True, False], [False, True]])

        strict = NavGrid(cells, diagonal=True)
        loose = NavGrid(cells, diagonal=True, corner_cutting=True)

        assert strict.find_path_cells((0, 0), (1, 1)) is None
        assert loose.find_path_cells((0, 0), (1, 1)) == [(0, 0), (1, 1)]

    def test_diagonal_from_config(self):
        grid = NavGrid(np.ones((3, 3), dtype=bool), config=NavConfig(diagonal=True))
        assert len(grid.find_path_cells((0, 0), (2, 2))) == 3

    def test_levels(self):
        """Уровни трёхмерной сетки не связаны между собой."""
        cells = np.ones((2, 2, 2), dtype=bool)
        grid = NavGrid(cells)

        assert grid.levels == 2
        assert grid.find_path_cells((0, 0, 1), (1, 1, 1)) == [(0, 0, 1), (1, 0, 1), (1, 1, 1)]
        assert grid.find_path_cells((0, 0, 0), (0, 0, 1)) is None


class TestConstruction:
    """Тесты для конструкторов NavGrid."""

    def test_from_flat(self):
        grid = NavGrid.from_flat(3, 2, [1, 1, 1, 0, 0, 1])

        assert (grid.cols, grid.rows) == (3, 2)
        assert grid.find_path_cells((0, 0), (2, 1)) == [(0, 0), (1, 0), (2, 0), (2, 1)]
        assert grid.region_of((0, 1)) is None

    def test_from_flat_size_mismatch(self):
        with pytest.raises(InvalidTopology):
            NavGrid.from_flat(3, 2, [1, 1, 1])

    def test_with_connections_directed(self):
        """Явные связи задают направленный обход по кругу."""
        grid = NavGrid.with_connections(2, 2, [
            ((0, 0), (1, 0)),
            ((1, 0), (1, 1)),
            ((1, 1), (0, 1)),
            ((0, 1), (0, 0)),
        ])

        assert grid.find_path_cells((0, 0), (0, 1)) == [(0, 0), (1, 0), (1, 1), (0, 1)]
        assert grid.neighbors((0, 0)) == [(1, 0)]

    def test_with_connections_not_adjacent(self):
        with pytest.raises(InvalidTopology):
            NavGrid.with_connections(3, 3, [((0, 0), (2, 0))])

    def test_with_connections_empty(self):
        with pytest.raises(InvalidTopology):
            NavGrid.with_connections(0, 3, [])

    def test_empty(self):
        with pytest.raises(InvalidTopology):
            NavGrid(np.zeros((0, 0), dtype=bool))

    def test_from_image(self, tmp_path):
        """Светлые пиксели проходимы, тёмные — нет."""
        from PIL import Image

        pixels = np.array([[255, 0, 255], [255, 255, 255]], dtype=np.uint8)
        path = tmp_path / "mask.png"
        Image.fromarray(pixels).save(path)

        grid = NavGrid.from_image(path)

        assert (grid.cols, grid.rows) == (3, 2)
        assert grid.region_of((1, 0)) is None
        assert grid.find_path_cells((0, 0), (2, 0)) == [(0, 0), (0, 1), (1, 1), (2, 1), (2, 0)]


class TestCellAddressing:
    """Тесты для адресации ячеек."""

    def test_index_and_coord(self, ring):
        assert ring.index((2, 1)) == 5
        assert ring.coord(5) == (2, 1)
        assert ring.index((3, 0)) is None
        assert ring.coord(9) is None

    def test_coord_3d(self):
        grid = NavGrid(np.ones((2, 2, 3), dtype=bool))
        assert grid.coord(7) == (1, 0, 1)
        assert grid.index((1, 0, 1)) == 7

    def test_region_of(self, ring):
        assert ring.region_of((1, 1)) is None
        region = ring.region_of((2, 2))
        assert ring.cell_of(region) == (2, 2)

    def test_cell_center(self):
        grid = NavGrid(np.ones((2, 2), dtype=bool), cell_size=2.0, origin=(10.0, 0.0, 0.0))
        np.testing.assert_allclose(grid.cell_center((1, 0)), [13.0, 1.0, 0.0])

    def test_neighbors(self, ring):
        assert sorted(ring.neighbors((0, 0))) == [(0, 1), (1, 0)]
        assert ring.neighbors((1, 1)) == []

    def test_find_islands(self):
        cells = np.array([[True, False, True]])
        grid = NavGrid(cells)

        assert grid.find_islands() == [[(0, 0)], [(2, 0)]]
        assert grid.island_count == 2


class TestWorldPath:
    """Тесты для find_path в мировых координатах."""

    def test_funnel_around_corner(self, ring):
        path = ring.find_path((0.5, 0.5), (1.5, 2.5), NavQuery.ACCURACY, NavPathMode.FUNNEL)

        expected = [(0.5, 0.5, 0.0), (1.0, 2.0, 0.0), (1.5, 2.5, 0.0)]
        assert len(path) == len(expected)
        for point, target in zip(path, expected):
            np.testing.assert_allclose(point, target, atol=1e-5)

    def test_point_in_blocked_cell(self, ring):
        assert ring.find_path((1.5, 1.5), (0.5, 0.5)) is None

    def test_closest_from_blocked_cell(self, ring):
        """CLOSEST: точка в непроходимой ячейке прижимается к соседней."""
        path = ring.find_path((1.5, 1.1), (0.5, 0.5), NavQuery.CLOSEST, NavPathMode.FUNNEL)

        assert path is not None
        np.testing.assert_allclose(path[0], [1.5, 1.0, 0.0], atol=1e-5)

    def test_cell_size_and_origin(self):
        grid = NavGrid(np.ones((1, 3), dtype=bool), cell_size=2.0, origin=(0.0, 0.0, 5.0))

        path = grid.find_path((1.0, 1.0, 5.0), (5.0, 1.0, 5.0))

        assert len(path) == 2
        np.testing.assert_allclose(path[-1], [5.0, 1.0, 5.0], atol=1e-5)
