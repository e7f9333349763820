"""
Навигация по разреженной сетке ячеек.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence
import numpy as np

from pathnav.builders import build_free_grid_graph
from pathnav.errors import InvalidTopology
from pathnav.graph import ConnectivityGraph
from pathnav.search import EdgeFilter, astar
from pathnav.settings import NavConfig
from pathnav.surface import NavSurface


class NavFreeGrid(NavSurface):
    """
    Набор ячеек в произвольных позициях.

    Соседство определяется расстоянием между центрами ячеек (radius),
    без плотного массива. Ячейка задаётся координатами (x, y) или (x, y, z)
    в единицах cell_size.
    """

    KIND = "free_grid"

    def __init__(
        self,
        cells,
        radius: float = 1.0,
        cell_size: float = 1.0,
        origin=None,
        costs: Optional[Sequence[float]] = None,
        config: Optional[NavConfig] = None,
        connections: Optional[Sequence[tuple[int, int]]] = None,
    ) -> None:
        """
        Args:
            cells: (N, 2) или (N, 3) — координаты ячеек.
            radius: Максимальное расстояние между центрами соседних ячеек.
            cell_size: Размер ячейки в мировых координатах.
            origin: Начало координат.
            costs: Стоимость прохода по каждой ячейке.
            config: Параметры навигации.
            connections: Явные пары индексов ячеек вместо поиска по радиусу.
        """
        dims = np.asarray(cells).reshape(len(cells), -1).shape[1] if len(cells) else 2
        graph, unique_cells = build_free_grid_graph(
            cells,
            radius=radius,
            cell_size=cell_size,
            origin=origin,
            connections=connections,
            costs=costs,
        )
        super().__init__(graph, config)
        self._setup(unique_cells, dims, radius, cell_size, origin, connections)

    def _setup(self, cells: np.ndarray, dims: int, radius, cell_size, origin, connections) -> None:
        self._cells = cells
        self._dims = dims
        self._radius = radius
        self._cell_size = float(cell_size)
        self._origin = np.zeros(3) if origin is None else np.asarray(origin, dtype=np.float64)
        self._connections = None if connections is None else [
            (int(a), int(b)) for a, b in connections
        ]
        self._keys = [self._key(cell) for cell in cells]
        self._region_of = {key: index for index, key in enumerate(self._keys)}

    @classmethod
    def _from_graph(cls, graph: ConnectivityGraph, params: dict, config: NavConfig) -> NavFreeGrid:
        grid = cls.__new__(cls)
        NavSurface.__init__(grid, graph, config)
        grid._setup(
            np.asarray(params["cells"], dtype=np.float64).reshape(-1, 3),
            params["dims"],
            params["radius"],
            params["cell_size"],
            params["origin"],
            params.get("connections"),
        )
        return grid

    def _params(self) -> dict:
        return {
            "cells": self._cells.tolist(),
            "dims": self._dims,
            "radius": self._radius,
            "cell_size": self._cell_size,
            "origin": self._origin.tolist(),
            "connections": None if self._connections is None else [
                list(pair) for pair in self._connections
            ],
        }

    @classmethod
    def with_connections(
        cls,
        connections: Sequence[tuple[tuple, tuple]],
        **kwargs,
    ) -> NavFreeGrid:
        """
        Сетка из явных связей между ячейками.

        Ячейки берутся из связей в порядке первого появления.
        """
        index: dict[tuple, int] = {}
        cells: list[tuple] = []
        pairs: list[tuple[int, int]] = []
        for a, b in connections:
            ids = []
            for cell in (a, b):
                key = tuple(float(v) for v in cell)
                if key not in index:
                    index[key] = len(cells)
                    cells.append(key)
                ids.append(index[key])
            pairs.append((ids[0], ids[1]))
        if not cells:
            raise InvalidTopology("Free grid needs at least one connection")
        return cls(cells, radius=None, connections=pairs, **kwargs)

    def _key(self, cell) -> tuple:
        return tuple(float(v) for v in cell[:self._dims])

    @property
    def cells(self) -> list[tuple]:
        return list(self._keys)

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def region_of(self, cell) -> Optional[int]:
        """Регион ячейки или None."""
        key = tuple(float(v) for v in cell)
        if len(key) == 2 and self._dims == 3:
            key = key + (0.0,)
        return self._region_of.get(key[:self._dims])

    def cell_of(self, region_id: int) -> tuple:
        return self._keys[region_id]

    def _region_filter(self, filter: Optional[Callable]) -> Optional[EdgeFilter]:
        if filter is None:
            return None
        keys = self._keys
        return lambda a, b: filter(keys[a], keys[b])

    def neighbors(self, cell) -> list[tuple]:
        """Соседние ячейки."""
        region = self.region_of(cell)
        if region is None:
            return []
        return [self._keys[neighbor] for neighbor, _ in self._graph.neighbors(region)]

    def find_path_cells(
        self,
        from_cell,
        to_cell,
        filter: Optional[Callable[[tuple, tuple], bool]] = None,
    ) -> Optional[list[tuple]]:
        """Путь по ячейкам или None."""
        start = self.region_of(from_cell)
        goal = self.region_of(to_cell)
        if start is None or goal is None:
            return None
        corridor = astar(self._graph, start, goal, self._region_filter(filter))
        if not corridor:
            return None
        return [self._keys[region] for region in corridor.regions]

    def find_islands(self) -> list[list[tuple]]:
        """Ячейки, сгруппированные по островам."""
        return [[self._keys[r] for r in island] for island in self._graph.islands()]
