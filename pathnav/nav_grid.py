"""
Навигация по плотной сетке ячеек.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Sequence, Union
import numpy as np

from pathnav import log
from pathnav.builders import build_grid_graph, grid_shape
from pathnav.errors import InvalidTopology
from pathnav.graph import ConnectivityGraph
from pathnav.search import EdgeFilter, astar
from pathnav.settings import NavConfig
from pathnav.surface import NavSurface


Cell = tuple[int, ...]
"""(col, row) или (col, row, level)."""


class NavGrid(NavSurface):
    """
    Сетка проходимых/непроходимых ячеек.

    Массив cells имеет форму (rows, cols) или (levels, rows, cols),
    ячейка адресуется как (col, row) или (col, row, level).
    """

    KIND = "grid"

    def __init__(
        self,
        cells,
        cell_size: float = 1.0,
        origin=None,
        diagonal: Optional[bool] = None,
        corner_cutting: Optional[bool] = None,
        costs: Optional[Sequence[float]] = None,
        config: Optional[NavConfig] = None,
        connections: Optional[Sequence[tuple[Cell, Cell]]] = None,
    ) -> None:
        """
        Args:
            cells: bool массив проходимости.
            cell_size: Размер ячейки.
            origin: Мировая позиция угла ячейки (0, 0).
            diagonal: 8-связность (по умолчанию из config).
            corner_cutting: Диагональ мимо непроходимых ячеек (по умолчанию из config).
            costs: Стоимость прохода по каждой проходимой ячейке.
            config: Параметры навигации.
            connections: Явные направленные связи между соседними ячейками.
        """
        config = config or NavConfig()
        diagonal = config.diagonal if diagonal is None else diagonal
        corner_cutting = config.corner_cutting if corner_cutting is None else corner_cutting
        cells = np.asarray(cells, dtype=bool)

        graph, coords = build_grid_graph(
            cells,
            cell_size=cell_size,
            origin=origin,
            diagonal=diagonal,
            corner_cutting=corner_cutting,
            connections=connections,
            costs=costs,
        )
        super().__init__(graph, config)
        self._setup(cells, coords, cell_size, origin, diagonal, corner_cutting, connections)

    def _setup(
        self,
        cells: np.ndarray,
        coords: list[Cell],
        cell_size: float,
        origin,
        diagonal: bool,
        corner_cutting: bool,
        connections,
    ) -> None:
        self._cells = cells
        self._levels, self._rows, self._cols = grid_shape(cells)
        self._coords = coords
        self._region_of = {coord: index for index, coord in enumerate(coords)}
        self._cell_size = float(cell_size)
        self._origin = np.zeros(3) if origin is None else np.asarray(origin, dtype=np.float64)
        self._diagonal = bool(diagonal)
        self._corner_cutting = bool(corner_cutting)
        self._connections = None if connections is None else [
            (tuple(int(v) for v in a), tuple(int(v) for v in b)) for a, b in connections
        ]

    @classmethod
    def _from_graph(cls, graph: ConnectivityGraph, params: dict, config: NavConfig) -> NavGrid:
        grid = cls.__new__(cls)
        NavSurface.__init__(grid, graph, config)
        grid._setup(
            np.asarray(params["cells"], dtype=bool),
            [tuple(c) for c in params["coords"]],
            params["cell_size"],
            params["origin"],
            params["diagonal"],
            params["corner_cutting"],
            params.get("connections"),
        )
        return grid

    def _params(self) -> dict:
        return {
            "cells": self._cells.tolist(),
            "coords": [list(c) for c in self._coords],
            "cell_size": self._cell_size,
            "origin": self._origin.tolist(),
            "diagonal": self._diagonal,
            "corner_cutting": self._corner_cutting,
            "connections": None if self._connections is None else [
                [list(a), list(b)] for a, b in self._connections
            ],
        }

    @classmethod
    def from_flat(cls, cols: int, rows: int, cells: Sequence[bool], **kwargs) -> NavGrid:
        """
        Сетка из плоского списка ячеек (построчно, index = row * cols + col).

        Raises:
            InvalidTopology: число ячеек не равно cols * rows.
        """
        cells = np.asarray(cells, dtype=bool).reshape(-1)
        if cols <= 0 or rows <= 0 or len(cells) != cols * rows:
            raise InvalidTopology(
                f"Grid of {cols} cols x {rows} rows needs {cols * rows} cells, got {len(cells)}"
            )
        return cls(cells.reshape(rows, cols), **kwargs)

    @classmethod
    def with_connections(
        cls,
        cols: int,
        rows: int,
        connections: Sequence[tuple[Cell, Cell]],
        **kwargs,
    ) -> NavGrid:
        """
        Сетка, где все ячейки проходимы, а переходы заданы явно.

        Связи направленные и допускаются только между соседними ячейками.
        """
        if cols <= 0 or rows <= 0:
            raise InvalidTopology(f"Grid is empty: {cols} cols, {rows} rows")
        return cls(np.ones((rows, cols), dtype=bool), connections=connections, **kwargs)

    @classmethod
    def from_image(
        cls,
        path: Union[str, Path],
        threshold: int = 128,
        **kwargs,
    ) -> NavGrid:
        """
        Сетка из изображения: светлые пиксели (>= threshold) проходимы.

        Строка изображения — row сетки, столбец — col.
        """
        from PIL import Image

        image = Image.open(path).convert("L")
        pixels = np.asarray(image)
        log.debug(f"[NavGrid] Loaded {pixels.shape[1]}x{pixels.shape[0]} mask from {path}")
        return cls(pixels >= threshold, **kwargs)

    @property
    def cells(self) -> np.ndarray:
        return self._cells

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def levels(self) -> int:
        return self._levels

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def _key(self, cell) -> Cell:
        return tuple(int(v) for v in cell)

    def index(self, cell) -> Optional[int]:
        """Плоский индекс ячейки (level, row, col построчно) или None вне сетки."""
        col, row = int(cell[0]), int(cell[1])
        level = int(cell[2]) if len(cell) > 2 else 0
        if not (0 <= col < self._cols and 0 <= row < self._rows and 0 <= level < self._levels):
            return None
        return (level * self._rows + row) * self._cols + col

    def coord(self, index: int) -> Optional[Cell]:
        """Ячейка по плоскому индексу."""
        if not 0 <= index < self._cols * self._rows * self._levels:
            return None
        level, rest = divmod(index, self._cols * self._rows)
        row, col = divmod(rest, self._cols)
        if self._cells.ndim == 2:
            return (col, row)
        return (col, row, level)

    def region_of(self, cell) -> Optional[int]:
        """Регион проходимой ячейки или None."""
        return self._region_of.get(self._key(cell))

    def cell_of(self, region_id: int) -> Cell:
        return self._coords[region_id]

    def cell_center(self, cell) -> np.ndarray:
        """Мировой центр ячейки."""
        col, row = int(cell[0]), int(cell[1])
        level = int(cell[2]) if len(cell) > 2 else 0
        return self._origin + np.array([col + 0.5, row + 0.5, level]) * self._cell_size

    def _region_filter(self, filter: Optional[Callable]) -> Optional[EdgeFilter]:
        if filter is None:
            return None
        coords = self._coords
        return lambda a, b: filter(coords[a], coords[b])

    def neighbors(self, cell) -> list[Cell]:
        """Ячейки, в которые можно перейти из cell."""
        region = self.region_of(cell)
        if region is None:
            return []
        return [self._coords[neighbor] for neighbor, _ in self._graph.neighbors(region)]

    def find_path_cells(
        self,
        from_cell,
        to_cell,
        filter: Optional[Callable[[Cell, Cell], bool]] = None,
    ) -> Optional[list[Cell]]:
        """
        Путь по ячейкам.

        Returns:
            Список ячеек от from_cell до to_cell или None.
        """
        start = self.region_of(from_cell)
        goal = self.region_of(to_cell)
        if start is None or goal is None:
            return None
        corridor = astar(self._graph, start, goal, self._region_filter(filter))
        if not corridor:
            return None
        return [self._coords[region] for region in corridor.regions]

    def find_islands(self) -> list[list[Cell]]:
        """Ячейки, сгруппированные по островам."""
        return [[self._coords[r] for r in island] for island in self._graph.islands()]
