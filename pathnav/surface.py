"""
Общая часть навигационных поверхностей.

NavSurface связывает граф связности, локатор, поиск и построение пути:
locate(start), locate(end) → astar → refine.
"""

from __future__ import annotations

import copy
from typing import Callable, Optional, Sequence
import numpy as np

from pathnav.errors import NoPathError
from pathnav.graph import ConnectivityGraph
from pathnav.locator import SpatialLocator
from pathnav.refiner import refine
from pathnav.search import EdgeFilter, astar
from pathnav.settings import NavConfig
from pathnav.types import Corridor, NavPathMode, NavQuery


class NavSurface:
    """
    Базовый класс поверхностей с геометрией (mesh, grid, free grid, net).

    Структура неизменяема после построения, запросы можно выполнять
    из нескольких потоков одновременно.
    """

    KIND = ""

    def __init__(self, graph: ConnectivityGraph, config: Optional[NavConfig] = None) -> None:
        self._graph = graph
        self._config = config or NavConfig()
        self._locator = SpatialLocator(graph, self._config)

    @property
    def graph(self) -> ConnectivityGraph:
        return self._graph

    @property
    def config(self) -> NavConfig:
        return self._config

    @property
    def vertices(self) -> np.ndarray:
        return self._graph.vertices

    @property
    def costs(self) -> np.ndarray:
        return self._graph.costs

    @property
    def island_count(self) -> int:
        return self._graph.island_count

    def region_count(self) -> int:
        return self._graph.region_count()

    def _region_filter(self, filter: Optional[Callable]) -> Optional[EdgeFilter]:
        """Перевести пользовательский фильтр в фильтр по id регионов."""
        return filter

    def _params(self) -> dict:
        """Параметры построения для сохранения."""
        return {}

    @classmethod
    def _from_graph(cls, graph: ConnectivityGraph, params: dict, config: NavConfig) -> NavSurface:
        surface = cls.__new__(cls)
        NavSurface.__init__(surface, graph, config)
        return surface

    def locate(self, point, query: NavQuery = NavQuery.ACCURACY) -> Optional[int]:
        """Регион, соответствующий точке, или None."""
        return self._locator.locate(point, query)

    def closest_point(self, point, query: NavQuery = NavQuery.CLOSEST) -> Optional[np.ndarray]:
        """Ближайшая к point точка поверхности."""
        return self._locator.closest_point(point, query)

    def find_corridor(
        self,
        start,
        end,
        query: NavQuery = NavQuery.ACCURACY,
        filter: Optional[Callable] = None,
    ) -> tuple[Corridor, Optional[np.ndarray], Optional[np.ndarray]]:
        """
        Найти коридор регионов между точками.

        Returns:
            (corridor, start, end) — коридор и точки начала и конца
            (прижатые к поверхности в режиме CLOSEST). Пустой коридор,
            если точку не удалось локализовать или пути нет.
        """
        located_start = self._locator.locate_clamped(start, query)
        if located_start is None:
            return Corridor.empty(), None, None
        located_end = self._locator.locate_clamped(end, query)
        if located_end is None:
            return Corridor.empty(), None, None

        start_region, start_point = located_start
        end_region, end_point = located_end
        corridor = astar(self._graph, start_region, end_region, self._region_filter(filter))
        return corridor, start_point, end_point

    def find_path(
        self,
        start,
        end,
        query: NavQuery = NavQuery.ACCURACY,
        mode: NavPathMode = NavPathMode.FUNNEL,
    ) -> Optional[list[np.ndarray]]:
        """
        Найти путь между двумя точками.

        Args:
            start: Начальная точка (x, y) или (x, y, z).
            end: Конечная точка.
            query: ACCURACY — точки должны лежать на поверхности,
                   CLOSEST — точки прижимаются к ближайшему региону.
            mode: MID_POINTS или FUNNEL.

        Returns:
            Список точек (3,) или None, если пути нет.
        """
        return self.find_path_custom(start, end, query, mode, None)

    def find_path_custom(
        self,
        start,
        end,
        query: NavQuery = NavQuery.ACCURACY,
        mode: NavPathMode = NavPathMode.FUNNEL,
        filter: Optional[Callable] = None,
    ) -> Optional[list[np.ndarray]]:
        """find_path с фильтром рёбер filter(from, to) -> bool."""
        corridor, start_point, end_point = self.find_corridor(start, end, query, filter)
        if not corridor:
            return None
        return refine(corridor, start_point, end_point, mode, self._graph)

    def expect_path(
        self,
        start,
        end,
        query: NavQuery = NavQuery.ACCURACY,
        mode: NavPathMode = NavPathMode.FUNNEL,
    ) -> list[np.ndarray]:
        """
        find_path, который бросает исключение вместо None.

        Raises:
            NoPathError: путь не найден.
        """
        path = self.find_path(start, end, query, mode)
        if path is None:
            raise NoPathError(f"No path from {tuple(np.asarray(start).tolist())} to {tuple(np.asarray(end).tolist())}")
        return path

    def find_paths(
        self,
        queries: Sequence[tuple],
        query: NavQuery = NavQuery.ACCURACY,
        mode: NavPathMode = NavPathMode.FUNNEL,
        max_workers: Optional[int] = None,
    ) -> list[Optional[list[np.ndarray]]]:
        """Пакетный find_path, см. pathnav.batch.find_paths."""
        from pathnav.batch import find_paths

        return find_paths(self, queries, query, mode, max_workers)

    def find_islands(self) -> list[list[int]]:
        """Регионы, сгруппированные по островам."""
        return self._graph.islands()

    def with_costs(self, costs: Sequence[float]) -> NavSurface:
        """Та же поверхность с другими стоимостями регионов."""
        surface = copy.copy(self)
        surface._graph = self._graph.with_costs(costs)
        surface._locator = SpatialLocator(surface._graph, self._config)
        return surface
