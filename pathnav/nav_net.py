"""
Навигация по сети отрезков (дорожный граф).
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence
import numpy as np

from pathnav.builders import build_net_graph
from pathnav.geometry import magnitude, vec3
from pathnav.graph import ConnectivityGraph
from pathnav.refiner import dedupe_points
from pathnav.search import astar
from pathnav.settings import NavConfig
from pathnav.surface import NavSurface
from pathnav.types import Corridor, NavPathMode, NavQuery


class NavNet(NavSurface):
    """
    Сеть: вершины и соединяющие их отрезки.

    Точки запроса прижимаются к ближайшему отрезку, путь идёт по вершинам сети.
    Путь по сети уже натянут, поэтому режимы MID_POINTS и FUNNEL
    дают одинаковый результат.
    """

    KIND = "net"

    def __init__(
        self,
        vertices,
        connections: Sequence[tuple[int, int]],
        costs: Optional[Sequence[float]] = None,
        config: Optional[NavConfig] = None,
    ) -> None:
        """
        Args:
            vertices: (N, 2) или (N, 3) — вершины.
            connections: Пары индексов вершин.
            costs: Стоимость прохода через каждую вершину.
            config: Параметры навигации.

        Raises:
            InvalidTopology: индекс вершины вне диапазона.
        """
        graph = build_net_graph(vertices, connections, costs)
        super().__init__(graph, config)
        self._setup()

    def _setup(self) -> None:
        self._connections = np.array(
            [(p.region_a, p.region_b) for p in self._graph.portals], dtype=np.int64
        ).reshape(-1, 2)
        vertices = self.vertices.astype(np.float64)
        self._seg_a = vertices[self._connections[:, 0]]
        self._seg_b = vertices[self._connections[:, 1]]

    @classmethod
    def _from_graph(cls, graph: ConnectivityGraph, params: dict, config: NavConfig) -> NavNet:
        net = cls.__new__(cls)
        NavSurface.__init__(net, graph, config)
        net._setup()
        return net

    @property
    def connections(self) -> np.ndarray:
        return self._connections

    def origin(self) -> np.ndarray:
        """Среднее вершин."""
        return self.vertices.astype(np.float64).mean(axis=0)

    def scale(self, value: float, origin=None) -> NavNet:
        """Масштабировать сеть относительно origin (по умолчанию — среднее вершин)."""
        vertices = self.vertices.astype(np.float64)
        center = self.origin() if origin is None else vec3(origin).astype(np.float64)
        return NavNet(center + (vertices - center) * value, self._connections, self.costs, self._config)

    def find_closest_connection(self, point) -> Optional[tuple[int, np.ndarray]]:
        """
        Ближайший к точке отрезок сети.

        Returns:
            (индекс связи, ближайшая точка на ней) или None для пустой сети.
            При равных расстояниях — связь с меньшим индексом.
        """
        if len(self._connections) == 0:
            return None
        p = vec3(point).astype(np.float64)
        diff = self._seg_b - self._seg_a
        denom = np.maximum(np.einsum("ij,ij->i", diff, diff), 1e-12)
        t = np.clip(np.einsum("ij,ij->i", p - self._seg_a, diff) / denom, 0.0, 1.0)
        closest = self._seg_a + diff * t[:, None]
        distances = np.einsum("ij,ij->i", closest - p, closest - p)
        index = int(np.argmin(distances))
        return index, closest[index]

    def _clamp(self, point, query: NavQuery) -> Optional[tuple[int, np.ndarray]]:
        found = self.find_closest_connection(point)
        if found is None:
            return None
        index, closest = found
        if query == NavQuery.ACCURACY:
            distance = magnitude(closest - vec3(point).astype(np.float64))
            if distance > self._config.plane_tolerance:
                return None
        return index, closest

    def locate(self, point, query: NavQuery = NavQuery.ACCURACY) -> Optional[int]:
        """Ближайшая к точке вершина сети на ближайшей связи."""
        clamped = self._clamp(point, query)
        if clamped is None:
            return None
        index, closest = clamped
        return self._nearer_end(index, closest)

    def closest_point(self, point, query: NavQuery = NavQuery.CLOSEST) -> Optional[np.ndarray]:
        """Ближайшая точка сети."""
        clamped = self._clamp(point, query)
        if clamped is None:
            return None
        return clamped[1].astype(self.vertices.dtype)

    def _nearer_end(self, connection: int, point: np.ndarray) -> int:
        a, b = (int(v) for v in self._connections[connection])
        if magnitude(point - self._seg_a[connection]) <= magnitude(point - self._seg_b[connection]):
            return a
        return b

    def _clamp_ends(self, start, end, query: NavQuery):
        start_clamped = self._clamp(start, query)
        if start_clamped is None:
            return None
        end_clamped = self._clamp(end, query)
        if end_clamped is None:
            return None
        return start_clamped, end_clamped

    def _search(self, start_clamped, end_clamped, filter) -> Corridor:
        start_vertex = self._nearer_end(*start_clamped)
        end_vertex = self._nearer_end(*end_clamped)
        return astar(self._graph, start_vertex, end_vertex, filter)

    def find_corridor(
        self,
        start,
        end,
        query: NavQuery = NavQuery.ACCURACY,
        filter: Optional[Callable[[int, int], bool]] = None,
    ) -> tuple[Corridor, Optional[np.ndarray], Optional[np.ndarray]]:
        """
        Коридор вершин сети между ближайшими концами связей start и end.

        Returns:
            (corridor, start, end) — точки прижаты к своим связям.
            Пустой коридор, если точку не удалось прижать или пути нет.
        """
        ends = self._clamp_ends(start, end, query)
        if ends is None:
            return Corridor.empty(), None, None
        corridor = self._search(*ends, filter)
        dtype = self.vertices.dtype
        return corridor, ends[0][1].astype(dtype), ends[1][1].astype(dtype)

    def find_path_custom(
        self,
        start,
        end,
        query: NavQuery = NavQuery.ACCURACY,
        mode: NavPathMode = NavPathMode.FUNNEL,
        filter: Optional[Callable[[int, int], bool]] = None,
    ) -> Optional[list[np.ndarray]]:
        """
        Путь по сети между двумя точками.

        Точки прижимаются к ближайшим связям. Поиск идёт между ближайшими
        концами этих связей, затем прижатые точки вставляются в начало и конец.
        """
        ends = self._clamp_ends(start, end, query)
        if ends is None:
            return None

        (start_connection, start_point), (end_connection, end_point) = ends
        dtype = self.vertices.dtype

        if start_connection == end_connection:
            return [p.astype(dtype) for p in dedupe_points([start_point, end_point])]

        corridor = self._search(*ends, filter)
        if not corridor:
            return None

        vertices = self.vertices.astype(np.float64)
        regions = corridor.regions
        points = [vertices[region].copy() for region in regions]

        # Путь сразу идёт вдоль связи старта: первая вершина лишняя
        if len(regions) > 1 and self._joins(start_connection, regions[0], regions[1]):
            points[0] = start_point
        else:
            points.insert(0, start_point)

        if len(regions) > 1 and self._joins(end_connection, regions[-1], regions[-2]):
            points[-1] = end_point
        else:
            points.append(end_point)

        return [p.astype(dtype) for p in dedupe_points(points)]

    def _joins(self, connection: int, a: int, b: int) -> bool:
        """Соединяет ли связь вершины a и b."""
        return {int(v) for v in self._connections[connection]} == {a, b}
