"""
Навигация по треугольной сетке.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence
import numpy as np

from pathnav import log
from pathnav.builders import build_adjacency, build_mesh_graph
from pathnav.geometry import normalize
from pathnav.graph import ConnectivityGraph
from pathnav.search import astar
from pathnav.settings import NavConfig
from pathnav.surface import NavSurface
from pathnav.triangulation import triangulate
from pathnav.types import NavQuery


class NavMesh(NavSurface):
    """
    Навигационная сетка из треугольников.

    Регион — треугольник, портал — общее ребро двух треугольников.

    Пример:
        mesh = NavMesh(vertices, triangles)
        path = mesh.find_path((0, 1, 0), (1.5, 0.25, 0.5),
                              NavQuery.ACCURACY, NavPathMode.MID_POINTS)
    """

    KIND = "mesh"

    def __init__(
        self,
        vertices,
        triangles,
        costs: Optional[Sequence[float]] = None,
        config: Optional[NavConfig] = None,
    ) -> None:
        """
        Args:
            vertices: (N, 2) или (N, 3) — вершины.
            triangles: (M, 3) — индексы вершин.
            costs: Стоимость прохода по каждому треугольнику.
            config: Параметры навигации.

        Raises:
            InvalidTopology: индекс вершины вне диапазона.
            DegenerateGeometry: треугольник нулевой площади.
        """
        graph = build_mesh_graph(vertices, triangles, costs)
        super().__init__(graph, config)
        self._setup()

    def _setup(self) -> None:
        self._triangles = np.array(
            [region.vertices for region in self._graph.regions], dtype=np.int32
        ).reshape(-1, 3)
        self._neighbors = build_adjacency(self._triangles, self._graph.portals)

    @classmethod
    def _from_graph(cls, graph: ConnectivityGraph, params: dict, config: NavConfig) -> NavMesh:
        mesh = cls.__new__(cls)
        NavSurface.__init__(mesh, graph, config)
        mesh._setup()
        return mesh

    @classmethod
    def from_points(
        cls,
        points,
        costs: Optional[Sequence[float]] = None,
        config: Optional[NavConfig] = None,
    ) -> NavMesh:
        """
        Построить сетку по набору точек через триангуляцию Делоне.

        Raises:
            DegenerateInput: меньше трёх точек или все на одной прямой.
        """
        vertices, triangles = triangulate(points)
        log.debug(f"[NavMesh] Triangulated {len(vertices)} points into {len(triangles)} triangles")
        return cls(vertices, triangles, costs, config)

    @property
    def triangles(self) -> np.ndarray:
        return self._triangles

    @property
    def neighbors(self) -> np.ndarray:
        """(M, 3) — сосед по каждому ребру треугольника, -1 = нет соседа."""
        return self._neighbors

    def find_path_triangles(
        self,
        from_triangle: int,
        to_triangle: int,
        filter: Optional[Callable[[int, int], bool]] = None,
    ) -> Optional[tuple[list[int], float]]:
        """
        Путь по треугольникам.

        Returns:
            (список индексов треугольников, стоимость) или None.
        """
        count = self.region_count()
        if not (0 <= from_triangle < count and 0 <= to_triangle < count):
            return None
        corridor = astar(self._graph, from_triangle, to_triangle, filter)
        if not corridor:
            return None
        return list(corridor.regions), corridor.cost

    def find_closest_triangle(self, point, query: NavQuery = NavQuery.CLOSEST) -> Optional[int]:
        """Треугольник, содержащий точку, или ближайший (в режиме CLOSEST)."""
        return self._locator.locate(point, query)

    def vertex_normals(self) -> np.ndarray:
        """Нормали вершин: нормализованная сумма нормалей прилегающих треугольников."""
        normals = np.zeros((len(self.vertices), 3), dtype=np.float64)
        for region in self._graph.regions:
            for index in region.vertices:
                normals[index] += region.normal
        return np.array([normalize(n) for n in normals])

    def thicken(self, value: float) -> NavMesh:
        """
        Сдвинуть вершины вдоль нормалей на value.

        Returns:
            Новый NavMesh с той же топологией.
        """
        vertices = self.vertices.astype(np.float64) + self.vertex_normals() * value
        return NavMesh(vertices, self._triangles, self.costs, self._config)

    def scale(self, value: float, origin=None) -> NavMesh:
        """
        Масштабировать сетку относительно origin (по умолчанию — среднее вершин).

        Returns:
            Новый NavMesh.
        """
        vertices = self.vertices.astype(np.float64)
        center = vertices.mean(axis=0) if origin is None else np.asarray(origin, dtype=np.float64)
        return NavMesh(center + (vertices - center) * value, self._triangles, self.costs, self._config)
