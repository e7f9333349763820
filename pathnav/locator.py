"""
Поиск региона, содержащего точку.

Кандидаты отбираются по AABB регионов, расширенным на plane_tolerance,
затем точка проецируется на плоскость каждого кандидата и проверяется
попадание в полигон.
"""

from __future__ import annotations

from typing import Optional
import numpy as np

from pathnav.geometry import (
    closest_point_on_polygon,
    point_in_polygon,
    sqr_magnitude,
    vec3,
)
from pathnav.graph import ConnectivityGraph
from pathnav.settings import NavConfig
from pathnav.types import NavQuery


class SpatialLocator:
    """
    Локатор регионов поверх неизменяемого графа.

    Учитываются только регионы с площадью; абстрактные узлы и вершины
    сети не локализуются.
    """

    def __init__(self, graph: ConnectivityGraph, config: Optional[NavConfig] = None) -> None:
        self._graph = graph
        self._config = config or NavConfig()

        ids = [r.id for r in graph.regions if r.has_area]
        self._ids = np.array(ids, dtype=np.int64)
        self._polygons = [graph.region_polygon(i).astype(np.float64) for i in ids]
        self._normals = [graph.region(i).normal.astype(np.float64) for i in ids]

        if ids:
            self._mins = np.array([p.min(axis=0) for p in self._polygons])
            self._maxs = np.array([p.max(axis=0) for p in self._polygons])
        else:
            self._mins = np.zeros((0, 3))
            self._maxs = np.zeros((0, 3))

    @property
    def config(self) -> NavConfig:
        return self._config

    def _candidates(self, point: np.ndarray) -> np.ndarray:
        """Позиции регионов, чей расширенный AABB содержит точку."""
        tol = self._config.plane_tolerance
        inside = np.all((self._mins - tol <= point) & (point <= self._maxs + tol), axis=1)
        return np.nonzero(inside)[0]

    def find_containing(self, point) -> Optional[int]:
        """
        Регион, содержащий точку.

        Из нескольких подходящих выбирается ближайший по высоте над плоскостью,
        при равенстве — с меньшим id.
        """
        p = vec3(point).astype(np.float64)
        eps = self._config.zero_threshold
        best_id: Optional[int] = None
        best_dist = float("inf")

        for pos in self._candidates(p):
            dist = point_in_polygon(
                p,
                self._polygons[pos],
                self._normals[pos],
                tolerance=self._config.plane_tolerance,
                eps=eps,
            )
            if dist is None:
                continue
            if dist < best_dist - eps:
                best_dist = dist
                best_id = int(self._ids[pos])

        return best_id

    def find_closest(self, point) -> Optional[tuple[int, np.ndarray]]:
        """
        Ближайший регион и ближайшая точка на нём.

        При равных расстояниях выбирается регион с меньшим id.
        """
        p = vec3(point).astype(np.float64)
        eps = self._config.zero_threshold
        best: Optional[tuple[int, np.ndarray]] = None
        best_dist = float("inf")

        for pos in range(len(self._ids)):
            candidate = closest_point_on_polygon(p, self._polygons[pos], self._normals[pos], eps=eps)
            dist = sqr_magnitude(p - candidate)
            if dist < best_dist - eps:
                best_dist = dist
                best = (int(self._ids[pos]), candidate)

        return best

    def locate(self, point, mode: NavQuery = NavQuery.ACCURACY) -> Optional[int]:
        """Найти регион для точки. None, если не найден."""
        located = self.locate_clamped(point, mode)
        if located is None:
            return None
        return located[0]

    def locate_clamped(
        self,
        point,
        mode: NavQuery = NavQuery.ACCURACY,
    ) -> Optional[tuple[int, np.ndarray]]:
        """
        Найти регион и точку, с которой начинается путь.

        В режиме ACCURACY точка возвращается как есть. В режиме CLOSEST точка
        вне всех регионов прижимается к ближайшему.
        """
        p = vec3(point)
        region_id = self.find_containing(p)
        if region_id is not None:
            return region_id, p.copy()

        if mode != NavQuery.CLOSEST:
            return None

        closest = self.find_closest(p)
        if closest is None:
            return None
        region_id, clamped = closest
        return region_id, clamped.astype(p.dtype)

    def closest_point(self, point, mode: NavQuery = NavQuery.CLOSEST) -> Optional[np.ndarray]:
        """Точка на поверхности для point (сама точка, если она внутри)."""
        located = self.locate_clamped(point, mode)
        if located is None:
            return None
        return located[1]
