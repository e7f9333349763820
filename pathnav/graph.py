"""
Граф связности: регионы (узлы) и порталы (рёбра).

Граф неизменяем после построения. Острова (компоненты связности)
вычисляются один раз при построении и хранятся в каждом регионе,
чтобы запросы между разными островами отсекались без поиска.

Разбиение на острова — BFS по регионам в порядке id. Union-find дал бы
почти O(1) на ребро, но BFS даёт нумерацию островов в порядке
обнаружения без дополнительной перенумерации.
"""

from __future__ import annotations

from collections import deque
from typing import Iterator, Optional, Sequence
import numpy as np

from pathnav import log
from pathnav.errors import InvalidTopology
from pathnav.types import Portal, Region


def partition_islands(region_count: int, portals: Sequence[Portal]) -> list[int]:
    """
    Разбить регионы на острова (слабо связные компоненты).

    Направление порталов игнорируется. Номера островов назначаются
    последовательно в порядке обнаружения, обход — в порядке id регионов
    и порядке добавления порталов. Изолированный регион — отдельный остров.

    Args:
        region_count: Количество регионов.
        portals: Порталы между регионами.

    Returns:
        Номер острова для каждого региона.
    """
    adjacency: list[list[int]] = [[] for _ in range(region_count)]
    for portal in portals:
        adjacency[portal.region_a].append(portal.region_b)
        adjacency[portal.region_b].append(portal.region_a)

    islands = [-1] * region_count
    next_island = 0

    for seed in range(region_count):
        if islands[seed] >= 0:
            continue

        islands[seed] = next_island
        queue = deque([seed])
        while queue:
            current = queue.popleft()
            for neighbor in adjacency[current]:
                if islands[neighbor] < 0:
                    islands[neighbor] = next_island
                    queue.append(neighbor)

        next_island += 1

    return islands


class ConnectivityGraph:
    """
    Граф связности навигационной поверхности.

    Создаётся через build() (с разбиением на острова)
    или from_parts() (острова уже известны, например при загрузке).
    """

    def __init__(
        self,
        vertices: np.ndarray,
        regions: list[Region],
        portals: list[Portal],
        islands: Sequence[int],
        costs: Optional[Sequence[float]] = None,
    ) -> None:
        region_count = len(regions)
        if len(islands) != region_count:
            raise InvalidTopology(
                f"Island ids count {len(islands)} does not match regions count {region_count}"
            )

        for index, region in enumerate(regions):
            if region.id != index:
                raise InvalidTopology(f"Region at position {index} has id {region.id}")

        self._vertices = vertices
        self._regions = regions
        self._portals = portals
        self._outgoing: list[list[int]] = [[] for _ in range(region_count)]

        for portal_index, portal in enumerate(portals):
            a, b = portal.region_a, portal.region_b
            if not (0 <= a < region_count and 0 <= b < region_count):
                raise InvalidTopology(
                    f"Portal {portal_index} references missing region ({a}, {b})"
                )
            if a == b:
                raise InvalidTopology(f"Portal {portal_index} is a self-loop on region {a}")
            if islands[a] != islands[b]:
                raise InvalidTopology(
                    f"Portal {portal_index} connects islands {islands[a]} and {islands[b]}"
                )
            self._outgoing[a].append(portal_index)
            if portal.bidirectional:
                self._outgoing[b].append(portal_index)

        for region, island in zip(regions, islands):
            region.island = int(island)

        self._island_count = (max(islands) + 1) if region_count else 0

        if costs is None:
            self._costs = np.ones(region_count, dtype=np.float64)
        else:
            costs = np.asarray(costs, dtype=np.float64)
            if costs.shape != (region_count,):
                raise InvalidTopology(
                    f"Costs count {costs.shape} does not match regions count {region_count}"
                )
            self._costs = np.maximum(costs, 0.0)

        self._has_geometry = region_count > 0 and all(r.centroid is not None for r in regions)
        if self._has_geometry:
            self._centroids = np.array([r.centroid for r in regions], dtype=np.float64)
        else:
            self._centroids = None

    @classmethod
    def build(
        cls,
        vertices: np.ndarray,
        regions: list[Region],
        portals: list[Portal],
        costs: Optional[Sequence[float]] = None,
    ) -> ConnectivityGraph:
        """Построить граф и разбить его на острова."""
        for portal_index, portal in enumerate(portals):
            for region_id in (portal.region_a, portal.region_b):
                if not 0 <= region_id < len(regions):
                    raise InvalidTopology(
                        f"Portal {portal_index} references missing region {region_id}"
                    )
        islands = partition_islands(len(regions), portals)
        graph = cls(vertices, regions, portals, islands, costs)
        log.debug(
            f"[ConnectivityGraph] {len(regions)} regions, {len(portals)} portals, "
            f"{graph.island_count} islands"
        )
        return graph

    @classmethod
    def from_parts(
        cls,
        vertices: np.ndarray,
        regions: list[Region],
        portals: list[Portal],
        islands: Sequence[int],
        costs: Optional[Sequence[float]] = None,
    ) -> ConnectivityGraph:
        """Собрать граф с готовыми номерами островов (без повторного разбиения)."""
        return cls(vertices, regions, portals, islands, costs)

    def with_costs(self, costs: Sequence[float]) -> ConnectivityGraph:
        """Тот же граф с другими стоимостями регионов."""
        return ConnectivityGraph(
            self._vertices,
            self._regions,
            self._portals,
            [r.island for r in self._regions],
            costs,
        )

    @property
    def vertices(self) -> np.ndarray:
        return self._vertices

    @property
    def regions(self) -> Sequence[Region]:
        return tuple(self._regions)

    @property
    def portals(self) -> Sequence[Portal]:
        return tuple(self._portals)

    @property
    def costs(self) -> np.ndarray:
        return self._costs.copy()

    @property
    def has_geometry(self) -> bool:
        """Есть ли у всех регионов центры (можно считать эвристику)."""
        return self._has_geometry

    @property
    def centroids(self) -> Optional[np.ndarray]:
        return self._centroids

    @property
    def island_count(self) -> int:
        return self._island_count

    def region_count(self) -> int:
        return len(self._regions)

    def portal_count(self) -> int:
        return len(self._portals)

    def region(self, region_id: int) -> Region:
        return self._regions[region_id]

    def cost(self, region_id: int) -> float:
        return float(self._costs[region_id])

    def island_of(self, region_id: int) -> int:
        return self._regions[region_id].island

    def region_polygon(self, region_id: int) -> np.ndarray:
        """Вершины региона, shape (K, 3)."""
        return self._vertices[list(self._regions[region_id].vertices)]

    def neighbors(self, region_id: int) -> Iterator[tuple[int, Portal]]:
        """Соседи региона (с учётом направления) в порядке добавления порталов."""
        for portal_index in self._outgoing[region_id]:
            portal = self._portals[portal_index]
            yield portal.other(region_id), portal

    def portal_between(self, region_a: int, region_b: int) -> Optional[Portal]:
        """Портал из region_a в region_b, ориентированный от region_a."""
        for neighbor, portal in self.neighbors(region_a):
            if neighbor == region_b:
                return portal.oriented_from(region_a)
        return None

    def islands(self) -> list[list[int]]:
        """Регионы, сгруппированные по островам."""
        groups: list[list[int]] = [[] for _ in range(self._island_count)]
        for region in self._regions:
            groups[region.island].append(region.id)
        return groups
