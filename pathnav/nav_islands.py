"""
Абстрактный граф островов и порталов между ними.

Используется для иерархического поиска: узлы — острова других
навигационных структур и точки перехода (порталы) между ними,
веса рёбер задаются явно.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Hashable, Optional, Sequence

from pathnav.builders import build_abstract_graph
from pathnav.graph import ConnectivityGraph
from pathnav.search import astar
from pathnav.settings import NavConfig


@dataclass(frozen=True)
class NavIslandPortal:
    """Узел графа: остров и (необязательно) портал на нём."""

    island: Hashable
    portal: Optional[Hashable] = None


@dataclass(frozen=True)
class NavIslandsConnection:
    """Ребро графа с явной длиной."""

    from_: NavIslandPortal
    to: NavIslandPortal
    distance: float


def _freeze(value):
    """JSON списки обратно в кортежи, чтобы ключи были хешируемыми."""
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


class NavIslands:
    """
    Граф узлов NavIslandPortal.

    Пример:
        islands = NavIslands([
            NavIslandsConnection(NavIslandPortal(0), NavIslandPortal(0, (1, 0)), 1.0),
            NavIslandsConnection(NavIslandPortal(0, (1, 0)), NavIslandPortal(1, (0, 0)), 0.0),
            NavIslandsConnection(NavIslandPortal(1, (0, 0)), NavIslandPortal(1), 1.0),
        ], both_ways=True)
        distance, nodes = islands.find_path(NavIslandPortal(0), NavIslandPortal(1))
    """

    KIND = "islands"

    def __init__(
        self,
        connections: Sequence[NavIslandsConnection],
        both_ways: bool = True,
        costs: Optional[Sequence[float]] = None,
        config: Optional[NavConfig] = None,
    ) -> None:
        nodes: list[NavIslandPortal] = []
        index: dict[NavIslandPortal, int] = {}
        for connection in connections:
            for node in (connection.from_, connection.to):
                if node not in index:
                    index[node] = len(nodes)
                    nodes.append(node)

        graph = build_abstract_graph(
            nodes,
            [(c.from_, c.to, c.distance) for c in connections],
            both_ways=both_ways,
            costs=costs,
        )
        self._setup(graph, nodes, list(connections), both_ways, config)

    def _setup(
        self,
        graph: ConnectivityGraph,
        nodes: list[NavIslandPortal],
        connections: list[NavIslandsConnection],
        both_ways: bool,
        config: Optional[NavConfig],
    ) -> None:
        self._graph = graph
        self._nodes = nodes
        self._index = {node: i for i, node in enumerate(nodes)}
        self._connections = connections
        self._both_ways = both_ways
        self._config = config or NavConfig()

    @classmethod
    def _from_graph(cls, graph: ConnectivityGraph, params: dict, config: NavConfig) -> NavIslands:
        islands = cls.__new__(cls)
        nodes = [NavIslandPortal(_freeze(island), _freeze(portal)) for island, portal in params["nodes"]]
        connections = [
            NavIslandsConnection(nodes[portal.region_a], nodes[portal.region_b], portal.cost)
            for portal in graph.portals
        ]
        islands._setup(graph, nodes, connections, params["both_ways"], config)
        return islands

    def _params(self) -> dict:
        return {
            "nodes": [[node.island, node.portal] for node in self._nodes],
            "both_ways": self._both_ways,
        }

    @property
    def graph(self) -> ConnectivityGraph:
        return self._graph

    @property
    def config(self) -> NavConfig:
        return self._config

    @property
    def nodes(self) -> list[NavIslandPortal]:
        return list(self._nodes)

    @property
    def connections(self) -> list[NavIslandsConnection]:
        return list(self._connections)

    @property
    def both_ways(self) -> bool:
        return self._both_ways

    @property
    def costs(self):
        return self._graph.costs

    def find_path(
        self,
        from_: NavIslandPortal,
        to: NavIslandPortal,
    ) -> Optional[tuple[float, list[NavIslandPortal]]]:
        """
        Кратчайший путь между узлами.

        Returns:
            (длина, список узлов) или None.
        """
        return self.find_path_custom(from_, to, None)

    def find_path_custom(
        self,
        from_: NavIslandPortal,
        to: NavIslandPortal,
        filter: Optional[Callable[[NavIslandPortal, NavIslandPortal], bool]] = None,
    ) -> Optional[tuple[float, list[NavIslandPortal]]]:
        """find_path с фильтром рёбер filter(from, to) -> bool."""
        start = self._index.get(from_)
        goal = self._index.get(to)
        if start is None or goal is None:
            return None

        edge_filter = None
        if filter is not None:
            nodes = self._nodes
            edge_filter = lambda a, b: filter(nodes[a], nodes[b])

        corridor = astar(self._graph, start, goal, edge_filter)
        if not corridor:
            return None
        return corridor.cost, [self._nodes[region] for region in corridor.regions]

    def neighbors(self, node: NavIslandPortal) -> list[NavIslandPortal]:
        """Узлы, достижимые из node за один переход."""
        region = self._index.get(node)
        if region is None:
            return []
        return [self._nodes[neighbor] for neighbor, _ in self._graph.neighbors(region)]

    def find_islands(self) -> list[list[NavIslandPortal]]:
        """Узлы, сгруппированные по компонентам связности."""
        return [[self._nodes[r] for r in group] for group in self._graph.islands()]

    def with_costs(self, costs: Sequence[float]) -> NavIslands:
        """Тот же граф с другими стоимостями узлов."""
        islands = NavIslands.__new__(NavIslands)
        islands._setup(
            self._graph.with_costs(costs),
            self._nodes,
            self._connections,
            self._both_ways,
            self._config,
        )
        return islands
