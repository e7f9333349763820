"""
A* поиск коридора по графу связности.
"""

from __future__ import annotations

from typing import Callable, Optional
import heapq
import numpy as np

from pathnav import log
from pathnav.graph import ConnectivityGraph
from pathnav.types import Corridor, Portal


EdgeFilter = Callable[[int, int], bool]
"""filter(region_from, region_to) -> bool; False исключает ребро из поиска."""


def astar(
    graph: ConnectivityGraph,
    start: int,
    goal: int,
    edge_filter: Optional[EdgeFilter] = None,
) -> Corridor:
    """
    A* поиск пути между регионами.

    Стоимость ребра: portal.cost * cost[a] * cost[b].
    Эвристика: расстояние между центрами регионов, умноженное на квадрат
    минимальной стоимости региона. Для графов без геометрии эвристика
    нулевая (поиск Дейкстры).

    При равных f раньше раскрывается узел, добавленный в очередь первым.

    Args:
        graph: Граф связности.
        start: Стартовый регион.
        goal: Целевой регион.
        edge_filter: Дополнительный фильтр рёбер.

    Returns:
        Коридор от start до goal или пустой коридор, если пути нет.
    """
    if graph.island_of(start) != graph.island_of(goal):
        log.debug(
            f"[astar] Regions {start} and {goal} are on different islands "
            f"({graph.island_of(start)}, {graph.island_of(goal)})"
        )
        return Corridor.empty()

    if start == goal:
        return Corridor(regions=(start,), portals=(), cost=0.0)

    costs = graph.costs
    centroids = graph.centroids
    if centroids is not None:
        goal_center = centroids[goal]
        scale = float(costs.min()) ** 2 if len(costs) else 0.0

        def heuristic(region: int) -> float:
            return scale * float(np.linalg.norm(centroids[region] - goal_center))
    else:
        def heuristic(region: int) -> float:
            return 0.0

    # (f_score, counter, region)
    counter = 0
    open_set: list[tuple[float, int, int]] = [(heuristic(start), counter, start)]
    came_from: dict[int, tuple[int, Portal]] = {}
    g_score: dict[int, float] = {start: 0.0}
    closed: set[int] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)

        if current in closed:
            continue
        closed.add(current)

        if current == goal:
            # Восстанавливаем путь
            regions = [current]
            portals: list[Portal] = []
            while current in came_from:
                previous, portal = came_from[current]
                portals.append(portal.oriented_from(previous))
                regions.append(previous)
                current = previous
            return Corridor(
                regions=tuple(reversed(regions)),
                portals=tuple(reversed(portals)),
                cost=g_score[goal],
            )

        for neighbor, portal in graph.neighbors(current):
            if neighbor in closed:
                continue
            if edge_filter is not None and not edge_filter(current, neighbor):
                continue

            weight = portal.cost * float(costs[current]) * float(costs[neighbor])
            tentative_g = g_score[current] + weight

            if neighbor not in g_score or tentative_g < g_score[neighbor]:
                came_from[neighbor] = (current, portal)
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(open_set, (tentative_g + heuristic(neighbor), counter, neighbor))

    return Corridor.empty()
