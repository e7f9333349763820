"""
Построители графа связности для разных видов поверхностей.

Каждый построитель превращает своё описание поверхности в общий
ConnectivityGraph: регионы — узлы, порталы — общие границы соседних
регионов, вес ребра — расстояние между центрами регионов.
Острова вычисляются внутри ConnectivityGraph.build().
"""

from __future__ import annotations

import math
from typing import Hashable, Optional, Sequence
import numpy as np
from scipy.spatial import cKDTree

from pathnav import log
from pathnav.errors import DegenerateGeometry, InvalidTopology
from pathnav.geometry import (
    as_points,
    magnitude,
    polygon_centroid,
    is_degenerate_triangle,
    triangle_normal,
)
from pathnav.graph import ConnectivityGraph
from pathnav.settings import SCALAR, ZERO_THRESHOLD
from pathnav.types import Portal, Region


# 4-связность: только «вперёд», обратные рёбра даёт двунаправленный портал
GRID_STEPS_4 = [(1, 0), (0, 1)]

# 8-связность
GRID_STEPS_8 = [(1, 0), (0, 1), (1, 1), (-1, 1)]


# ---------------------------------------------------------------------------
# Mesh
# ---------------------------------------------------------------------------


def validate_triangles(vertices: np.ndarray, triangles: np.ndarray) -> None:
    """
    Проверить индексы и площадь треугольников.

    Raises:
        InvalidTopology: индекс вершины вне диапазона.
        DegenerateGeometry: треугольник нулевой площади.
    """
    vertex_count = len(vertices)
    for tri_idx in range(len(triangles)):
        t = triangles[tri_idx]
        for local in range(3):
            index = int(t[local])
            if not 0 <= index < vertex_count:
                log.warn(f"[build_mesh_graph] Triangle {tri_idx} vertex {local} index {index} out of bounds")
                raise InvalidTopology(
                    f"Triangle {tri_idx} references vertex {index} "
                    f"(local {local}), but there are {vertex_count} vertices",
                    triangle=tri_idx,
                    local_index=local,
                    vertex_index=index,
                )

        a, b, c = vertices[t[0]], vertices[t[1]], vertices[t[2]]
        if is_degenerate_triangle(a, b, c):
            log.warn(f"[build_mesh_graph] Triangle {tri_idx} has zero area")
            raise DegenerateGeometry(f"Triangle {tri_idx} has zero area", triangle=tri_idx)


def build_adjacency(triangles: np.ndarray, portals: Sequence[Portal]) -> np.ndarray:
    """
    Массив смежности треугольников по рёбрам.

    Returns:
        neighbors: (M, 3) — neighbors[t, e] = сосед по ребру e, или -1.
                   Ребро 0: вершины (0, 1), ребро 1: (1, 2), ребро 2: (2, 0).
    """
    m = len(triangles)
    neighbors = np.full((m, 3), -1, dtype=np.int32)
    pairs = {(p.region_a, p.region_b) for p in portals}
    pairs |= {(b, a) for a, b in pairs}

    edge_to_tris: dict[tuple[int, int], list[int]] = {}
    for tri_idx in range(m):
        t = triangles[tri_idx]
        for edge_idx in range(3):
            v0 = int(t[edge_idx])
            v1 = int(t[(edge_idx + 1) % 3])
            edge_to_tris.setdefault((min(v0, v1), max(v0, v1)), []).append(tri_idx)

    for tri_idx in range(m):
        t = triangles[tri_idx]
        for edge_idx in range(3):
            v0 = int(t[edge_idx])
            v1 = int(t[(edge_idx + 1) % 3])
            for other in edge_to_tris[(min(v0, v1), max(v0, v1))]:
                if other != tri_idx and (tri_idx, other) in pairs:
                    neighbors[tri_idx, edge_idx] = other
                    break

    return neighbors


def build_mesh_graph(
    vertices,
    triangles,
    costs: Optional[Sequence[float]] = None,
) -> ConnectivityGraph:
    """
    Построить граф по треугольной сетке.

    Два треугольника соседи, если у них ровно одно общее ребро.
    Портал — общее ребро, стоимость — расстояние между центроидами.

    Args:
        vertices: (N, 3) — вершины.
        triangles: (M, 3) — индексы вершин треугольников.
        costs: Стоимость прохода по каждому треугольнику.

    Raises:
        InvalidTopology: индекс вершины вне диапазона.
        DegenerateGeometry: треугольник нулевой площади.
    """
    vertices = as_points(vertices)
    triangles = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)

    validate_triangles(vertices, triangles)

    regions: list[Region] = []
    for tri_idx in range(len(triangles)):
        t = triangles[tri_idx]
        a, b, c = vertices[t[0]], vertices[t[1]], vertices[t[2]]
        regions.append(Region(
            id=tri_idx,
            vertices=(int(t[0]), int(t[1]), int(t[2])),
            centroid=(a + b + c) / 3.0,
            normal=triangle_normal(a, b, c),
        ))

    # edge -> треугольники, в порядке обхода
    edge_to_tris: dict[tuple[int, int], list[tuple[int, int, int]]] = {}
    for tri_idx in range(len(triangles)):
        t = triangles[tri_idx]
        for edge_idx in range(3):
            v0 = int(t[edge_idx])
            v1 = int(t[(edge_idx + 1) % 3])
            # Нормализуем ребро (меньший индекс первым)
            edge = (min(v0, v1), max(v0, v1))
            edge_to_tris.setdefault(edge, []).append((tri_idx, v0, v1))

    # Пары треугольников с несколькими общими рёбрами не считаются соседями
    shared_edges: dict[tuple[int, int], int] = {}
    for users in edge_to_tris.values():
        for i in range(len(users)):
            for j in range(i + 1, len(users)):
                key = (min(users[i][0], users[j][0]), max(users[i][0], users[j][0]))
                shared_edges[key] = shared_edges.get(key, 0) + 1

    portals: list[Portal] = []
    seen: set[tuple[int, int]] = set()
    for tri_idx in range(len(triangles)):
        t = triangles[tri_idx]
        for edge_idx in range(3):
            v0 = int(t[edge_idx])
            v1 = int(t[(edge_idx + 1) % 3])
            for other, _, _ in edge_to_tris[(min(v0, v1), max(v0, v1))]:
                if other == tri_idx:
                    continue
                key = (min(tri_idx, other), max(tri_idx, other))
                if key in seen or shared_edges[key] != 1:
                    continue
                seen.add(key)
                portals.append(Portal(
                    region_a=tri_idx,
                    region_b=other,
                    a=vertices[v0].copy(),
                    b=vertices[v1].copy(),
                    cost=magnitude(regions[tri_idx].centroid - regions[other].centroid),
                ))

    return ConnectivityGraph.build(vertices, regions, portals, costs)


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


def grid_shape(cells: np.ndarray) -> tuple[int, int, int]:
    """(levels, rows, cols) для 2D или 3D массива ячеек."""
    if cells.ndim == 2:
        rows, cols = cells.shape
        return 1, rows, cols
    if cells.ndim == 3:
        return cells.shape
    raise InvalidTopology(f"Grid cells must be a 2-D or 3-D array, got {cells.ndim}-D")


def _grid_lattice(
    levels: int,
    rows: int,
    cols: int,
    cell_size: float,
    origin: np.ndarray,
) -> np.ndarray:
    """Узлы решётки (углы ячеек) для всех уровней."""
    ll, rr, cc = np.meshgrid(
        np.arange(levels), np.arange(rows + 1), np.arange(cols + 1), indexing="ij"
    )
    lattice = np.stack([cc, rr, ll], axis=-1).reshape(-1, 3).astype(np.float64)
    return (origin + lattice * cell_size).astype(SCALAR)


def build_grid_graph(
    cells,
    cell_size: float = 1.0,
    origin=None,
    diagonal: bool = False,
    corner_cutting: bool = False,
    connections: Optional[Sequence[tuple[tuple, tuple]]] = None,
    costs: Optional[Sequence[float]] = None,
) -> tuple[ConnectivityGraph, list[tuple[int, ...]]]:
    """
    Построить граф по плотной сетке ячеек.

    Ячейка (col, row) занимает квадрат [col, col+1] x [row, row+1] (в единицах
    cell_size) на высоте level * cell_size. Регионы — проходимые ячейки
    в порядке (level, row, col).

    Args:
        cells: bool массив (rows, cols) или (levels, rows, cols).
        cell_size: Размер ячейки в мировых координатах.
        origin: Начало координат сетки.
        diagonal: 8-связность вместо 4-связности.
        corner_cutting: Разрешить диагональный шаг мимо непроходимых ячеек.
        connections: Явные направленные связи ((col, row), (col, row)) между
                     соседними ячейками. Заменяют автоматическую смежность.
        costs: Стоимость прохода по каждому региону.

    Returns:
        (graph, cell_coords) — граф и координаты ячейки каждого региона.
    """
    cells = np.asarray(cells, dtype=bool)
    levels, rows, cols = grid_shape(cells)
    if levels == 0 or rows == 0 or cols == 0:
        raise InvalidTopology(f"Grid is empty: {cols} cols, {rows} rows, {levels} levels")
    cells3 = cells.reshape(levels, rows, cols)

    origin = np.zeros(3) if origin is None else np.asarray(origin, dtype=np.float64)
    vertices = _grid_lattice(levels, rows, cols, cell_size, origin)

    def lattice_index(level: int, row: int, col: int) -> int:
        return (level * (rows + 1) + row) * (cols + 1) + col

    region_of = np.full((levels, rows, cols), -1, dtype=np.int64)
    regions: list[Region] = []
    coords: list[tuple[int, ...]] = []
    normal = np.array([0.0, 0.0, 1.0], dtype=SCALAR)

    for level in range(levels):
        for row in range(rows):
            for col in range(cols):
                if not cells3[level, row, col]:
                    continue
                polygon = (
                    lattice_index(level, row, col),
                    lattice_index(level, row, col + 1),
                    lattice_index(level, row + 1, col + 1),
                    lattice_index(level, row + 1, col),
                )
                region_id = len(regions)
                region_of[level, row, col] = region_id
                regions.append(Region(
                    id=region_id,
                    vertices=polygon,
                    centroid=polygon_centroid(vertices[list(polygon)]),
                    normal=normal.copy(),
                ))
                coords.append((col, row) if cells.ndim == 2 else (col, row, level))

    def make_portal(level: int, row: int, col: int, dc: int, dr: int, bidirectional: bool) -> Portal:
        a_id = int(region_of[level, row, col])
        b_id = int(region_of[level, row + dr, col + dc])
        if dc != 0 and dr != 0:
            # Диагональ: общий угол
            corner = vertices[lattice_index(level, row + max(dr, 0), col + max(dc, 0))]
            a, b = corner.copy(), corner.copy()
        elif dc != 0:
            x = col + max(dc, 0)
            a = vertices[lattice_index(level, row, x)].copy()
            b = vertices[lattice_index(level, row + 1, x)].copy()
        else:
            y = row + max(dr, 0)
            a = vertices[lattice_index(level, y, col)].copy()
            b = vertices[lattice_index(level, y, col + 1)].copy()
        return Portal(
            region_a=a_id,
            region_b=b_id,
            a=a,
            b=b,
            cost=cell_size * math.hypot(dc, dr),
            bidirectional=bidirectional,
        )

    portals: list[Portal] = []

    if connections is None:
        steps = GRID_STEPS_8 if diagonal else GRID_STEPS_4
        for level in range(levels):
            for row in range(rows):
                for col in range(cols):
                    if region_of[level, row, col] < 0:
                        continue
                    for dc, dr in steps:
                        c2, r2 = col + dc, row + dr
                        if not (0 <= c2 < cols and 0 <= r2 < rows):
                            continue
                        if region_of[level, r2, c2] < 0:
                            continue
                        if dc != 0 and dr != 0 and not corner_cutting:
                            if region_of[level, row, c2] < 0 or region_of[level, r2, col] < 0:
                                continue
                        portals.append(make_portal(level, row, col, dc, dr, True))
    else:
        for index, (source, target) in enumerate(connections):
            for coord in (source, target):
                col, row = int(coord[0]), int(coord[1])
                level = int(coord[2]) if len(coord) > 2 else 0
                if not (0 <= col < cols and 0 <= row < rows and 0 <= level < levels):
                    raise InvalidTopology(
                        f"Connection {index} uses cell ({col}, {row}) outside of "
                        f"{cols} cols x {rows} rows"
                    )
                if region_of[level, row, col] < 0:
                    raise InvalidTopology(f"Connection {index} uses impassable cell ({col}, {row})")
            level = int(source[2]) if len(source) > 2 else 0
            target_level = int(target[2]) if len(target) > 2 else 0
            dc = int(target[0]) - int(source[0])
            dr = int(target[1]) - int(source[1])
            if target_level != level or max(abs(dc), abs(dr)) != 1:
                raise InvalidTopology(
                    f"Connection {index} links non-neighbouring cells {tuple(source)} -> {tuple(target)}"
                )
            portals.append(make_portal(level, int(source[1]), int(source[0]), dc, dr, False))

    graph = ConnectivityGraph.build(vertices, regions, portals, costs)
    return graph, coords


# ---------------------------------------------------------------------------
# Free grid
# ---------------------------------------------------------------------------


def _cell_square(cell: np.ndarray) -> np.ndarray:
    """Квадрат ячейки в единицах сетки (CCW)."""
    x, y, z = float(cell[0]), float(cell[1]), float(cell[2])
    return np.array([
        [x, y, z],
        [x + 1.0, y, z],
        [x + 1.0, y + 1.0, z],
        [x, y + 1.0, z],
    ])


def free_cells_portal(cell_a: np.ndarray, cell_b: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Общая граница квадратов двух ячеек (в единицах сетки).

    Касание по стороне — отрезок, по углу — точка. Если квадраты
    не соприкасаются (разрыв, разные высоты), портал — точка посередине
    между центрами.
    """
    dx = float(cell_b[0] - cell_a[0])
    dy = float(cell_b[1] - cell_a[1])
    same_level = abs(float(cell_b[2] - cell_a[2])) < ZERO_THRESHOLD
    z = float(cell_a[2])

    if same_level and abs(abs(dx) - 1.0) < ZERO_THRESHOLD and abs(dy) < 1.0 - ZERO_THRESHOLD:
        x = max(float(cell_a[0]), float(cell_b[0]))
        y0 = max(float(cell_a[1]), float(cell_b[1]))
        y1 = min(float(cell_a[1]), float(cell_b[1])) + 1.0
        return np.array([x, y0, z]), np.array([x, y1, z])

    if same_level and abs(abs(dy) - 1.0) < ZERO_THRESHOLD and abs(dx) < 1.0 - ZERO_THRESHOLD:
        y = max(float(cell_a[1]), float(cell_b[1]))
        x0 = max(float(cell_a[0]), float(cell_b[0]))
        x1 = min(float(cell_a[0]), float(cell_b[0])) + 1.0
        return np.array([x0, y, z]), np.array([x1, y, z])

    if same_level and abs(abs(dx) - 1.0) < ZERO_THRESHOLD and abs(abs(dy) - 1.0) < ZERO_THRESHOLD:
        corner = np.array([
            max(float(cell_a[0]), float(cell_b[0])),
            max(float(cell_a[1]), float(cell_b[1])),
            z,
        ])
        return corner, corner.copy()

    middle = (cell_a + cell_b) * 0.5 + np.array([0.5, 0.5, 0.0])
    return middle, middle.copy()


def _unique_cells(cells: np.ndarray) -> np.ndarray:
    """Убрать повторяющиеся ячейки, сохранив порядок первого появления."""
    seen: dict[tuple[float, float, float], int] = {}
    for cell in cells:
        key = (float(cell[0]), float(cell[1]), float(cell[2]))
        if key not in seen:
            seen[key] = len(seen)
    if len(seen) != len(cells):
        log.debug(f"[build_free_grid_graph] Dropped {len(cells) - len(seen)} duplicate cells")
    return np.array(list(seen.keys()), dtype=np.float64).reshape(-1, 3)


def build_free_grid_graph(
    cells,
    radius: Optional[float] = 1.0,
    cell_size: float = 1.0,
    origin=None,
    connections: Optional[Sequence[tuple[int, int]]] = None,
    costs: Optional[Sequence[float]] = None,
) -> tuple[ConnectivityGraph, np.ndarray]:
    """
    Построить граф по разреженному набору ячеек.

    Ячейки соседи, если их центры ближе radius (в единицах сетки).
    Пары ищутся через cKDTree, без плотного массива.

    Args:
        cells: (N, 2) или (N, 3) — координаты ячеек в единицах сетки.
        radius: Порог расстояния между центрами соседей.
        cell_size: Размер ячейки в мировых координатах.
        origin: Начало координат.
        connections: Явные пары индексов ячеек вместо поиска по радиусу.
        costs: Стоимость прохода по каждой ячейке.

    Returns:
        (graph, cells) — граф и координаты ячеек (N, 3) в порядке регионов.
    """
    points = as_points(cells).astype(np.float64)
    cells = _unique_cells(points)
    if connections is not None and len(cells) != len(points):
        raise InvalidTopology("Free grid cells referenced by connections must be unique")
    origin = np.zeros(3) if origin is None else np.asarray(origin, dtype=np.float64)

    def to_world(units: np.ndarray) -> np.ndarray:
        return (origin + units * cell_size).astype(SCALAR)

    vertices = np.zeros((len(cells) * 4, 3), dtype=SCALAR)
    regions: list[Region] = []
    normal = np.array([0.0, 0.0, 1.0], dtype=SCALAR)

    for index, cell in enumerate(cells):
        vertices[index * 4:index * 4 + 4] = to_world(_cell_square(cell))
        polygon = tuple(range(index * 4, index * 4 + 4))
        regions.append(Region(
            id=index,
            vertices=polygon,
            centroid=polygon_centroid(vertices[list(polygon)]),
            normal=normal.copy(),
        ))

    if connections is None:
        if radius is None or radius <= 0.0:
            raise InvalidTopology(f"Free grid radius must be positive, got {radius}")
        if len(cells) > 1:
            tree = cKDTree(cells)
            pairs = sorted(tree.query_pairs(r=radius + ZERO_THRESHOLD))
        else:
            pairs = []
    else:
        pairs = []
        for index, (a, b) in enumerate(connections):
            for i in (a, b):
                if not 0 <= int(i) < len(cells):
                    raise InvalidTopology(f"Connection {index} references missing cell {i}")
            pairs.append((int(a), int(b)))

    portals: list[Portal] = []
    for i, j in pairs:
        a, b = free_cells_portal(cells[i], cells[j])
        portals.append(Portal(
            region_a=i,
            region_b=j,
            a=to_world(a),
            b=to_world(b),
            cost=magnitude(regions[i].centroid - regions[j].centroid),
        ))

    graph = ConnectivityGraph.build(vertices, regions, portals, costs)
    return graph, cells


# ---------------------------------------------------------------------------
# Net
# ---------------------------------------------------------------------------


def build_net_graph(
    vertices,
    connections: Sequence[tuple[int, int]],
    costs: Optional[Sequence[float]] = None,
) -> ConnectivityGraph:
    """
    Построить граф по сети отрезков.

    Регионы — вершины сети (без площади), порталы — связи,
    стоимость связи — её длина.

    Raises:
        InvalidTopology: индекс вершины вне диапазона.
    """
    vertices = as_points(vertices)
    regions = [
        Region(id=i, vertices=(i,), centroid=vertices[i].copy())
        for i in range(len(vertices))
    ]

    portals: list[Portal] = []
    for index, connection in enumerate(connections):
        for local in range(2):
            vertex = int(connection[local])
            if not 0 <= vertex < len(vertices):
                log.warn(f"[build_net_graph] Connection {index} vertex {local} index {vertex} out of bounds")
                raise InvalidTopology(
                    f"Connection {index} references vertex {vertex} "
                    f"(local {local}), but there are {len(vertices)} vertices",
                    triangle=index,
                    local_index=local,
                    vertex_index=vertex,
                )
        a, b = int(connection[0]), int(connection[1])
        portals.append(Portal(
            region_a=a,
            region_b=b,
            a=vertices[a].copy(),
            b=vertices[b].copy(),
            cost=magnitude(vertices[b] - vertices[a]),
        ))

    return ConnectivityGraph.build(vertices, regions, portals, costs)


# ---------------------------------------------------------------------------
# Islands (абстрактный граф)
# ---------------------------------------------------------------------------


def build_abstract_graph(
    nodes: Sequence[Hashable],
    edges: Sequence[tuple[Hashable, Hashable, float]],
    both_ways: bool = True,
    costs: Optional[Sequence[float]] = None,
) -> ConnectivityGraph:
    """
    Построить граф без геометрии: узлы — произвольные ключи, рёбра с весами.

    Args:
        nodes: Ключи узлов в порядке регионов.
        edges: (from_key, to_key, distance).
        both_ways: Рёбра двунаправленные.
    """
    index = {node: i for i, node in enumerate(nodes)}
    regions = [Region(id=i) for i in range(len(nodes))]
    portals = [
        Portal(
            region_a=index[source],
            region_b=index[target],
            cost=float(distance),
            bidirectional=both_ways,
        )
        for source, target, distance in edges
    ]
    return ConnectivityGraph.build(np.zeros((0, 3), dtype=SCALAR), regions, portals, costs)
