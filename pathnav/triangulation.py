"""
Триангуляция Делоне для наборов точек без готовой топологии.

Точки (2D или 3D) проецируются на плоскость наилучшего приближения,
триангулируются через scipy.spatial.Delaunay и возвращаются в исходных
координатах.
"""

from __future__ import annotations

import numpy as np
from scipy.spatial import Delaunay, QhullError

from pathnav import log
from pathnav.errors import DegenerateInput
from pathnav.geometry import as_points, is_degenerate_triangle
from pathnav.settings import SCALAR, ZERO_THRESHOLD


def fit_plane(points: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Плоскость наилучшего приближения через SVD.

    Returns:
        (centroid, basis_u, basis_v, singular_values)
    """
    centroid = points.mean(axis=0)
    centered = (points - centroid).astype(np.float64)
    _, singular, vt = np.linalg.svd(centered, full_matrices=False)
    basis_u = vt[0]
    basis_v = vt[1]
    return centroid, basis_u, basis_v, singular


def triangulate(points) -> tuple[np.ndarray, np.ndarray]:
    """
    Построить триангуляцию Делоне набора точек.

    Args:
        points: (N, 2) или (N, 3) — точки.

    Returns:
        (vertices, triangles): вершины (N, 3) и индексы треугольников (M, 3).
        Все треугольники ориентированы одинаково (CCW в базисе плоскости).

    Raises:
        DegenerateInput: меньше трёх точек или все точки на одной прямой.
    """
    vertices = as_points(points)

    if len(vertices) < 3:
        log.warn(f"[triangulate] Need at least 3 points, got {len(vertices)}")
        raise DegenerateInput(f"At least 3 points required, got {len(vertices)}")

    _, basis_u, basis_v, singular = fit_plane(vertices)
    if singular[1] <= singular[0] * ZERO_THRESHOLD:
        log.warn("[triangulate] All points are collinear")
        raise DegenerateInput("All points are collinear")

    centered = (vertices - vertices.mean(axis=0)).astype(np.float64)
    points_2d = np.stack([centered @ basis_u, centered @ basis_v], axis=1)

    try:
        tri = Delaunay(points_2d)
    except QhullError as e:
        raise DegenerateInput(f"Delaunay triangulation failed: {e}") from e

    stored = vertices.astype(SCALAR)
    triangles = []
    for simplex in tri.simplices:
        i, j, k = (int(v) for v in simplex)
        # Отбрасываются только треугольники, которые отверг бы build_mesh_graph
        if is_degenerate_triangle(stored[i], stored[j], stored[k]):
            log.debug(f"[triangulate] Dropping sliver triangle {(i, j, k)}")
            continue
        a, b, c = points_2d[i], points_2d[j], points_2d[k]
        area2 = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
        # Единая ориентация
        if area2 < 0:
            j, k = k, j
        triangles.append((i, j, k))

    if not triangles:
        raise DegenerateInput("Triangulation produced no triangles")

    log.debug(f"[triangulate] {len(vertices)} points -> {len(triangles)} triangles")
    return stored, np.array(triangles, dtype=np.int32)
