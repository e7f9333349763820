"""
Геометрическое ядро: векторы, треугольники, полигоны и предикаты над ними.

Все точки — numpy массивы shape (3,). Двумерные входные точки
дополняются z = 0.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence
import math
import numpy as np

from pathnav.settings import SCALAR, ZERO_THRESHOLD


def vec3(value) -> np.ndarray:
    """Привести (x, y) или (x, y, z) к массиву shape (3,)."""
    arr = np.asarray(value, dtype=SCALAR).reshape(-1)
    if arr.shape[0] == 2:
        arr = np.array([arr[0], arr[1], 0.0], dtype=SCALAR)
    if arr.shape[0] != 3:
        raise ValueError(f"Expected 2 or 3 coordinates, got {arr.shape[0]}")
    return arr


def as_points(values: Iterable) -> np.ndarray:
    """Привести набор точек к массиву shape (N, 3)."""
    arr = np.asarray(values, dtype=SCALAR)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=SCALAR)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError(f"Expected points of shape (N, 2) or (N, 3), got {arr.shape}")
    if arr.shape[1] == 2:
        arr = np.hstack([arr, np.zeros((len(arr), 1), dtype=SCALAR)])
    return arr


def sqr_magnitude(v: np.ndarray) -> float:
    return float(np.dot(v, v))


def magnitude(v: np.ndarray) -> float:
    return math.sqrt(sqr_magnitude(v))


def normalize(v: np.ndarray, eps: float = ZERO_THRESHOLD) -> np.ndarray:
    """Нормализовать вектор. Слишком короткий вектор превращается в нулевой."""
    length = magnitude(v)
    if length <= eps:
        return np.zeros(3, dtype=v.dtype)
    return v / length


def same_point(a: np.ndarray, b: np.ndarray, eps: float = ZERO_THRESHOLD) -> bool:
    """Совпадают ли точки с точностью eps (по квадрату расстояния)."""
    return sqr_magnitude(a - b) < eps


def project(point: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """Параметр t проекции точки на прямую a→b (t=0 в a, t=1 в b)."""
    diff = b - a
    denom = sqr_magnitude(diff)
    if denom < ZERO_THRESHOLD * ZERO_THRESHOLD:
        return 0.0
    return float(np.dot(point - a, diff)) / denom


def unproject(a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
    """Точка a + (b - a) * t."""
    return a + (b - a) * t


def closest_point_on_segment(point: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Ближайшая к point точка отрезка [a, b]."""
    t = min(max(project(point, a, b), 0.0), 1.0)
    return unproject(a, b, t)


def distance_to_segment(point: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    return magnitude(point - closest_point_on_segment(point, a, b))


def triangle_area(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """Площадь треугольника в 3D."""
    return 0.5 * magnitude(np.cross(b - a, c - a))


def triangle_normal(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    """Единичная нормаль треугольника (нулевая для вырожденного)."""
    return normalize(np.cross(b - a, c - a), eps=0.0)


def is_degenerate_triangle(
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
    eps: float = ZERO_THRESHOLD,
) -> bool:
    """
    Треугольник вырожден, если его площадь мала относительно квадрата
    длиннейшего ребра.

    Порог не зависит от масштаба: сетка в миллиметрах и в километрах
    проверяется одинаково.
    """
    a, b, c = (np.asarray(p, dtype=np.float64) for p in (a, b, c))
    longest = max(sqr_magnitude(b - a), sqr_magnitude(c - b), sqr_magnitude(a - c))
    return triangle_area(a, b, c) <= eps * longest


def polygon_normal(polygon: np.ndarray) -> np.ndarray:
    """
    Нормаль полигона методом Ньюэлла.

    Направление согласовано с порядком обхода вершин (CCW — «вверх»).
    """
    n = len(polygon)
    normal = np.zeros(3, dtype=np.float64)
    for i in range(n):
        cur = polygon[i]
        nxt = polygon[(i + 1) % n]
        normal[0] += (cur[1] - nxt[1]) * (cur[2] + nxt[2])
        normal[1] += (cur[2] - nxt[2]) * (cur[0] + nxt[0])
        normal[2] += (cur[0] - nxt[0]) * (cur[1] + nxt[1])
    return normalize(normal.astype(polygon.dtype), eps=0.0)


def polygon_centroid(polygon: np.ndarray) -> np.ndarray:
    """Среднее вершин полигона."""
    return polygon.mean(axis=0)


def build_2d_basis(normal: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Построить ортонормальный базис (U, V) перпендикулярный нормали.

    U × V == normal, поэтому ориентация в 2D совпадает с видом «сверху».
    """
    normal = normal / np.linalg.norm(normal)

    # Выбираем вектор, не параллельный нормали
    if abs(normal[0]) < 0.9:
        ref = np.array([1.0, 0.0, 0.0])
    else:
        ref = np.array([0.0, 1.0, 0.0])

    u_axis = np.cross(ref, normal)
    u_axis = u_axis / np.linalg.norm(u_axis)

    v_axis = np.cross(normal, u_axis)
    v_axis = v_axis / np.linalg.norm(v_axis)

    return u_axis, v_axis


def point_in_polygon(
    point: np.ndarray,
    polygon: np.ndarray,
    normal: np.ndarray,
    tolerance: float = 0.5,
    eps: float = ZERO_THRESHOLD,
) -> Optional[float]:
    """
    Проверить, лежит ли точка в выпуклом полигоне.

    Точка проецируется на плоскость полигона. Граница считается внутренней.

    Args:
        point: (3,) — точка.
        polygon: (N, 3) — вершины выпуклого полигона в порядке обхода.
        normal: нормаль, согласованная с порядком обхода.
        tolerance: максимальное расстояние от точки до плоскости.

    Returns:
        Расстояние до плоскости, если точка внутри, иначе None.
    """
    d = float(np.dot(point - polygon[0], normal))
    if abs(d) > tolerance:
        return None

    p_proj = point - d * normal
    n = len(polygon)
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        edge = b - a
        side = float(np.dot(normal, np.cross(edge, p_proj - a)))
        if side < -eps * max(magnitude(edge), 1.0):
            return None
    return abs(d)


def closest_point_on_polygon(
    point: np.ndarray,
    polygon: np.ndarray,
    normal: np.ndarray,
    eps: float = ZERO_THRESHOLD,
) -> np.ndarray:
    """
    Ближайшая к point точка выпуклого полигона.

    Если проекция на плоскость внутри полигона — это она,
    иначе ближайшая точка границы.
    """
    d = float(np.dot(point - polygon[0], normal))
    p_proj = point - d * normal
    if point_in_polygon(p_proj, polygon, normal, tolerance=float("inf"), eps=eps) is not None:
        return p_proj

    best = polygon[0]
    best_dist = float("inf")
    n = len(polygon)
    for i in range(n):
        candidate = closest_point_on_segment(point, polygon[i], polygon[(i + 1) % n])
        dist = sqr_magnitude(point - candidate)
        if dist < best_dist:
            best_dist = dist
            best = candidate
    return best


def project_on_plane(point: np.ndarray, origin: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Проекция точки на плоскость (origin, normal)."""
    n = normalize(normal)
    return point - n * float(np.dot(point - origin, n))


def is_above_plane(point: np.ndarray, origin: np.ndarray, normal: np.ndarray) -> bool:
    return float(np.dot(normal, point - origin)) > -ZERO_THRESHOLD


def raycast_plane(
    start: np.ndarray,
    end: np.ndarray,
    origin: np.ndarray,
    normal: np.ndarray,
) -> Optional[np.ndarray]:
    """Пересечение отрезка start→end с плоскостью, или None."""
    length = magnitude(end - start)
    if length < ZERO_THRESHOLD:
        return None
    direction = (end - start) / length
    denom = float(np.dot(normal, direction))
    if abs(denom) <= ZERO_THRESHOLD:
        return None
    t = float(np.dot(origin - start, normal)) / denom
    if 0.0 <= t <= length:
        return start + direction * t
    return None


def raycast_triangle(
    start: np.ndarray,
    end: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
) -> Optional[np.ndarray]:
    """Пересечение отрезка start→end с треугольником, или None."""
    tab = normalize(b - a)
    tbc = normalize(c - b)
    tca = normalize(a - c)
    n = normalize(np.cross(tab, tbc))
    contact = raycast_plane(start, end, a, n)
    if contact is None:
        return None
    nab = np.cross(tab, n)
    nbc = np.cross(tbc, n)
    nca = np.cross(tca, n)
    if (
        is_above_plane(contact, a, -nab)
        and is_above_plane(contact, b, -nbc)
        and is_above_plane(contact, c, -nca)
    ):
        return contact
    return None


def _side(value: float) -> int:
    if abs(value) < ZERO_THRESHOLD:
        return 0
    return 1 if value > 0 else -1


def is_line_between_points(
    start: np.ndarray,
    end: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    normal: np.ndarray,
) -> bool:
    """Разделяет ли прямая start→end (в плоскости с нормалью normal) точки a и b."""
    n = np.cross(end - start, normal)
    return _side(float(np.dot(n, a - start))) != _side(float(np.dot(n, b - start)))


def rotation_about_axis(axis: np.ndarray, angle: float) -> np.ndarray:
    """Матрица поворота (3x3) вокруг единичной оси на угол angle (формула Родрига)."""
    x, y, z = (float(c) for c in axis)
    k = np.array([
        [0.0, -z, y],
        [z, 0.0, -x],
        [-y, x, 0.0],
    ])
    return np.eye(3) + math.sin(angle) * k + (1.0 - math.cos(angle)) * (k @ k)


def cross2d(u: np.ndarray, v: np.ndarray) -> float:
    return float(u[0] * v[1] - u[1] * v[0])


def triarea2(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """
    Удвоенная знаковая площадь треугольника в 2D.

    Отрицательна, если c лежит слева от луча a→b.
    """
    ax = b[0] - a[0]
    ay = b[1] - a[1]
    bx = c[0] - a[0]
    by = c[1] - a[1]
    return float(bx * ay - ax * by)


def segments_cross_2d(
    p: np.ndarray,
    q: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    eps: float = ZERO_THRESHOLD,
) -> bool:
    """Пересекаются ли отрезки p-q и a-b (касание включительно)."""
    d1 = cross2d(q - p, a - p)
    d2 = cross2d(q - p, b - p)
    d3 = cross2d(b - a, p - a)
    d4 = cross2d(b - a, q - a)

    if (d1 > eps and d2 > eps) or (d1 < -eps and d2 < -eps):
        return False
    if (d3 > eps and d4 > eps) or (d3 < -eps and d4 < -eps):
        return False

    # Коллинеарный случай: проверяем перекрытие габаритов
    lo = np.minimum(p, q) - eps
    hi = np.maximum(p, q) + eps
    seg_lo = np.minimum(a, b)
    seg_hi = np.maximum(a, b)
    return bool(np.all(seg_hi >= lo) and np.all(seg_lo <= hi))


def path_length(points: Sequence[np.ndarray]) -> float:
    """Длина ломаной."""
    total = 0.0
    for i in range(len(points) - 1):
        total += magnitude(np.asarray(points[i + 1]) - np.asarray(points[i]))
    return total
