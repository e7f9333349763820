"""
Построение итоговой ломаной по коридору регионов.

Коридор, проходящий через регионы в разных плоскостях, сначала
разворачивается в плоскость первого региона: каждый следующий регион
поворачивается вокруг общего портала. После этого все порталы лежат
в одной плоскости и переводятся в 2D базис.

Режимы:
- MID_POINTS: середины порталов, лишние середины на плоских участках
  отбрасываются.
- FUNNEL: simple stupid funnel algorithm (Mononen) по развёрнутым порталам.
  На порталах-сгибах в путь добавляются точки пересечения, чтобы ломаная
  шла по поверхности.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
import numpy as np

from pathnav.geometry import (
    build_2d_basis,
    cross2d,
    rotation_about_axis,
    segments_cross_2d,
    triarea2,
    vec3,
)
from pathnav.graph import ConnectivityGraph
from pathnav.settings import ZERO_THRESHOLD
from pathnav.types import Corridor, NavPathMode


FOLD_ANGLE_THRESHOLD = 1e-4
"""Минимальный угол поворота (радианы), при котором портал считается сгибом."""


@dataclass
class UnfoldedCorridor:
    """Порталы коридора в общем 2D базисе."""

    start2: np.ndarray
    end2: np.ndarray
    left2: list[np.ndarray] = field(default_factory=list)
    right2: list[np.ndarray] = field(default_factory=list)
    left3: list[np.ndarray] = field(default_factory=list)
    right3: list[np.ndarray] = field(default_factory=list)
    fold: list[bool] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.fold)

    def mid2(self, index: int) -> np.ndarray:
        return (self.left2[index] + self.right2[index]) * 0.5

    def mid3(self, index: int) -> np.ndarray:
        return (self.left3[index] + self.right3[index]) * 0.5


def _perpendicular(vector: np.ndarray, axis: np.ndarray) -> np.ndarray:
    """Составляющая vector, перпендикулярная единичной оси."""
    return vector - axis * float(np.dot(vector, axis))


def _fold_rotation(
    a: np.ndarray,
    b: np.ndarray,
    center_prev: np.ndarray,
    center_next: np.ndarray,
) -> tuple[np.ndarray, float]:
    """
    Поворот следующего региона вокруг портала (a, b) в плоскость предыдущего.

    Returns:
        (R, angle) — матрица поворота и угол.
    """
    axis = b - a
    length = float(np.linalg.norm(axis))
    if length < ZERO_THRESHOLD:
        return np.eye(3), 0.0
    axis = axis / length

    d_prev = _perpendicular(center_prev - a, axis)
    d_next = _perpendicular(center_next - a, axis)
    len_prev = float(np.linalg.norm(d_prev))
    len_next = float(np.linalg.norm(d_next))
    if len_prev < ZERO_THRESHOLD or len_next < ZERO_THRESHOLD:
        return np.eye(3), 0.0

    # Следующий регион должен лежать по другую сторону портала
    target = -d_prev / len_prev
    d_next = d_next / len_next
    angle = math.atan2(
        float(np.dot(axis, np.cross(d_next, target))),
        float(np.dot(d_next, target)),
    )
    return rotation_about_axis(axis, angle), angle


def unfold_corridor(
    corridor: Corridor,
    graph: ConnectivityGraph,
    start,
    end,
) -> UnfoldedCorridor:
    """
    Развернуть коридор в плоскость первого региона.

    Для региона k хранится аффинное преобразование T_k(x) = M_k x + t_k,
    T_0 — тождественное. Портал k лежит на границе регионов k и k+1
    и переводится через T_k.

    Args:
        corridor: Коридор (регионы с геометрией).
        graph: Граф, по которому построен коридор.
        start: Стартовая точка (в первом регионе).
        end: Конечная точка (в последнем регионе).
    """
    start3 = vec3(start).astype(np.float64)
    end3 = vec3(end).astype(np.float64)

    first = graph.region(corridor.regions[0])
    normal = first.normal if first.normal is not None else np.array([0.0, 0.0, 1.0])
    u_axis, v_axis = build_2d_basis(np.asarray(normal, dtype=np.float64))

    def to_2d(point: np.ndarray) -> np.ndarray:
        rel = point - start3
        return np.array([float(np.dot(rel, u_axis)), float(np.dot(rel, v_axis))])

    matrix = np.eye(3)
    offset = np.zeros(3)

    unfolded = UnfoldedCorridor(start2=to_2d(start3), end2=to_2d(start3))

    for index, portal in enumerate(corridor.portals):
        region_prev = graph.region(corridor.regions[index])
        region_next = graph.region(corridor.regions[index + 1])

        a3 = np.asarray(portal.a, dtype=np.float64)
        b3 = np.asarray(portal.b, dtype=np.float64)
        center_prev = np.asarray(region_prev.centroid, dtype=np.float64)
        center_next = np.asarray(region_next.centroid, dtype=np.float64)

        a2 = to_2d(matrix @ a3 + offset)
        b2 = to_2d(matrix @ b3 + offset)
        c2 = to_2d(matrix @ center_prev + offset)

        # Вид из предыдущего региона: правый конец идёт первым против часовой
        if cross2d(a2 - c2, b2 - c2) > 0:
            unfolded.right2.append(a2)
            unfolded.left2.append(b2)
            unfolded.right3.append(a3)
            unfolded.left3.append(b3)
        else:
            unfolded.right2.append(b2)
            unfolded.left2.append(a2)
            unfolded.right3.append(b3)
            unfolded.left3.append(a3)

        angle = 0.0
        has_area = region_prev.has_area and region_next.has_area
        if has_area and not portal.is_point:
            rotation, angle = _fold_rotation(a3, b3, center_prev, center_next)
            offset = matrix @ (a3 - rotation @ a3) + offset
            matrix = matrix @ rotation
        unfolded.fold.append(abs(angle) > FOLD_ANGLE_THRESHOLD)

    unfolded.end2 = to_2d(matrix @ end3 + offset)
    return unfolded


def dedupe_points(points: list[np.ndarray], eps: float = ZERO_THRESHOLD) -> list[np.ndarray]:
    """Убрать подряд идущие совпадающие точки."""
    result: list[np.ndarray] = []
    for point in points:
        if result and float(np.sum((result[-1] - point) ** 2)) < eps:
            continue
        result.append(point)
    return result


def mid_points(unfolded: UnfoldedCorridor, start, end) -> list[np.ndarray]:
    """
    Путь по серединам порталов.

    Середина пропускается, если отрезок от последней добавленной точки
    до следующего кандидата пересекает все пропущенные порталы.
    Середины порталов-сгибов не пропускаются.
    """
    start3 = vec3(start).astype(np.float64)
    end3 = vec3(end).astype(np.float64)

    points = [start3]
    last2 = unfolded.start2
    last_index = 0
    n = len(unfolded)

    for i in range(n):
        target2 = unfolded.mid2(i + 1) if i + 1 < n else unfolded.end2
        if not unfolded.fold[i] and all(
            segments_cross_2d(last2, target2, unfolded.left2[j], unfolded.right2[j])
            for j in range(last_index, i + 1)
        ):
            continue
        points.append(unfolded.mid3(i))
        last2 = unfolded.mid2(i)
        last_index = i + 1

    points.append(end3)
    return dedupe_points(points)


def _crossing_parameter(p: np.ndarray, q: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """Параметр s точки пересечения прямой p-q с отрезком a-b, в [0, 1]."""
    edge = b - a
    direction = q - p
    denom = cross2d(direction, edge)
    if abs(denom) < ZERO_THRESHOLD:
        return 0.5
    s = cross2d(direction, p - a) / denom
    return min(max(s, 0.0), 1.0)


def funnel(unfolded: UnfoldedCorridor, start, end) -> list[np.ndarray]:
    """
    Simple Stupid Funnel Algorithm.

    Порталы: (start, start), порталы коридора, (end, end).
    Состояние: вершина воронки (apex) и её левая и правая стороны.
    Если новая точка пересекает противоположную сторону, та сторона
    становится новой вершиной, и обход продолжается с неё.
    """
    start3 = vec3(start).astype(np.float64)
    end3 = vec3(end).astype(np.float64)

    lefts2 = [unfolded.start2] + unfolded.left2 + [unfolded.end2]
    rights2 = [unfolded.start2] + unfolded.right2 + [unfolded.end2]
    lefts3 = [start3] + unfolded.left3 + [end3]
    rights3 = [start3] + unfolded.right3 + [end3]
    count = len(lefts2)

    apex = lefts2[0]
    left = lefts2[0]
    right = rights2[0]
    apex_index = left_index = right_index = 0

    # (точка 3D, точка 2D, индекс портала воронки)
    path: list[tuple[np.ndarray, np.ndarray, int]] = [(start3, unfolded.start2, 0)]

    def same(p: np.ndarray, q: np.ndarray) -> bool:
        return float(np.sum((p - q) ** 2)) < ZERO_THRESHOLD

    i = 1
    while i < count:
        pl = lefts2[i]
        pr = rights2[i]

        # Обновляем правую сторону
        if triarea2(apex, right, pr) <= 0.0:
            if same(apex, right) or triarea2(apex, left, pr) > 0.0:
                # Сужаем воронку
                right = pr
                right_index = i
            else:
                # Правая сторона перешла через левую, левая становится вершиной
                path.append((lefts3[left_index], left, left_index))
                apex = left
                apex_index = left_index
                left_index = apex_index
                right = apex
                right_index = apex_index
                i = apex_index + 1
                continue

        # Обновляем левую сторону
        if triarea2(apex, left, pl) >= 0.0:
            if same(apex, left) or triarea2(apex, right, pl) < 0.0:
                left = pl
                left_index = i
            else:
                path.append((rights3[right_index], right, right_index))
                apex = right
                apex_index = right_index
                right = apex
                right_index = apex_index
                left = apex
                left_index = apex_index
                i = apex_index + 1
                continue

        i += 1

    path.append((end3, unfolded.end2, count - 1))

    # Точки пересечения со сгибами между соседними точками пути
    points: list[np.ndarray] = []
    for k in range(len(path) - 1):
        p3, p2, index = path[k]
        _, q2, next_index = path[k + 1]
        points.append(p3)
        for funnel_index in range(index + 1, next_index):
            j = funnel_index - 1
            if not unfolded.fold[j]:
                continue
            s = _crossing_parameter(p2, q2, unfolded.left2[j], unfolded.right2[j])
            points.append(unfolded.left3[j] + (unfolded.right3[j] - unfolded.left3[j]) * s)
    points.append(path[-1][0])

    return dedupe_points(points)


def refine(
    corridor: Corridor,
    start,
    end,
    mode: NavPathMode,
    graph: ConnectivityGraph,
) -> list[np.ndarray]:
    """
    Превратить коридор в ломаную.

    Args:
        corridor: Непустой коридор.
        start: Точка старта (в первом регионе коридора).
        end: Точка финиша (в последнем регионе коридора).
        mode: MID_POINTS или FUNNEL.
        graph: Граф коридора.

    Returns:
        Список точек (3,); первая — start, последняя — end.
    """
    start3 = vec3(start)
    dtype = start3.dtype

    if len(corridor) <= 1:
        points = dedupe_points([start3.astype(np.float64), vec3(end).astype(np.float64)])
        return [p.astype(dtype) for p in points]

    unfolded = unfold_corridor(corridor, graph, start, end)
    if mode == NavPathMode.FUNNEL:
        points = funnel(unfolded, start, end)
    else:
        points = mid_points(unfolded, start, end)
    return [p.astype(dtype) for p in points]
