"""
Базовые структуры данных навигации.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import numpy as np


class NavQuery(Enum):
    """Режим поиска региона для точки запроса."""

    ACCURACY = "accuracy"
    """Точка должна лежать внутри региона."""

    CLOSEST = "closest"
    """Если точка вне всех регионов — берётся ближайший, точка прижимается к нему."""


class NavPathMode(Enum):
    """Режим построения итоговой ломаной по коридору."""

    MID_POINTS = "mid_points"
    """Середины порталов."""

    FUNNEL = "funnel"
    """Натянутая нить (funnel algorithm)."""


@dataclass(eq=False)
class Region:
    """
    Регион — узел графа связности.

    Треугольник, ячейка сетки или абстрактный узел без геометрии.
    """

    id: int
    vertices: tuple[int, ...] = ()
    """Индексы вершин полигона (порядок обхода). Пусто у абстрактных узлов."""

    centroid: Optional[np.ndarray] = None
    """Центр региона, shape (3,)."""

    normal: Optional[np.ndarray] = None
    """Нормаль плоскости региона, None если у региона нет площади."""

    island: int = -1
    """Номер острова, назначается один раз при построении."""

    @property
    def has_area(self) -> bool:
        return self.normal is not None and len(self.vertices) >= 3


@dataclass(frozen=True, eq=False)
class Portal:
    """
    Портал — общая граница двух соседних регионов (ребро графа).

    Отрезок (a, b), точка (a == b) для вырожденной смежности,
    или None у абстрактных графов.
    """

    region_a: int
    region_b: int
    a: Optional[np.ndarray] = None
    b: Optional[np.ndarray] = None
    cost: float = 1.0
    bidirectional: bool = True

    @property
    def is_point(self) -> bool:
        return self.a is not None and bool(np.array_equal(self.a, self.b))

    @property
    def has_geometry(self) -> bool:
        return self.a is not None

    def midpoint(self) -> np.ndarray:
        """Середина портала."""
        return (self.a + self.b) * 0.5

    def other(self, region: int) -> int:
        """Регион по другую сторону портала."""
        return self.region_b if region == self.region_a else self.region_a

    def oriented_from(self, region: int) -> Portal:
        """Тот же портал, но region_a == region."""
        if region == self.region_a:
            return self
        return Portal(
            region_a=self.region_b,
            region_b=self.region_a,
            a=self.a,
            b=self.b,
            cost=self.cost,
            bidirectional=self.bidirectional,
        )


@dataclass(frozen=True)
class Corridor:
    """
    Результат поиска: последовательность регионов и порталов между ними.

    Пустой коридор означает «пути нет».
    """

    regions: tuple[int, ...] = ()
    portals: tuple[Portal, ...] = field(default_factory=tuple)
    cost: float = 0.0

    @staticmethod
    def empty() -> Corridor:
        return Corridor()

    def __bool__(self) -> bool:
        return len(self.regions) > 0

    def __len__(self) -> int:
        return len(self.regions)
