"""
Ошибки построения и сохранения навигационных структур.

BuildError и его наследники — ошибки конструирования: входные данные
нужно исправить, повторять вызов бессмысленно.
Отсутствие пути ошибкой не является: запросы возвращают None.
"""

from __future__ import annotations

from typing import Optional


class NavError(Exception):
    """Базовая ошибка pathnav."""


class BuildError(NavError):
    """Ошибка построения графа связности."""


class InvalidTopology(BuildError):
    """
    Некорректная топология: индекс вне диапазона, петля в графе,
    неверные координаты ячеек.
    """

    def __init__(
        self,
        message: str,
        triangle: Optional[int] = None,
        local_index: Optional[int] = None,
        vertex_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.triangle = triangle
        self.local_index = local_index
        self.vertex_index = vertex_index


class DegenerateGeometry(BuildError):
    """Вырожденная геометрия (треугольник нулевой площади)."""

    def __init__(self, message: str, triangle: Optional[int] = None) -> None:
        super().__init__(message)
        self.triangle = triangle


class TriangulationError(BuildError):
    """Ошибка триангуляции набора точек."""


class DegenerateInput(TriangulationError):
    """Меньше трёх неколлинеарных точек."""


class PersistenceError(NavError):
    """Не удалось сохранить или загрузить навигационную структуру."""


class NoPathError(NavError):
    """Путь не найден (только для expect_path)."""
