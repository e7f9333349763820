"""
Пакетные запросы путей.

Построенные структуры только читаются, поэтому независимые запросы
выполняются параллельно в пуле потоков без блокировок.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence
import numpy as np

from pathnav import log
from pathnav.types import NavPathMode, NavQuery


def find_paths(
    surface,
    queries: Sequence[tuple],
    query: NavQuery = NavQuery.ACCURACY,
    mode: NavPathMode = NavPathMode.FUNNEL,
    max_workers: Optional[int] = None,
) -> list[Optional[list[np.ndarray]]]:
    """
    Выполнить find_path для набора пар (start, end).

    Args:
        surface: Навигационная поверхность (NavMesh, NavGrid, ...).
        queries: Пары (start, end).
        query: Режим локализации точек.
        mode: Режим построения пути.
        max_workers: Размер пула (по умолчанию из surface.config).

    Returns:
        Результаты в порядке запросов; None там, где пути нет.
    """
    if max_workers is None:
        max_workers = surface.config.max_workers

    if not queries:
        return []

    if max_workers == 1 or len(queries) == 1:
        return [surface.find_path(start, end, query, mode) for start, end in queries]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(surface.find_path, start, end, query, mode)
            for start, end in queries
        ]
        results = [future.result() for future in futures]

    log.debug(
        f"[find_paths] {len(queries)} queries, "
        f"{sum(1 for r in results if r is None)} without path"
    )
    return results
