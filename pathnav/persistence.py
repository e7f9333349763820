"""
Сохранение и загрузка навигационных структур.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union
import numpy as np

from pathnav import log
from pathnav.errors import BuildError, PersistenceError
from pathnav.graph import ConnectivityGraph
from pathnav.nav_free_grid import NavFreeGrid
from pathnav.nav_grid import NavGrid
from pathnav.nav_islands import NavIslands
from pathnav.nav_mesh import NavMesh
from pathnav.nav_net import NavNet
from pathnav.settings import SCALAR, NavConfig
from pathnav.types import Portal, Region


NAV_FILE_EXTENSION = ".pathnav"
NAV_FORMAT_VERSION = "1.0"

SURFACE_KINDS = {
    NavMesh.KIND: NavMesh,
    NavGrid.KIND: NavGrid,
    NavFreeGrid.KIND: NavFreeGrid,
    NavNet.KIND: NavNet,
    NavIslands.KIND: NavIslands,
}


def _vector(value):
    return None if value is None else np.asarray(value, dtype=SCALAR)


class NavPersistence:
    """
    Сохранение и загрузка навигационных структур в файл .pathnav.

    Формат — JSON: вершины, регионы (индексы вершин, острова),
    порталы, стоимости и параметры построения конкретного вида.
    Загрузка собирает граф из сохранённых частей без триангуляции
    и повторного разбиения на острова.
    """

    @staticmethod
    def to_dict(surface) -> dict:
        """Представить структуру словарём, пригодным для JSON."""
        graph: ConnectivityGraph = surface.graph
        return {
            "version": NAV_FORMAT_VERSION,
            "kind": surface.KIND,
            "scalar": np.dtype(SCALAR).name,
            "vertices": graph.vertices.tolist(),
            "regions": [
                {
                    "vertices": list(region.vertices),
                    "island": region.island,
                    "centroid": None if region.centroid is None else region.centroid.tolist(),
                    "normal": None if region.normal is None else region.normal.tolist(),
                }
                for region in graph.regions
            ],
            "portals": [
                {
                    "regions": [portal.region_a, portal.region_b],
                    "a": None if portal.a is None else portal.a.tolist(),
                    "b": None if portal.b is None else portal.b.tolist(),
                    "cost": portal.cost,
                    "bidirectional": portal.bidirectional,
                }
                for portal in graph.portals
            ],
            "costs": graph.costs.tolist(),
            "params": surface._params(),
            "config": surface.config.to_dict(),
        }

    @staticmethod
    def from_dict(data: dict):
        """
        Восстановить структуру из словаря.

        Raises:
            PersistenceError: неизвестная версия, вид или неполные данные.
        """
        version = str(data.get("version", ""))
        if not version.startswith("1."):
            raise PersistenceError(f"Unsupported pathnav format version: {version!r}")

        kind = data.get("kind")
        if kind not in SURFACE_KINDS:
            raise PersistenceError(f"Unknown surface kind: {kind!r}")

        try:
            vertices = np.asarray(data["vertices"], dtype=SCALAR).reshape(-1, 3)
            regions = [
                Region(
                    id=index,
                    vertices=tuple(int(v) for v in region_data["vertices"]),
                    centroid=_vector(region_data.get("centroid")),
                    normal=_vector(region_data.get("normal")),
                )
                for index, region_data in enumerate(data["regions"])
            ]
            islands = [int(region_data["island"]) for region_data in data["regions"]]
            portals = [
                Portal(
                    region_a=int(portal_data["regions"][0]),
                    region_b=int(portal_data["regions"][1]),
                    a=_vector(portal_data.get("a")),
                    b=_vector(portal_data.get("b")),
                    cost=float(portal_data["cost"]),
                    bidirectional=bool(portal_data.get("bidirectional", True)),
                )
                for portal_data in data["portals"]
            ]
            graph = ConnectivityGraph.from_parts(vertices, regions, portals, islands, data.get("costs"))
            config = NavConfig.from_dict(data.get("config", {}))
            return SURFACE_KINDS[kind]._from_graph(graph, data.get("params", {}), config)
        except (KeyError, ValueError, TypeError, IndexError, BuildError) as e:
            raise PersistenceError(f"Malformed {kind} data: {e}") from e

    @staticmethod
    def save(surface, path: Union[str, Path]) -> None:
        """
        Сохранить структуру в файл.

        Args:
            surface: NavMesh, NavGrid, NavFreeGrid, NavNet или NavIslands.
            path: Путь к файлу (.pathnav).

        Raises:
            PersistenceError: ошибка записи.
        """
        path = Path(path)
        data = NavPersistence.to_dict(surface)

        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise PersistenceError(f"Cannot write {path}: {e}") from e

        log.info(f"[NavPersistence] Saved {surface.KIND} to {path}")

    @staticmethod
    def _read(path: Path) -> dict:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Cannot read {path}: {e}") from e

    @staticmethod
    def load(path: Union[str, Path]):
        """
        Загрузить структуру из файла.

        Raises:
            PersistenceError: файл не найден, повреждён или неизвестного формата.
        """
        path = Path(path)
        surface = NavPersistence.from_dict(NavPersistence._read(path))
        log.info(f"[NavPersistence] Loaded {surface.KIND} from {path}")
        return surface

    @staticmethod
    def get_info(path: Union[str, Path]) -> dict:
        """
        Получить информацию о файле без построения структуры.

        Returns:
            Словарь: kind, version, vertex_count, region_count,
            portal_count, island_count.
        """
        path = Path(path)
        data = NavPersistence._read(path)

        regions = data.get("regions", [])
        islands = {region.get("island") for region in regions}

        return {
            "kind": data.get("kind", ""),
            "version": data.get("version", ""),
            "vertex_count": len(data.get("vertices", [])),
            "region_count": len(regions),
            "portal_count": len(data.get("portals", [])),
            "island_count": len(islands),
        }
