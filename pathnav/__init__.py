"""
pathnav - поиск путей по навигационным поверхностям.

Поверхности:
- NavMesh - треугольная сетка (готовая или триангуляция набора точек)
- NavGrid - плотная сетка ячеек
- NavFreeGrid - разреженная сетка ячеек
- NavNet - сеть отрезков
- NavIslands - абстрактный граф островов

Конвейер запроса: локализация точек → A* по графу регионов →
построение ломаной (середины порталов или funnel).
"""

from pathnav.types import NavQuery, NavPathMode, Region, Portal, Corridor
from pathnav.errors import (
    NavError,
    BuildError,
    InvalidTopology,
    DegenerateGeometry,
    TriangulationError,
    DegenerateInput,
    PersistenceError,
    NoPathError,
)
from pathnav.settings import NavConfig, SCALAR
from pathnav.graph import ConnectivityGraph, partition_islands
from pathnav.triangulation import triangulate
from pathnav.locator import SpatialLocator
from pathnav.search import astar
from pathnav.refiner import refine
from pathnav.nav_mesh import NavMesh
from pathnav.nav_grid import NavGrid
from pathnav.nav_free_grid import NavFreeGrid
from pathnav.nav_net import NavNet
from pathnav.nav_islands import NavIslands, NavIslandPortal, NavIslandsConnection
from pathnav.persistence import NavPersistence
from pathnav.batch import find_paths

__version__ = '0.1.0'

__all__ = [
    "NavQuery",
    "NavPathMode",
    "Region",
    "Portal",
    "Corridor",
    "NavError",
    "BuildError",
    "InvalidTopology",
    "DegenerateGeometry",
    "TriangulationError",
    "DegenerateInput",
    "PersistenceError",
    "NoPathError",
    "NavConfig",
    "SCALAR",
    "ConnectivityGraph",
    "partition_islands",
    "triangulate",
    "SpatialLocator",
    "astar",
    "refine",
    "NavMesh",
    "NavGrid",
    "NavFreeGrid",
    "NavNet",
    "NavIslands",
    "NavIslandPortal",
    "NavIslandsConnection",
    "NavPersistence",
    "find_paths",
]
