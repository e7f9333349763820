"""
Navigation settings — scalar precision policy and query/build parameters.

The scalar type is chosen once per process from the PATHNAV_SCALAR
environment variable ("float32" or "float64"). Settings can be saved
to and loaded from a JSON file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Union

import numpy as np

from pathnav import log


SCALAR_ENV_VAR = "PATHNAV_SCALAR"

_SCALAR_TYPES = {
    "float32": np.float32,
    "f32": np.float32,
    "float64": np.float64,
    "f64": np.float64,
}


def _scalar_from_env() -> np.dtype:
    """Resolve scalar dtype from environment (float32 by default)."""
    name = os.environ.get(SCALAR_ENV_VAR, "float32").strip().lower()
    if name not in _SCALAR_TYPES:
        log.warn(f"[pathnav] Unknown {SCALAR_ENV_VAR}={name!r}, using float32")
        name = "float32"
    return np.dtype(_SCALAR_TYPES[name])


SCALAR: np.dtype = _scalar_from_env()
"""Scalar type of all stored geometry."""

ZERO_THRESHOLD = 1e-6


@dataclass
class NavConfig:
    """
    Navigation parameters shared by builders, locator and refiner.

    - plane_tolerance: max distance from a region plane for a point to count as inside
    - zero_threshold: epsilon for geometric predicates
    - diagonal: grids use 8-neighbour adjacency instead of 4
    - corner_cutting: diagonal steps allowed past blocked orthogonal cells
    - max_workers: worker pool size for batch queries (None = executor default)
    """

    plane_tolerance: float = 0.5
    zero_threshold: float = ZERO_THRESHOLD
    diagonal: bool = False
    corner_cutting: bool = False
    max_workers: Optional[int] = None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return asdict(self)

    @staticmethod
    def from_dict(data: dict) -> "NavConfig":
        """Deserialize from dictionary."""
        return NavConfig(
            plane_tolerance=data.get("plane_tolerance", 0.5),
            zero_threshold=data.get("zero_threshold", ZERO_THRESHOLD),
            diagonal=data.get("diagonal", False),
            corner_cutting=data.get("corner_cutting", False),
            max_workers=data.get("max_workers"),
        )

    def save(self, path: Union[str, Path]) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        log.info(f"[NavConfig] Saved to {path}")

    @staticmethod
    def load(path: Union[str, Path]) -> "NavConfig":
        """Load config from JSON file. Missing file gives defaults."""
        path = Path(path)
        if not path.exists():
            return NavConfig()
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        log.info(f"[NavConfig] Loaded from {path}")
        return NavConfig.from_dict(data)


def as_scalar_array(values) -> np.ndarray:
    """Convert to an array of the configured scalar type."""
    return np.asarray(values, dtype=SCALAR)
