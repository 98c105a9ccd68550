from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path

from .atlas import DEFAULT_TILE_SIZE, DEFAULT_WATER_TILE

ENV_GAME_DIR = "MMLOD_GAME_DIR"
ENV_TILE_SIZE = "MMLOD_TILE_SIZE"
ENV_WATER_TILE = "MMLOD_WATER_TILE"
ENV_GRID_WIDTH = "MMLOD_GRID_WIDTH"
ENV_LOG_DIR = "MMLOD_LOG_DIR"

DEFAULT_GRID_WIDTH = 4
DATA_DIR_NAME = "data"


def find_data_dir(game_dir: Path) -> Path:
    """Return the directory holding the .lod files for a game install."""
    if game_dir.is_dir():
        for child in sorted(game_dir.iterdir()):
            if child.is_dir() and child.name.lower() == DATA_DIR_NAME:
                return child
    return game_dir


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class LodConfig:
    game_dir: Path
    tile_size: int = DEFAULT_TILE_SIZE
    water_tile: str = DEFAULT_WATER_TILE
    grid_width: int = DEFAULT_GRID_WIDTH
    log_dir: Path | None = None

    @property
    def data_dir(self) -> Path:
        return find_data_dir(self.game_dir)


def load_config(environ: Mapping[str, str] | None = None) -> LodConfig:
    if environ is None:
        environ = os.environ
    game_dir = environ.get(ENV_GAME_DIR, "").strip()
    log_dir = environ.get(ENV_LOG_DIR, "").strip()
    return LodConfig(
        game_dir=Path(game_dir) if game_dir else Path.cwd(),
        tile_size=_env_int(environ, ENV_TILE_SIZE, DEFAULT_TILE_SIZE),
        water_tile=environ.get(ENV_WATER_TILE, "").strip() or DEFAULT_WATER_TILE,
        grid_width=_env_int(environ, ENV_GRID_WIDTH, DEFAULT_GRID_WIDTH),
        log_dir=Path(log_dir) if log_dir else None,
    )


__all__ = [
    "ENV_GAME_DIR",
    "ENV_GRID_WIDTH",
    "ENV_LOG_DIR",
    "ENV_TILE_SIZE",
    "ENV_WATER_TILE",
    "LodConfig",
    "find_data_dir",
    "load_config",
]
