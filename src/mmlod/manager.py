from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from PIL import Image

from .atlas import DEFAULT_TILE_SIZE, DEFAULT_WATER_TILE, build_atlas_from_names
from .bitmap import decode_bitmap
from .debug_log import debug_log, log_archive_opened
from .errors import ArchiveNotFoundError, LodIOError, NotFoundError
from .image import materialize
from .lod import Lod
from .palette import PaletteStore
from .sprite import decode_sprite

LOD_SUFFIX = ".lod"
BITMAPS_ARCHIVE = "bitmaps"
SPRITES_ARCHIVE = "sprites"


class LodManager:
    """All archives of one game data directory, keyed by lower-cased stem."""

    def __init__(self, data_dir: str | Path) -> None:
        data_dir = Path(data_dir)
        if not data_dir.is_dir():
            raise LodIOError(f"data dir not found: {data_dir}")
        self.data_dir = data_dir
        self.archives: dict[str, Lod] = {}
        for path in sorted(data_dir.iterdir()):
            if path.suffix.lower() != LOD_SUFFIX or not path.is_file():
                continue
            lod = Lod.open(path)
            self.archives.setdefault(path.stem.lower(), lod)
            log_archive_opened(lod)
        if not self.archives:
            raise NotFoundError(f"no {LOD_SUFFIX} archives under {data_dir}")
        self._palettes: PaletteStore | None = None

    def archive(self, key: str) -> Lod:
        lod = self.archives.get(key.lower())
        if lod is None:
            available = ", ".join(sorted(self.archives))
            raise ArchiveNotFoundError(f"no archive {key!r} (available: {available})")
        return lod

    @property
    def palettes(self) -> PaletteStore:
        if self._palettes is None:
            self._palettes = PaletteStore.from_lod(self.archive(BITMAPS_ARCHIVE))
            debug_log("palettes_loaded", count=len(self._palettes))
        return self._palettes

    def raw(self, archive: str, name: str) -> bytes:
        return self.archive(archive).get_raw(name)

    def bitmap(self, name: str, *, archive: str = BITMAPS_ARCHIVE) -> Image.Image:
        return materialize(decode_bitmap(self.raw(archive, name)))

    def sprite(self, name: str, *, archive: str = SPRITES_ARCHIVE) -> Image.Image:
        return materialize(decode_sprite(self.raw(archive, name), self.palettes))

    def atlas(
        self,
        names: Sequence[str],
        grid_width: int,
        *,
        water_name: str = DEFAULT_WATER_TILE,
        tile_size: int = DEFAULT_TILE_SIZE,
    ) -> Image.Image:
        debug_log("atlas_build", tiles=len(names), grid_width=grid_width, water=water_name)
        return build_atlas_from_names(
            self.bitmap,
            names,
            grid_width,
            water_name=water_name,
            tile_size=tile_size,
        )


__all__ = [
    "BITMAPS_ARCHIVE",
    "SPRITES_ARCHIVE",
    "LodManager",
]
