from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
import re
from typing import TYPE_CHECKING

from .errors import PaletteNotFoundError, TruncatedRecordError

if TYPE_CHECKING:
    from .lod import Lod

PALETTE_COLORS = 256
PALETTE_SIZE = PALETTE_COLORS * 3
# Palette entries in bitmaps.lod carry a bitmap header with no pixel data.
PALETTE_RECORD_HEADER_SIZE = 48

_PALETTE_NAME_RE = re.compile(r"^pal\d{3}$", re.IGNORECASE)


def palette_name(palette_id: int) -> str:
    return f"pal{int(palette_id):03d}"


@dataclass(frozen=True, slots=True)
class Palette:
    name: str
    rgb: bytes

    def __post_init__(self) -> None:
        if len(self.rgb) != PALETTE_SIZE:
            raise ValueError(f"palette {self.name!r} must be {PALETTE_SIZE} bytes, got {len(self.rgb)}")
        object.__setattr__(self, "rgb", bytes(self.rgb))

    def __len__(self) -> int:
        return PALETTE_COLORS

    def color(self, index: int) -> tuple[int, int, int]:
        base = int(index) * 3
        return self.rgb[base], self.rgb[base + 1], self.rgb[base + 2]

    @classmethod
    def from_record(cls, name: str, data: bytes) -> Palette:
        end = PALETTE_RECORD_HEADER_SIZE + PALETTE_SIZE
        if len(data) < end:
            raise TruncatedRecordError(f"palette {name!r} truncated: {len(data)} < {end}")
        return cls(name=name, rgb=bytes(data[PALETTE_RECORD_HEADER_SIZE:end]))


class PaletteStore:
    """Named palettes that sprites refer to by numeric id.

    Iterating yields the stored names (`pal001`, ...); `get` resolves an id.
    """

    def __init__(self, palettes: Mapping[str, Palette] | None = None) -> None:
        self._palettes: dict[str, Palette] = dict(palettes or {})

    def __getitem__(self, name: str) -> Palette:
        return self._palettes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._palettes

    def __iter__(self) -> Iterator[str]:
        return iter(self._palettes)

    def __len__(self) -> int:
        return len(self._palettes)

    def get(self, palette_id: int) -> Palette:
        if not isinstance(palette_id, int):
            raise TypeError(f"palette id must be an int, got {palette_id!r}; index by name instead")
        name = palette_name(palette_id)
        palette = self._palettes.get(name)
        if palette is None:
            raise PaletteNotFoundError(f"palette not found: {name}")
        return palette

    @classmethod
    def from_lod(cls, lod: Lod) -> PaletteStore:
        palettes: dict[str, Palette] = {}
        for name in lod.files():
            if not _PALETTE_NAME_RE.match(name):
                continue
            key = name.lower()
            if key in palettes:
                continue
            palettes[key] = Palette.from_record(key, lod.get_raw(name))
        return cls(palettes)


__all__ = [
    "PALETTE_COLORS",
    "PALETTE_SIZE",
    "Palette",
    "PaletteStore",
    "palette_name",
]
