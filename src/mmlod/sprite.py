"""
Sprite records (sprites.lod).

Record layout:
  - 32-byte header (see SPRITE_HEADER)
  - row table, one SPRITE_ROW per image row: start i16, end i16, offset u32
  - zlib stream, compressed_size bytes; inflates to the packed row runs

Rows with a negative start or end are empty. The decoder advances the row
cursor by width - 1 for them, not width; sprite layouts depend on this.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from construct import Array, Bytes, Int16sl, Int16ul, Int32ul, Struct
from construct.core import ConstructError

from .errors import RowOverrunError, TruncatedRecordError
from .image import IndexedImage
from .inflate import decompress
from .palette import Palette

SPRITE_HEADER = Struct(
    "name" / Bytes(12),
    "compressed_size" / Int32ul,
    "width" / Int16ul,
    "height" / Int16ul,
    "palette_id" / Int16ul,
    "reserved_0" / Int16ul,
    "y_skip" / Int16ul,
    "reserved_1" / Int16ul,
    "uncompressed_size" / Int32ul,
)

SPRITE_ROW = Struct(
    "start" / Int16sl,
    "end" / Int16sl,
    "offset" / Int32ul,
)

SPRITE_HEADER_SIZE = SPRITE_HEADER.sizeof()
SPRITE_ROW_SIZE = SPRITE_ROW.sizeof()


class PaletteResolver(Protocol):
    def get(self, palette_id: int) -> Palette: ...


@dataclass(frozen=True, slots=True)
class SpriteHeader:
    name: str
    compressed_size: int
    width: int
    height: int
    palette_id: int
    y_skip: int
    uncompressed_size: int


@dataclass(frozen=True, slots=True)
class SpriteRow:
    start: int
    end: int
    offset: int

    @property
    def empty(self) -> bool:
        return self.start < 0 or self.end < 0


def parse_sprite_header(data: bytes) -> SpriteHeader:
    if len(data) < SPRITE_HEADER_SIZE:
        raise TruncatedRecordError(f"sprite header truncated: {len(data)} < {SPRITE_HEADER_SIZE}")
    try:
        raw = SPRITE_HEADER.parse(data[:SPRITE_HEADER_SIZE])
    except ConstructError as exc:
        raise TruncatedRecordError(f"failed to parse sprite header: {exc}") from exc
    return SpriteHeader(
        name=raw.name.split(b"\x00", 1)[0].decode("latin-1"),
        compressed_size=raw.compressed_size,
        width=raw.width,
        height=raw.height,
        palette_id=raw.palette_id,
        y_skip=raw.y_skip,
        uncompressed_size=raw.uncompressed_size,
    )


def parse_sprite_rows(data: bytes, height: int) -> list[SpriteRow]:
    table_end = SPRITE_HEADER_SIZE + height * SPRITE_ROW_SIZE
    if len(data) < table_end:
        raise TruncatedRecordError(f"sprite row table truncated: {len(data)} < {table_end}")
    try:
        rows = Array(height, SPRITE_ROW).parse(data[SPRITE_HEADER_SIZE:table_end])
    except ConstructError as exc:
        raise TruncatedRecordError(f"failed to parse sprite row table: {exc}") from exc
    return [SpriteRow(start=row.start, end=row.end, offset=row.offset) for row in rows]


def unpack_rows(rows: list[SpriteRow], runs: bytes, width: int, height: int) -> bytes:
    """Scatter packed row runs into a zero-filled width*height index buffer."""
    img = bytearray(width * height)
    pos = 0
    for y, row in enumerate(rows):
        if row.empty:
            pos += width - 1
            continue
        pos += row.start
        size = row.end - row.start + 1
        if size < 0:
            raise RowOverrunError(f"row {y}: end {row.end} before start {row.start}")
        if row.offset + size > len(runs):
            raise RowOverrunError(f"row {y}: run {row.offset}+{size} past run data ({len(runs)} bytes)")
        if pos < 0 or pos + size > len(img):
            raise RowOverrunError(f"row {y}: write {pos}+{size} past image ({len(img)} pixels)")
        img[pos : pos + size] = runs[row.offset : row.offset + size]
        pos += width - row.start
    return bytes(img)


def decode_sprite(data: bytes, palettes: PaletteResolver) -> IndexedImage:
    header = parse_sprite_header(data)
    table_end = SPRITE_HEADER_SIZE + header.height * SPRITE_ROW_SIZE
    if len(data) <= table_end:
        raise TruncatedRecordError(f"sprite {header.name!r} too short: {len(data)} bytes")

    palette = palettes.get(header.palette_id)
    rows = parse_sprite_rows(data, header.height)
    runs = decompress(data[table_end:], header.compressed_size, header.uncompressed_size)
    pixels = unpack_rows(rows, runs, header.width, header.height)
    return IndexedImage(
        width=header.width,
        height=header.height,
        pixels=pixels,
        palette=palette,
        transparency=True,
    )


__all__ = [
    "SPRITE_HEADER",
    "SPRITE_HEADER_SIZE",
    "SPRITE_ROW",
    "SPRITE_ROW_SIZE",
    "PaletteResolver",
    "SpriteHeader",
    "SpriteRow",
    "decode_sprite",
    "parse_sprite_header",
    "parse_sprite_rows",
    "unpack_rows",
]
