"""
Bitmap records (bitmaps.lod, icons.lod).

Record layout:
  - 48-byte header (see BITMAP_HEADER)
  - zlib stream, compressed_size bytes; inflates to uncompressed_size bytes of
    palette indices for the full frame followed by its mipmap levels
  - 768-byte RGB palette
"""

from __future__ import annotations

from dataclasses import dataclass

from construct import Bytes, Int16ul, Int32ul, Struct
from construct.core import ConstructError

from .errors import EmptyImageError, TruncatedRecordError
from .image import IndexedImage
from .inflate import decompress
from .palette import PALETTE_SIZE, Palette

BITMAP_HEADER = Struct(
    "name" / Bytes(16),
    "pixel_size" / Int32ul,
    "compressed_size" / Int32ul,
    "width" / Int16ul,
    "height" / Int16ul,
    "width_ln2" / Int16ul,
    "height_ln2" / Int16ul,
    "width_minus_1" / Int16ul,
    "height_minus_1" / Int16ul,
    "palette_index" / Int16ul,
    "reserved" / Int16ul,
    "uncompressed_size" / Int32ul,
    "bits" / Int32ul,
)

BITMAP_HEADER_SIZE = BITMAP_HEADER.sizeof()


@dataclass(frozen=True, slots=True)
class BitmapHeader:
    name: str
    pixel_size: int
    compressed_size: int
    width: int
    height: int
    width_ln2: int
    height_ln2: int
    width_minus_1: int
    height_minus_1: int
    palette_index: int
    uncompressed_size: int
    bits: int


def parse_bitmap_header(data: bytes) -> BitmapHeader:
    if len(data) < BITMAP_HEADER_SIZE:
        raise TruncatedRecordError(f"bitmap header truncated: {len(data)} < {BITMAP_HEADER_SIZE}")
    try:
        raw = BITMAP_HEADER.parse(data[:BITMAP_HEADER_SIZE])
    except ConstructError as exc:
        raise TruncatedRecordError(f"failed to parse bitmap header: {exc}") from exc
    return BitmapHeader(
        name=raw.name.split(b"\x00", 1)[0].decode("latin-1"),
        pixel_size=raw.pixel_size,
        compressed_size=raw.compressed_size,
        width=raw.width,
        height=raw.height,
        width_ln2=raw.width_ln2,
        height_ln2=raw.height_ln2,
        width_minus_1=raw.width_minus_1,
        height_minus_1=raw.height_minus_1,
        palette_index=raw.palette_index,
        uncompressed_size=raw.uncompressed_size,
        bits=raw.bits,
    )


def decode_bitmap(data: bytes) -> IndexedImage:
    header = parse_bitmap_header(data)
    if header.pixel_size == 0:
        raise EmptyImageError(f"bitmap {header.name!r} has no pixel data")
    if len(data) <= BITMAP_HEADER_SIZE + PALETTE_SIZE:
        raise TruncatedRecordError(f"bitmap {header.name!r} too short: {len(data)} bytes")

    compressed = data[BITMAP_HEADER_SIZE : len(data) - PALETTE_SIZE]
    pixels = decompress(compressed, header.compressed_size, header.uncompressed_size)
    if len(pixels) < header.width * header.height:
        raise TruncatedRecordError(
            f"bitmap {header.name!r} holds {len(pixels)} pixels, expected {header.width}x{header.height}"
        )
    palette = Palette(name=header.name, rgb=bytes(data[len(data) - PALETTE_SIZE :]))
    return IndexedImage(
        width=header.width,
        height=header.height,
        pixels=pixels,
        palette=palette,
        transparency=False,
    )


__all__ = [
    "BITMAP_HEADER",
    "BITMAP_HEADER_SIZE",
    "BitmapHeader",
    "decode_bitmap",
    "parse_bitmap_header",
]
