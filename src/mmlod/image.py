from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import math

from PIL import Image, ImageChops

from .errors import (
    EmptyAtlasError,
    PaletteIndexOutOfRangeError,
    SizeMismatchError,
    TruncatedRecordError,
)
from .palette import Palette

TRANSPARENT_PIXEL = (0, 0, 0, 0)
# Terrain tiles mark "leave the canvas alone" pixels with pure cyan.
COLOR_KEY = (0, 255, 255)


@dataclass(slots=True)
class IndexedImage:
    width: int
    height: int
    pixels: bytes
    palette: Palette
    transparency: bool = False

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def transparent_index(self) -> int | None:
        # Sprites reserve whatever index sits in the first pixel.
        if not self.transparency or not self.pixels:
            return None
        return self.pixels[0]

    def frame_pixels(self) -> bytes:
        """Return the first width*height indices; mipmap tails are dropped."""
        count = self.pixel_count
        if len(self.pixels) < count:
            raise TruncatedRecordError(f"pixel buffer too short: {len(self.pixels)} < {count}")
        return bytes(self.pixels[:count])


def materialize(indexed: IndexedImage) -> Image.Image:
    pixels = indexed.frame_pixels()
    palette = indexed.palette
    colors = len(palette)
    if pixels and max(pixels) >= colors:
        raise PaletteIndexOutOfRangeError(f"pixel index {max(pixels)} outside {colors}-color palette")

    size = (indexed.width, indexed.height)
    transparent = indexed.transparent_index
    rgb = bytearray(palette.rgb)
    if transparent is not None:
        rgb[transparent * 3 : transparent * 3 + 3] = bytes(3)
    image = Image.frombytes("P", size, pixels)
    image.putpalette(bytes(rgb))
    rgba = image.convert("RGBA")
    if transparent is not None:
        indices = Image.frombytes("L", size, pixels)
        rgba.putalpha(indices.point([0 if index == transparent else 255 for index in range(256)]))
    return rgba


def _band_equals(band: Image.Image, value: int) -> Image.Image:
    return band.point([255 if level == value else 0 for level in range(256)])


def color_key_mask(tile: Image.Image) -> Image.Image:
    """L mask that is 0 on color-key pixels and 255 elsewhere; alpha is ignored."""
    red, green, blue = tile.convert("RGB").split()
    key = ImageChops.multiply(_band_equals(red, COLOR_KEY[0]), _band_equals(green, COLOR_KEY[1]))
    key = ImageChops.multiply(key, _band_equals(blue, COLOR_KEY[2]))
    return ImageChops.invert(key)


def compose_atlas(tiles: Sequence[Image.Image], grid_width: int) -> Image.Image:
    if not tiles:
        raise EmptyAtlasError("no images provided")
    if int(grid_width) < 1:
        raise ValueError(f"grid width must be positive, got {grid_width}")
    grid_width = int(grid_width)
    tile_width, tile_height = tiles[0].size
    for idx, tile in enumerate(tiles):
        if tile.size != (tile_width, tile_height):
            raise SizeMismatchError(f"tile {idx} is {tile.size[0]}x{tile.size[1]}, expected {tile_width}x{tile_height}")

    rows = math.ceil(len(tiles) / grid_width)
    canvas = Image.new("RGBA", (tile_width * grid_width, tile_height * rows), TRANSPARENT_PIXEL)
    for idx, tile in enumerate(tiles):
        box = ((idx % grid_width) * tile_width, (idx // grid_width) * tile_height)
        canvas.paste(tile.convert("RGBA"), box, color_key_mask(tile))
    return canvas


__all__ = [
    "COLOR_KEY",
    "IndexedImage",
    "color_key_mask",
    "compose_atlas",
    "materialize",
]
