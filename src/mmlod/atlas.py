from __future__ import annotations

from collections.abc import Callable, Sequence

from PIL import Image, ImageChops

from .image import compose_atlas

DEFAULT_TILE_SIZE = 128
DEFAULT_WATER_TILE = "wtrtyl"
# Shore tiles paint their water area with near-cyan; the game animates it.
WATER_MIN_GREEN_BLUE = 252
RESAMPLE_TRIANGLE = getattr(Image, "Resampling", Image).BILINEAR

ImageSource = Callable[[str], Image.Image]


def _fit_tile(image: Image.Image, tile_size: int) -> Image.Image:
    image = image.convert("RGBA")
    if image.size != (tile_size, tile_size):
        image = image.resize((tile_size, tile_size), RESAMPLE_TRIANGLE)
    return image


def water_mask(tile: Image.Image) -> Image.Image:
    """L mask that is 255 where the tile is painted with the water marker."""
    red, green, blue = tile.convert("RGB").split()
    mask = ImageChops.multiply(
        red.point([255 if level == 0 else 0 for level in range(256)]),
        green.point([255 if level >= WATER_MIN_GREEN_BLUE else 0 for level in range(256)]),
    )
    return ImageChops.multiply(mask, blue.point([255 if level >= WATER_MIN_GREEN_BLUE else 0 for level in range(256)]))


def substitute_water(tile: Image.Image, water: Image.Image) -> Image.Image:
    """Copy water pixels into the water-marked area of a terrain tile."""
    if tile.size != water.size:
        raise ValueError(f"water tile is {water.size[0]}x{water.size[1]}, tile is {tile.size[0]}x{tile.size[1]}")
    out = tile.convert("RGBA")
    out.paste(water.convert("RGBA"), (0, 0), water_mask(tile))
    return out


def build_atlas_from_names(
    source: ImageSource,
    names: Sequence[str],
    grid_width: int,
    *,
    water_name: str = DEFAULT_WATER_TILE,
    tile_size: int = DEFAULT_TILE_SIZE,
) -> Image.Image:
    water = _fit_tile(source(water_name), tile_size)
    tiles = [substitute_water(_fit_tile(source(name), tile_size), water) for name in names]
    return compose_atlas(tiles, grid_width)


__all__ = [
    "DEFAULT_TILE_SIZE",
    "DEFAULT_WATER_TILE",
    "build_atlas_from_names",
    "substitute_water",
    "water_mask",
]
