from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .errors import LodError
from .image import IndexedImage, compose_atlas, materialize
from .lod import Decoder, Lod, LodEntry, LodVersion
from .palette import Palette, PaletteStore

try:
    __version__ = version("mmlod")
except PackageNotFoundError:  # pragma: no cover
    # Allow running from source (e.g. `PYTHONPATH=src`) without installed package metadata.
    __version__ = "0.0.0+dev"

__all__ = [
    "Decoder",
    "IndexedImage",
    "Lod",
    "LodEntry",
    "LodError",
    "LodVersion",
    "Palette",
    "PaletteStore",
    "compose_atlas",
    "materialize",
]
