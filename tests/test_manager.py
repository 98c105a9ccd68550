from __future__ import annotations

from pathlib import Path

import pytest

from mmlod.debug_log import init_debug_log
from mmlod.errors import ArchiveNotFoundError, EmptyImageError, EntryNotFoundError, LodIOError, NotFoundError
from mmlod.lod import LodVersion
from mmlod.manager import LodManager


def test_manager_opens_archives_by_lowercase_stem(game_dir: Path) -> None:
    manager = LodManager(game_dir / "Data")
    assert sorted(manager.archives) == ["bitmaps", "sprites"]
    assert manager.archive("BITMAPS").version is LodVersion.MM7


def test_manager_missing_archive(game_dir: Path) -> None:
    manager = LodManager(game_dir / "Data")
    with pytest.raises(ArchiveNotFoundError, match="available: bitmaps, sprites"):
        manager.archive("icons")


def test_manager_requires_directory(tmp_path: Path) -> None:
    with pytest.raises(LodIOError):
        LodManager(tmp_path / "nope")


def test_manager_requires_archives(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        LodManager(tmp_path)


def test_manager_bitmap(game_dir: Path, palette_rgb: bytes) -> None:
    image = LodManager(game_dir / "Data").bitmap("grastyl")
    assert image.size == (2, 2)
    assert image.getpixel((1, 1)) == (10, 245, 5, 255)


def test_manager_bitmap_errors_propagate(game_dir: Path) -> None:
    manager = LodManager(game_dir / "Data")
    with pytest.raises(EntryNotFoundError):
        manager.bitmap("missing")
    with pytest.raises(EmptyImageError):
        manager.bitmap("pal001")


def test_manager_sprite_uses_palette_store(game_dir: Path) -> None:
    manager = LodManager(game_dir / "Data")
    image = manager.sprite("spr")

    assert image.size == (3, 2)
    assert sorted(manager.palettes) == ["pal001"]
    assert image.getpixel((0, 0)) == (0, 0, 0, 0)
    assert image.getpixel((1, 0)) == (5, 250, 2, 255)
    # Zero-filled gaps share the transparent index of the first pixel.
    assert image.getpixel((0, 1)) == (0, 0, 0, 0)
    assert image.getpixel((1, 1)) == (7, 248, 3, 255)


def test_manager_raw(game_dir: Path) -> None:
    manager = LodManager(game_dir / "Data")
    assert manager.raw("sprites", "spr")[:3] == b"spr"


def test_manager_atlas(game_dir: Path) -> None:
    atlas = LodManager(game_dir / "Data").atlas(["grastyl", "dirttyl", "wtrtyl"], 2, tile_size=2)
    assert atlas.size == (4, 4)
    assert atlas.getpixel((0, 0)) == (10, 245, 5, 255)
    assert atlas.getpixel((2, 0)) == (30, 225, 15, 255)
    assert atlas.getpixel((0, 2)) == (20, 235, 10, 255)
    assert atlas.getpixel((3, 3)) == (0, 0, 0, 0)


def test_manager_logs_archive_opens(game_dir: Path, tmp_path: Path) -> None:
    log_path = init_debug_log(tmp_path / "logs", command="test")
    LodManager(game_dir / "Data")
    text = log_path.read_text(encoding="utf-8")
    assert text.count("event=lod_open") == 2
    assert "version=MM7" in text
