from __future__ import annotations

from collections.abc import Callable, Sequence
import sys
import zlib
from pathlib import Path

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-game-data",
        action="store_true",
        default=False,
        help="run tests against a real game install (MMLOD_GAME_DIR)",
    )


def pytest_configure(config: pytest.Config) -> None:
    # Ensure the local `src/` tree wins over any other editable install that may exist
    # (e.g. a different git worktree pointing at the same project).
    src_dir = Path(__file__).resolve().parents[1] / "src"
    src_str = str(src_dir)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)
    config.addinivalue_line("markers", "game_data: tests that read a real game install (opt-in)")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-game-data"):
        return
    skip_game_data = pytest.mark.skip(reason="use --run-game-data to run tests against a game install")
    for item in items:
        if "game_data" in item.keywords:
            item.add_marker(skip_game_data)


def _pad_name(name: str, size: int) -> bytes:
    return name.encode("latin-1")[:size].ljust(size, b"\x00")


def build_lod(
    entries: Sequence[tuple[str, bytes]],
    *,
    tag: bytes = b"GameMMVI",
    head_name: str = "bitmaps",
) -> bytes:
    from mmlod.lod import DIR_ENTRY_SIZE, INDEX_OFFSET, LOD_DIR_ENTRY

    base = INDEX_OFFSET + DIR_ENTRY_SIZE * (len(entries) + 1)
    records = bytearray()
    blob = bytearray()
    for name, data in entries:
        records += LOD_DIR_ENTRY.build(
            {"name": _pad_name(name, 16), "offset": len(blob), "size": len(data), "reserved": 0, "count": 0}
        )
        blob += data
    head = LOD_DIR_ENTRY.build(
        {"name": _pad_name(head_name, 16), "offset": base, "size": len(blob), "reserved": 0, "count": len(entries)}
    )
    header = (b"LOD\x00" + tag + b"\x00").ljust(INDEX_OFFSET, b"\x00")
    return header + head + bytes(records) + bytes(blob)


def build_bitmap(
    name: str,
    width: int,
    height: int,
    pixels: bytes,
    palette_rgb: bytes = bytes(768),
    *,
    pixel_size: int | None = None,
) -> bytes:
    from mmlod.bitmap import BITMAP_HEADER

    comp = zlib.compress(pixels)
    header = BITMAP_HEADER.build(
        {
            "name": _pad_name(name, 16),
            "pixel_size": len(pixels) if pixel_size is None else pixel_size,
            "compressed_size": len(comp),
            "width": width,
            "height": height,
            "width_ln2": max(width.bit_length() - 1, 0),
            "height_ln2": max(height.bit_length() - 1, 0),
            "width_minus_1": max(width - 1, 0),
            "height_minus_1": max(height - 1, 0),
            "palette_index": 0,
            "reserved": 0,
            "uncompressed_size": len(pixels),
            "bits": 0,
        }
    )
    return header + comp + palette_rgb


def build_palette_record(name: str, palette_rgb: bytes) -> bytes:
    from mmlod.bitmap import BITMAP_HEADER

    header = BITMAP_HEADER.build(
        {
            "name": _pad_name(name, 16),
            "pixel_size": 0,
            "compressed_size": 0,
            "width": 0,
            "height": 0,
            "width_ln2": 0,
            "height_ln2": 0,
            "width_minus_1": 0,
            "height_minus_1": 0,
            "palette_index": 0,
            "reserved": 0,
            "uncompressed_size": 0,
            "bits": 0,
        }
    )
    return header + palette_rgb


def build_sprite(
    name: str,
    width: int,
    rows: Sequence[tuple[int, int, int]],
    runs: bytes,
    *,
    palette_id: int = 1,
) -> bytes:
    from mmlod.sprite import SPRITE_HEADER, SPRITE_ROW

    comp = zlib.compress(runs)
    header = SPRITE_HEADER.build(
        {
            "name": _pad_name(name, 12),
            "compressed_size": len(comp),
            "width": width,
            "height": len(rows),
            "palette_id": palette_id,
            "reserved_0": 0,
            "y_skip": 0,
            "reserved_1": 0,
            "uncompressed_size": len(runs),
        }
    )
    table = b"".join(SPRITE_ROW.build({"start": s, "end": e, "offset": o}) for s, e, o in rows)
    return header + table + comp


def gradient_palette() -> bytes:
    return bytes(channel for idx in range(256) for channel in (idx, 255 - idx, idx // 2))


@pytest.fixture
def make_lod() -> Callable[..., bytes]:
    return build_lod


@pytest.fixture
def make_bitmap() -> Callable[..., bytes]:
    return build_bitmap


@pytest.fixture
def make_sprite() -> Callable[..., bytes]:
    return build_sprite


@pytest.fixture
def make_palette_record() -> Callable[..., bytes]:
    return build_palette_record


@pytest.fixture
def palette_rgb() -> bytes:
    return gradient_palette()


@pytest.fixture(autouse=True)
def _reset_debug_log():
    from mmlod.debug_log import close_debug_log

    yield
    close_debug_log()


@pytest.fixture
def game_dir(tmp_path: Path, palette_rgb: bytes) -> Path:
    """A fake install: Data/BITMAPS.LOD with palettes and tiles, Data/sprites.lod."""
    data_dir = tmp_path / "game" / "Data"
    data_dir.mkdir(parents=True)
    (data_dir / "BITMAPS.LOD").write_bytes(
        build_lod(
            [
                ("pal001", build_palette_record("pal001", palette_rgb)),
                ("grastyl", build_bitmap("grastyl", 2, 2, bytes([10, 10, 10, 10]), palette_rgb)),
                ("wtrtyl", build_bitmap("wtrtyl", 2, 2, bytes([20, 20, 20, 20]), palette_rgb)),
                ("dirttyl", build_bitmap("dirttyl", 4, 4, bytes([30] * 16), palette_rgb)),
            ],
            tag=b"MMVII",
        )
    )
    (data_dir / "sprites.lod").write_bytes(
        build_lod(
            [("spr", build_sprite("spr", 3, [(0, 2, 0), (1, 1, 3)], bytes([0, 5, 6, 7]), palette_id=1))],
            tag=b"MMVII",
            head_name="sprites08",
        )
    )
    (data_dir / "readme.txt").write_text("not an archive", encoding="utf-8")
    return tmp_path / "game"
