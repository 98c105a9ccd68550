from __future__ import annotations

import re
from pathlib import Path

import msgspec
import typer

from .bitmap import decode_bitmap
from .config import find_data_dir, load_config
from .debug_log import (
    close_debug_log,
    debug_log,
    init_debug_log,
    log_archive_opened,
    log_entry_written,
    log_error,
    log_image_decoded,
)
from .errors import LodError
from .image import materialize
from .lod import Lod
from .manager import BITMAPS_ARCHIVE, LOD_SUFFIX, LodManager
from .palette import PaletteStore
from .sprite import decode_sprite


app = typer.Typer(add_completion=False, help="Read Might and Magic VI-VIII LOD archives.")

_SEP_RE = re.compile(r"[\\/]+")


class EntryInfo(msgspec.Struct):
    name: str
    offset: int
    size: int


def _fail(exc: Exception) -> typer.Exit:
    log_error(exc)
    typer.echo(f"error: {exc}", err=True)
    return typer.Exit(code=1)


def _open(path: Path) -> Lod:
    try:
        lod = Lod.open(path)
    except LodError as exc:
        raise _fail(exc) from exc
    log_archive_opened(lod)
    return lod


def _safe_relpath(name: str) -> Path:
    parts = [p for p in _SEP_RE.split(name) if p]
    if not parts:
        raise ValueError("empty entry name")
    for part in parts:
        if part in (".", ".."):
            raise ValueError(f"unsafe path part: {part!r}")
    return Path(*parts)


def _unique_dest(dest: Path, taken: set[str]) -> Path:
    # Archives may repeat a name; keep every payload by suffixing later copies.
    candidate = dest
    n = 1
    while candidate.as_posix().lower() in taken:
        candidate = dest.with_name(f"{dest.name}~{n}")
        n += 1
    taken.add(candidate.as_posix().lower())
    return candidate


def _sibling_bitmaps(archive: Path) -> Path | None:
    wanted = BITMAPS_ARCHIVE + LOD_SUFFIX
    for child in sorted(archive.parent.iterdir()):
        if child.name.lower() == wanted:
            return child
    return None


@app.callback()
def main(
    ctx: typer.Context,
    log_dir: Path | None = typer.Option(
        None,
        "--log-dir",
        help="write a per-run debug event log under this directory (default: MMLOD_LOG_DIR)",
    ),
) -> None:
    """Inspect and decode LOD archives."""
    try:
        config = load_config()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    log_dir = log_dir if log_dir is not None else config.log_dir
    if log_dir is not None:
        init_debug_log(log_dir, command=ctx.invoked_subcommand or "")
    else:
        close_debug_log()


@app.command("files")
def cmd_files(
    archive: Path = typer.Argument(..., help="path to a .lod archive"),
    as_json: bool = typer.Option(False, "--json", help="print entries as JSON"),
) -> None:
    """List the entries of an archive in directory order."""
    lod = _open(archive)
    entries = [EntryInfo(name=e.name, offset=e.offset, size=e.size) for e in lod.entries]
    if as_json:
        typer.echo(msgspec.json.encode(entries).decode("utf-8"))
        return
    typer.echo(f"{archive.name}: {lod.version.name}, {len(entries)} entries")
    for entry in entries:
        typer.echo(f"{entry.name:16s}  offset=0x{entry.offset:08x}  size={entry.size}")


@app.command("raw")
def cmd_raw(
    archive: Path = typer.Argument(..., help="path to a .lod archive"),
    name: str = typer.Argument(..., help="entry name (case-sensitive)"),
    out: Path = typer.Argument(..., help="output file"),
) -> None:
    """Write the raw bytes of one entry."""
    lod = _open(archive)
    try:
        entry = lod.entry(name)
        data = lod.read(entry)
    except LodError as exc:
        raise _fail(exc) from exc
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    log_entry_written(lod, entry, out)
    typer.echo(f"wrote {len(data)} bytes to {out}")


@app.command("bitmap")
def cmd_bitmap(
    archive: Path = typer.Argument(..., help="path to a .lod archive (bitmaps.lod, icons.lod)"),
    name: str = typer.Argument(..., help="bitmap entry name"),
    out: Path = typer.Argument(..., help="output .png"),
) -> None:
    """Decode a bitmap record to PNG."""
    lod = _open(archive)
    try:
        image = materialize(decode_bitmap(lod.get_raw(name)))
    except LodError as exc:
        raise _fail(exc) from exc
    out.parent.mkdir(parents=True, exist_ok=True)
    image.save(out, format="PNG")
    log_image_decoded("bitmap", lod, name, image)
    typer.echo(f"{name}: {image.width}x{image.height} -> {out}")


@app.command("sprite")
def cmd_sprite(
    archive: Path = typer.Argument(..., help="path to sprites.lod"),
    name: str = typer.Argument(..., help="sprite entry name"),
    out: Path = typer.Argument(..., help="output .png"),
    palettes_path: Path | None = typer.Option(
        None,
        "--palettes",
        help="archive holding palNNN entries (default: bitmaps.lod beside the sprite archive)",
    ),
) -> None:
    """Decode a sprite record to PNG."""
    lod = _open(archive)
    if palettes_path is None:
        palettes_path = _sibling_bitmaps(archive)
        if palettes_path is None:
            raise typer.BadParameter(f"no {BITMAPS_ARCHIVE}{LOD_SUFFIX} beside {archive}; pass --palettes")
    try:
        palettes = PaletteStore.from_lod(_open(palettes_path))
        image = materialize(decode_sprite(lod.get_raw(name), palettes))
    except LodError as exc:
        raise _fail(exc) from exc
    out.parent.mkdir(parents=True, exist_ok=True)
    image.save(out, format="PNG")
    log_image_decoded("sprite", lod, name, image)
    typer.echo(f"{name}: {image.width}x{image.height} -> {out}")


@app.command("atlas")
def cmd_atlas(
    out: Path = typer.Argument(..., help="output .png"),
    names: list[str] = typer.Argument(..., help="bitmap names, row-major"),
    grid_width: int | None = typer.Option(None, "--grid-width", min=1, help="tiles per row (default: MMLOD_GRID_WIDTH or 4)"),
    game_dir: Path | None = typer.Option(None, "--game-dir", help="game install or data dir (default: MMLOD_GAME_DIR)"),
) -> None:
    """Compose terrain tiles into one atlas, with water pixels filled in."""
    config = load_config()
    data_dir = find_data_dir(game_dir if game_dir is not None else config.game_dir)
    try:
        manager = LodManager(data_dir)
        image = manager.atlas(
            names,
            grid_width if grid_width is not None else config.grid_width,
            water_name=config.water_tile,
            tile_size=config.tile_size,
        )
    except LodError as exc:
        raise _fail(exc) from exc
    out.parent.mkdir(parents=True, exist_ok=True)
    image.save(out, format="PNG")
    typer.echo(f"atlas {image.width}x{image.height} ({len(names)} tiles) -> {out}")


@app.command("extract")
def cmd_extract(
    archive: Path = typer.Argument(..., help="path to a .lod archive"),
    out_dir: Path = typer.Argument(..., help="output directory"),
) -> None:
    """Dump every entry of an archive as raw bytes."""
    lod = _open(archive)
    out_dir.mkdir(parents=True, exist_ok=True)
    count = 0
    taken: set[str] = set()
    # Entry 0 describes the directory itself and has no payload of its own.
    for entry in lod.entries[1:]:
        try:
            relpath = _safe_relpath(entry.name)
        except ValueError as exc:
            typer.echo(f"skipping {entry.name!r}: {exc}", err=True)
            continue
        try:
            data = lod.read(entry)
        except LodError as exc:
            raise _fail(exc) from exc
        dest = out_dir / _unique_dest(relpath, taken)
        if dest.name != relpath.name:
            typer.echo(f"duplicate {entry.name!r} written as {dest.name}", err=True)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(data)
        log_entry_written(lod, entry, dest)
        count += 1
    debug_log("extract", archive=archive.name, count=count)
    typer.echo(f"extracted {count} files")
