"""
Opt-in event log for archive work.

Each run writes one file under the chosen log directory, named after the
command and the process: ``mmlod-<command>-pid<pid>-<utc stamp>.log``.
Every line is ``<utc iso time> event=<name> key=value ...`` with keys sorted.
"""

from __future__ import annotations

import datetime as dt
import enum
import os
from pathlib import Path, PurePath
from threading import Lock
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PIL import Image

    from .lod import Lod, LodEntry


LOG_PREFIX = "mmlod"

_LOG_LOCK = Lock()
_LOG_PATH: Path | None = None


def _render(value: object) -> str:
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, PurePath):
        return value.as_posix()
    text = str(value).replace("\n", "\\n")
    # Entry names and error messages may carry spaces; quote so lines stay splittable.
    if not text or any(ch.isspace() for ch in text):
        return repr(text)
    return text


def _render_line(event: str, fields: dict[str, object]) -> str:
    stamp = dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds")
    parts = [stamp, f"event={event.strip()}"]
    parts.extend(f"{key}={_render(fields[key])}" for key in sorted(fields))
    return " ".join(parts) + "\n"


def log_file_name(command: str, pid: int, when: dt.datetime) -> str:
    command_name = command.strip().lower() or "run"
    return f"{LOG_PREFIX}-{command_name}-pid{pid}-{when.strftime('%Y%m%dT%H%M%S.%fZ')}.log"


def debug_log_path() -> Path | None:
    with _LOG_LOCK:
        return _LOG_PATH


def init_debug_log(log_dir: Path, *, command: str, **fields: object) -> Path:
    """Start a fresh log file for this run and return its path."""
    pid = os.getpid()
    path = Path(log_dir) / log_file_name(command, pid, dt.datetime.now(dt.timezone.utc))
    path.parent.mkdir(parents=True, exist_ok=True)

    global _LOG_PATH
    with _LOG_LOCK:
        _LOG_PATH = path

    debug_log("init", command=command, pid=pid, **fields)
    return path


def debug_log(event: str, **fields: object) -> None:
    line = _render_line(event, fields)
    with _LOG_LOCK:
        if _LOG_PATH is None:
            return
        with _LOG_PATH.open("a", encoding="utf-8") as handle:
            handle.write(line)


def close_debug_log() -> None:
    global _LOG_PATH
    with _LOG_LOCK:
        _LOG_PATH = None


def log_archive_opened(lod: Lod) -> None:
    debug_log("lod_open", path=lod.path, version=lod.version, entries=len(lod))


def log_entry_written(lod: Lod, entry: LodEntry, dest: Path) -> None:
    debug_log("entry_written", archive=lod.path.name, entry=entry.name, offset=entry.offset, size=entry.size, dest=dest)


def log_image_decoded(kind: str, lod: Lod, name: str, image: Image.Image) -> None:
    debug_log(f"{kind}_decoded", archive=lod.path.name, entry=name, width=image.width, height=image.height)


def log_error(exc: BaseException) -> None:
    debug_log("error", kind=type(exc).__name__, message=str(exc))


__all__ = [
    "close_debug_log",
    "debug_log",
    "debug_log_path",
    "init_debug_log",
    "log_archive_opened",
    "log_entry_written",
    "log_error",
    "log_file_name",
    "log_image_decoded",
]
