"""
LOD archive container (Might and Magic VI-VIII).

File layout:
  - NUL-terminated magic "LOD"
  - NUL-terminated version tag (GameMMVI, MMVI, GameMMVII, ...)
  - directory at absolute offset 256, 32-byte records:
      name[16] (NUL padded), offset i32, size i32, reserved i32, count i32

The first directory record describes the directory itself: its offset is the
base added to every following record, its count is the number of records that
follow. It is kept as entry 0 with its own offset untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, TypeVar

from construct import Bytes, GreedyBytes, Int32sl, Int32ul, NullTerminated, Struct
from construct.core import ConstructError

from .bitmap import decode_bitmap
from .errors import (
    BadFormatError,
    EntryNotFoundError,
    LodIOError,
    TruncatedIndexError,
    UnsupportedVersionError,
)
from .image import IndexedImage
from .palette import PaletteStore
from .sprite import decode_sprite

MAGIC = b"LOD"
INDEX_OFFSET = 256
ENTRY_NAME_SIZE = 16

T = TypeVar("T")

LOD_TAG = NullTerminated(GreedyBytes, term=b"\x00")

LOD_DIR_ENTRY = Struct(
    "name" / Bytes(ENTRY_NAME_SIZE),
    "offset" / Int32sl,
    "size" / Int32ul,
    "reserved" / Int32sl,
    "count" / Int32sl,
)

DIR_ENTRY_SIZE = LOD_DIR_ENTRY.sizeof()


class LodVersion(enum.Enum):
    MM6 = 6
    MM7 = 7
    MM8 = 8

    @classmethod
    def from_tag(cls, tag: bytes) -> LodVersion:
        version = _VERSION_TAGS.get(bytes(tag))
        if version is None:
            raise UnsupportedVersionError(f"unsupported version tag: {bytes(tag)!r}")
        return version


_VERSION_TAGS: dict[bytes, LodVersion] = {
    b"GameMMVI": LodVersion.MM6,
    b"MMVI": LodVersion.MM6,
    b"GameMMVII": LodVersion.MM7,
    b"MMVII": LodVersion.MM7,
    b"GameMMVIII": LodVersion.MM8,
    b"MMVIII": LodVersion.MM8,
}


@dataclass(frozen=True, slots=True)
class LodEntry:
    name: str
    offset: int
    size: int
    count: int = 0


class Decoder(enum.Enum):
    BITMAP = "bitmap"
    SPRITE = "sprite"

    def decode(self, data: bytes, palettes: PaletteStore | None = None) -> IndexedImage:
        if self is Decoder.BITMAP:
            return decode_bitmap(data)
        if palettes is None:
            raise TypeError("sprite records need a palette store")
        return decode_sprite(data, palettes)


def _entry_name(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("latin-1")


def _read_tag(f: BinaryIO, what: str) -> bytes:
    try:
        return LOD_TAG.parse_stream(f)
    except ConstructError as exc:
        raise BadFormatError(f"failed to read {what}: {exc}") from exc


def _read_dir_entry(f: BinaryIO, index: int, base_offset: int = 0) -> LodEntry:
    data = f.read(DIR_ENTRY_SIZE)
    if len(data) < DIR_ENTRY_SIZE:
        raise TruncatedIndexError(f"directory record {index} truncated ({len(data)} of {DIR_ENTRY_SIZE} bytes)")
    try:
        record = LOD_DIR_ENTRY.parse(data)
    except ConstructError as exc:
        raise TruncatedIndexError(f"failed to parse directory record {index}: {exc}") from exc
    return LodEntry(
        name=_entry_name(record.name),
        offset=int(record.offset) + int(base_offset),
        size=int(record.size),
        count=int(record.count),
    )


def read_index(f: BinaryIO) -> tuple[LodVersion, list[LodEntry]]:
    """Parse the header and directory of an open archive stream."""
    magic = _read_tag(f, "magic")
    if magic != MAGIC:
        raise BadFormatError(f"bad magic: {magic!r}")
    version = LodVersion.from_tag(_read_tag(f, "version tag"))

    f.seek(INDEX_OFFSET)
    head = _read_dir_entry(f, 0)
    if head.count < 0:
        raise BadFormatError(f"negative entry count: {head.count}")
    entries = [head]
    for index in range(1, head.count + 1):
        entries.append(_read_dir_entry(f, index, base_offset=head.offset))
    return version, entries


class Lod:
    """Read-only view of one archive: its version and its directory."""

    def __init__(self, path: Path, version: LodVersion, entries: tuple[LodEntry, ...]) -> None:
        self.path = path
        self.version = version
        self.entries = entries
        self._by_name: dict[str, LodEntry] = {}
        for entry in entries:
            # First match wins on duplicate names.
            self._by_name.setdefault(entry.name, entry)

    @classmethod
    def open(cls, path: str | Path) -> Lod:
        path = Path(path)
        try:
            with path.open("rb") as f:
                version, entries = read_index(f)
        except OSError as exc:
            raise LodIOError(f"{path}: {exc}") from exc
        return cls(path=path, version=version, entries=tuple(entries))

    def __repr__(self) -> str:
        return f"Lod({str(self.path)!r}, version={self.version.name}, entries={len(self.entries)})"

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[LodEntry]:
        return iter(self.entries)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def files(self) -> list[str]:
        return [entry.name for entry in self.entries]

    def entry(self, name: str) -> LodEntry:
        entry = self._by_name.get(name)
        if entry is None:
            raise EntryNotFoundError(f"{self.path.name}: no entry named {name!r}")
        return entry

    def read(self, entry: LodEntry) -> bytes:
        """Read the payload of one directory record, even a shadowed duplicate."""
        if entry.offset < 0:
            raise LodIOError(f"{self.path.name}: entry {entry.name!r} has negative offset {entry.offset}")
        try:
            with self.path.open("rb") as f:
                f.seek(entry.offset)
                data = f.read(entry.size)
        except OSError as exc:
            raise LodIOError(f"{self.path}: {exc}") from exc
        if len(data) != entry.size:
            raise LodIOError(f"{self.path.name}: entry {entry.name!r} truncated ({len(data)} of {entry.size} bytes)")
        return data

    def get_raw(self, name: str) -> bytes:
        return self.read(self.entry(name))

    def get(
        self,
        name: str,
        decoder: Decoder | Callable[[bytes], T],
        palettes: PaletteStore | None = None,
    ) -> IndexedImage | T:
        data = self.get_raw(name)
        if isinstance(decoder, Decoder):
            return decoder.decode(data, palettes)
        return decoder(data)


__all__ = [
    "DIR_ENTRY_SIZE",
    "INDEX_OFFSET",
    "LOD_DIR_ENTRY",
    "Decoder",
    "Lod",
    "LodEntry",
    "LodVersion",
    "read_index",
]
