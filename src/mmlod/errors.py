from __future__ import annotations


class LodError(Exception):
    """Base class for every archive and image decoding failure."""


class BadFormatError(LodError, ValueError):
    pass


class UnsupportedVersionError(BadFormatError):
    pass


class TruncatedIndexError(LodError, ValueError):
    pass


class TruncatedRecordError(LodError, ValueError):
    pass


class SizeMismatchError(LodError, ValueError):
    pass


class TruncatedInputError(SizeMismatchError):
    pass


class DecompressionError(LodError, ValueError):
    pass


class NotFoundError(LodError, LookupError):
    pass


class EntryNotFoundError(NotFoundError):
    pass


class ArchiveNotFoundError(NotFoundError):
    pass


class PaletteNotFoundError(NotFoundError):
    pass


class RowOverrunError(LodError, ValueError):
    pass


class EmptyImageError(LodError, ValueError):
    pass


class PaletteIndexOutOfRangeError(LodError, IndexError):
    pass


class EmptyAtlasError(LodError, ValueError):
    pass


class LodIOError(LodError, OSError):
    pass


__all__ = [
    "ArchiveNotFoundError",
    "BadFormatError",
    "DecompressionError",
    "EmptyAtlasError",
    "EmptyImageError",
    "EntryNotFoundError",
    "LodError",
    "LodIOError",
    "NotFoundError",
    "PaletteIndexOutOfRangeError",
    "PaletteNotFoundError",
    "RowOverrunError",
    "SizeMismatchError",
    "TruncatedIndexError",
    "TruncatedInputError",
    "TruncatedRecordError",
    "UnsupportedVersionError",
]
