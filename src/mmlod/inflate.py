from __future__ import annotations

import zlib

from .errors import DecompressionError, SizeMismatchError, TruncatedInputError


def decompress(compressed: bytes, compressed_size: int, uncompressed_size: int) -> bytes:
    """Inflate a zlib chunk and check it against the sizes its header declared."""
    if len(compressed) < compressed_size:
        raise TruncatedInputError(f"compressed data truncated: {len(compressed)} < {compressed_size}")
    try:
        raw = zlib.decompress(bytes(compressed[:compressed_size]))
    except zlib.error as exc:
        raise DecompressionError(f"corrupt zlib stream: {exc}") from exc
    if len(raw) != uncompressed_size:
        raise SizeMismatchError(f"raw size mismatch: {len(raw)} != {uncompressed_size}")
    return raw
