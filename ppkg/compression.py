"""
Payload compression: raw DEFLATE (RFC 1951) via stdlib zlib.

Every revision of the container has stored the payload as a bare DEFLATE
stream (no zlib/gzip wrapper), so one codec reads both the current
layout and legacy archives.

Any object with ``compress(bytes) -> bytes`` and
``decompress(bytes, max_size=...) -> bytes`` (raising PayloadError on bad
input) can be passed to Package in place of DeflateCodec.
"""

from __future__ import annotations

import os
import zlib

from ppkg import (
    COMPRESSION_LEVEL_ENV,
    DEFAULT_COMPRESSION_LEVEL,
    MAX_PAYLOAD_SIZE,
)
from ppkg.errors import PayloadError

# Negative window bits select a raw stream with no header or checksum
_RAW_WBITS = -zlib.MAX_WBITS


class DeflateCodec:
    """Stateless raw DEFLATE compressor.

    Usage:
        codec = DeflateCodec(level=9)
        blob = codec.compress(b"payload")
        assert codec.decompress(blob) == b"payload"
    """

    def __init__(self, level: int = DEFAULT_COMPRESSION_LEVEL) -> None:
        if not isinstance(level, int) or not (0 <= level <= 9):
            raise ValueError(f"Compression level must be 0..9, got {level!r}")
        self.level = level

    @classmethod
    def from_env(cls) -> DeflateCodec:
        """Create a codec from the PPKG_COMPRESSION_LEVEL environment variable.

        Falls back to DEFAULT_COMPRESSION_LEVEL when unset.
        """
        raw = os.environ.get(COMPRESSION_LEVEL_ENV, "").strip()
        if not raw:
            return cls()
        try:
            level = int(raw)
        except ValueError:
            raise ValueError(
                f"{COMPRESSION_LEVEL_ENV} must be an integer 0..9, got {raw!r}"
            ) from None
        return cls(level)

    def compress(self, raw: bytes) -> bytes:
        """Compress raw bytes. Never fails for finite input."""
        compressor = zlib.compressobj(self.level, zlib.DEFLATED, _RAW_WBITS)
        return compressor.compress(bytes(raw)) + compressor.flush()

    def decompress(self, data: bytes, max_size: int | None = MAX_PAYLOAD_SIZE) -> bytes:
        """Decompress a complete raw DEFLATE stream.

        Raises PayloadError if the stream is malformed, truncated, followed
        by trailing bytes, or inflates past max_size (None disables the cap).
        """
        decompressor = zlib.decompressobj(_RAW_WBITS)
        limit = 0 if max_size is None else max_size + 1
        try:
            out = decompressor.decompress(bytes(data), limit)
        except zlib.error as e:
            raise PayloadError(f"Invalid compressed stream: {e}") from e

        if max_size is not None and len(out) > max_size:
            raise PayloadError(
                f"Decompressed payload exceeds maximum {max_size} bytes"
            )
        if not decompressor.eof:
            raise PayloadError("Compressed stream is truncated")
        if decompressor.unused_data:
            raise PayloadError(
                f"{len(decompressor.unused_data)} trailing bytes after compressed stream"
            )
        return out

    def __repr__(self) -> str:
        return f"DeflateCodec(level={self.level})"


DEFAULT_CODEC = DeflateCodec()


def compress(raw: bytes) -> bytes:
    """Compress with the default codec."""
    return DEFAULT_CODEC.compress(raw)


def decompress(data: bytes, max_size: int | None = MAX_PAYLOAD_SIZE) -> bytes:
    """Decompress with the default codec."""
    return DEFAULT_CODEC.decompress(data, max_size=max_size)
