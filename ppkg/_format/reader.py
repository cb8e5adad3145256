"""
Reader: splits container bytes into their three blocks.

Validation order (first failure aborts, nothing is recovered):
  1. At least HEADER_SIZE bytes                 -> else "truncated header"
  2. Magic matches                              -> else legacy ZIP or "bad magic"
  3. Revision byte is supported                 -> else "unsupported version"
  4. Body holds all declared block lengths      -> else "truncated body"

Bytes past the end of the payload block are ignored.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

from ppkg import MAX_PACKAGE_SIZE
from ppkg._format import legacy
from ppkg._format.spec import (
    HEADER_SIZE, HEADER_STRUCT, MAGIC, SUPPORTED_REVISIONS, Blocks,
)
from ppkg.errors import FramingError, SizeError

log = logging.getLogger(__name__)


class PackageReader:
    """
    Container decoder.

    Usage:
        blocks = PackageReader.unframe(data)
        blocks = PackageReader.unframe(PackageReader.read_bytes("file.ppkg"))
    """

    @staticmethod
    def is_package_bytes(data: bytes) -> bool:
        """Fast check if bytes start with the container magic."""
        return bytes(data[:len(MAGIC)]) == MAGIC

    @staticmethod
    def is_package(path: str | Path) -> bool:
        """Fast check if a file is a container. Reads only the magic."""
        with open(path, "rb") as f:
            head = f.read(len(MAGIC))
        return head == MAGIC

    @staticmethod
    def read_bytes(source: str | Path | BinaryIO, max_size: int = MAX_PACKAGE_SIZE) -> bytes:
        """Read a whole container from a path or binary stream.

        Paths are opened and closed here; streams are read but left open.
        Raises SizeError if the input exceeds max_size.
        """
        if isinstance(source, (str, Path)):
            path = Path(source)
            file_size = path.stat().st_size
            if file_size > max_size:
                raise SizeError(
                    f"File size {file_size} exceeds maximum {max_size} bytes. "
                    f"Pass max_size= to override."
                )
            with open(path, "rb") as f:
                return f.read()

        data = source.read(max_size + 1)
        if len(data) > max_size:
            raise SizeError(
                f"Input exceeds maximum {max_size} bytes. Pass max_size= to override."
            )
        return data

    @classmethod
    def unframe(cls, data: bytes) -> Blocks:
        """Split container bytes into blocks. Raises FramingError or StructureError."""
        data = bytes(data)
        if len(data) < HEADER_SIZE:
            raise FramingError(
                f"truncated header: {len(data)} bytes, need at least {HEADER_SIZE}"
            )

        magic, revision, md_len, ext_len, payload_len = HEADER_STRUCT.unpack_from(data)
        if magic != MAGIC:
            if legacy.is_legacy_archive(data):
                log.debug("Magic %r not found, falling back to legacy archive", MAGIC)
                return legacy.read_archive(data)
            raise FramingError(f"bad magic: expected {MAGIC!r}, got {magic!r}")

        format_version = SUPPORTED_REVISIONS.get(revision)
        if format_version is None:
            raise FramingError(
                f"unsupported version: {revision}. "
                f"Supported: {', '.join(str(r) for r in sorted(SUPPORTED_REVISIONS))}"
            )

        end = HEADER_SIZE + md_len + ext_len + payload_len
        if len(data) < end:
            raise FramingError(
                f"truncated body: header declares {end} bytes, got {len(data)}"
            )
        if len(data) > end:
            log.debug("Ignoring %d bytes after payload block", len(data) - end)

        md_end = HEADER_SIZE + md_len
        ext_end = md_end + ext_len
        return Blocks(
            format_version=format_version,
            metadata=data[HEADER_SIZE:md_end],
            extension=data[md_end:ext_end],
            payload=data[ext_end:end],
        )
