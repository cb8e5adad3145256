"""
Package: one metadata record, one extension map, one compressed payload.

Usage:
    pkg = Package.create(raw_bytes)
    pkg.metadata.name = "forest-map"
    pkg.metadata.type = "GameMap"
    pkg.extension["Gamemode"] = "ctf"
    pkg.write("forest.ppkg")

    pkg = Package.read("forest.ppkg")
    raw = pkg.get_decompressed_payload()

The payload is compressed once, at create(). Loading never decompresses;
get_decompressed_payload() inflates on every call and does not cache.
"""

from __future__ import annotations

import dataclasses
import io
import logging
from pathlib import Path
from typing import Any, BinaryIO

from ppkg import FORMAT_VERSION, MAX_PACKAGE_SIZE, MAX_PAYLOAD_SIZE
from ppkg._format.reader import PackageReader
from ppkg._format.writer import PackageWriter
from ppkg.compression import DEFAULT_CODEC
from ppkg.metadata import (
    PackageMetadata,
    decode_extension,
    decode_metadata,
    encode,
)

log = logging.getLogger(__name__)


class Package:
    """In-memory package.

    The constructor takes an already-compressed payload; use create() for
    raw bytes and load()/read() for container bytes.

    Attributes:
        metadata: The PackageMetadata record (never None).
        extension: The extension map (never None, defaults to {}).
        codec: Compression codec used for the payload.
    """

    def __init__(
        self,
        compressed: bytes,
        metadata: PackageMetadata | None = None,
        extension: dict[str, Any] | None = None,
        codec: Any = None,
    ) -> None:
        self._payload = bytes(compressed)
        self.metadata = (
            metadata if metadata is not None
            else PackageMetadata(format_version=FORMAT_VERSION)
        )
        self.extension = extension if extension is not None else {}
        self.codec = codec or DEFAULT_CODEC

    # --- State ---

    @property
    def metadata(self) -> PackageMetadata:
        return self._metadata

    @metadata.setter
    def metadata(self, value: PackageMetadata) -> None:
        if not isinstance(value, PackageMetadata):
            raise TypeError(f"metadata must be PackageMetadata, got {type(value).__name__}")
        self._metadata = value

    @property
    def extension(self) -> dict[str, Any]:
        return self._extension

    @extension.setter
    def extension(self, value: dict[str, Any]) -> None:
        if not isinstance(value, dict):
            raise TypeError(f"extension must be a dict, got {type(value).__name__}")
        self._extension = value

    @property
    def compressed_payload(self) -> bytes:
        return self._payload

    # --- Construction ---

    @classmethod
    def create(cls, data: bytes | BinaryIO, codec: Any = None) -> Package:
        """Build a package from an uncompressed payload (bytes or binary stream).

        Metadata is empty apart from FormatVersion; the extension map is {}.
        """
        if hasattr(data, "read"):
            data = data.read()
        codec = codec or DEFAULT_CODEC
        compressed = codec.compress(data)
        log.debug("Created package: %d bytes -> %d compressed", len(data), len(compressed))
        return cls(compressed, codec=codec)

    @classmethod
    def load(cls, data: bytes, codec: Any = None) -> Package:
        """Parse container bytes.

        Raises FramingError, StructureError or MetadataError. The payload is
        kept compressed, so a corrupt payload is only detected on
        get_decompressed_payload().
        """
        blocks = PackageReader.unframe(data)
        metadata = decode_metadata(blocks.metadata)
        extension = decode_extension(blocks.extension)
        # The framing revision is authoritative over whatever the text claims
        metadata.format_version = blocks.format_version
        return cls(blocks.payload, metadata, extension, codec)

    @classmethod
    def read(
        cls,
        source: str | Path | BinaryIO,
        max_size: int = MAX_PACKAGE_SIZE,
        codec: Any = None,
    ) -> Package:
        """Load a package from a file path or a binary stream.

        A path is opened and closed within this call. A stream is read to
        the end and left open for the caller.
        """
        return cls.load(PackageReader.read_bytes(source, max_size=max_size), codec)

    # --- Export ---

    def to_bytes(self) -> bytes:
        """Serialize to the current container revision. Does not mutate self."""
        stamped = dataclasses.replace(self.metadata, format_version=FORMAT_VERSION)
        metadata_text, extension_text = encode(stamped, self.extension)
        return PackageWriter.frame(
            metadata_text.encode("utf-8"),
            extension_text.encode("utf-8"),
            self._payload,
        )

    def to_stream(self) -> io.BytesIO:
        """Serialize into a new in-memory stream positioned at the start."""
        return io.BytesIO(self.to_bytes())

    def write_to(self, stream: BinaryIO) -> int:
        """Serialize into a caller-owned binary stream. Returns bytes written."""
        data = self.to_bytes()
        stream.write(data)
        return len(data)

    def write(self, path: str | Path, mode: int = 0o644) -> int:
        """Write to a file atomically. Returns bytes written."""
        return PackageWriter.write(self.to_bytes(), path, mode=mode)

    # --- Payload access ---

    def get_compressed_payload(self) -> bytes:
        return self._payload

    def get_decompressed_payload(self, max_size: int | None = MAX_PAYLOAD_SIZE) -> bytes:
        """Inflate the payload. Raises PayloadError if it is not a valid stream."""
        return self.codec.decompress(self._payload, max_size=max_size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return (
            self.metadata == other.metadata
            and self.extension == other.extension
            and self._payload == other._payload
        )

    def __repr__(self) -> str:
        return (
            f"Package(name={self.metadata.name!r}, "
            f"format_version={self.metadata.format_version!r}, "
            f"extension_keys={len(self.extension)}, "
            f"compressed={len(self._payload)})"
        )
