"""
Error taxonomy for package encode/decode.

Every failure surfaced by the codec is a PackageError subclass carrying a
human-readable reason. Decode errors are fatal to the call that raised
them: no partially initialized Package is ever returned.
"""

from __future__ import annotations


class PackageError(Exception):
    """Base class for all package codec errors."""


class SizeError(PackageError):
    """A block or input is larger than the format or the caller allows."""


class FramingError(PackageError):
    """Malformed container header or body (magic, version, truncation)."""


class StructureError(PackageError):
    """Legacy archive has the wrong entry count, names, or unreadable entries."""


class MetadataError(PackageError):
    """The metadata or extension block is not valid JSON of the expected shape.

    Attributes:
        block: ``"metadata"`` or ``"extension"``: which block failed.
        reason: Human-readable description of the failure.
    """

    def __init__(self, block: str, reason: str) -> None:
        self.block = block
        self.reason = reason
        super().__init__(f"{block} block: {reason}")


class PayloadError(PackageError):
    """Compressed payload is not a valid stream for the codec."""
