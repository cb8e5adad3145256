"""
Metadata codec: package metadata record and extension map as JSON text.

Metadata block (one JSON object):
    PackageName, PackageVersion, PackageLicense, PackageDescription,
    AuthorName          <- string or null
    AuthorContacts      <- array of strings
    FormatVersion       <- string, stamped by the codec
    Type                <- string or null, names what the extension map holds

Keys outside this set are accepted on decode and carried in
PackageMetadata.custom so newer writers' fields survive a rewrite.

Extension block: any JSON object. Its contents are opaque to the codec.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ppkg.errors import MetadataError

METADATA_BLOCK = "metadata"
EXTENSION_BLOCK = "extension"

# attribute name -> JSON key, in write order
METADATA_KEYS = {
    "name": "PackageName",
    "version": "PackageVersion",
    "license": "PackageLicense",
    "description": "PackageDescription",
    "author_name": "AuthorName",
    "author_contacts": "AuthorContacts",
    "format_version": "FormatVersion",
    "type": "Type",
}

MAX_CUSTOM_FIELDS = 100


@dataclass
class PackageMetadata:
    """Descriptive record stored in the metadata block.

    Attributes:
        name: Package name.
        version: Package version (caller-defined, unrelated to format_version).
        license: License identifier or text.
        description: Free-form description.
        author_name: Name of the author(s).
        author_contacts: Contact strings for the author(s).
        type: What the package is; tells loaders what to expect in the extension map.
        format_version: Container revision that produced or decoded the bytes.
        custom: Unknown keys read from a newer writer, written back unchanged.
    """

    name: str | None = None
    version: str | None = None
    license: str | None = None
    description: str | None = None
    author_name: str | None = None
    author_contacts: list[str] = field(default_factory=list)
    type: str | None = None
    format_version: str = ""
    custom: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object for this record (known keys first)."""
        obj: dict[str, Any] = {}
        for attr, key in METADATA_KEYS.items():
            value = getattr(self, attr)
            if attr == "author_contacts":
                value = list(value)
            obj[key] = value
        for key, value in self.custom.items():
            if key not in obj:
                obj[key] = value
        return obj

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> PackageMetadata:
        """Build a record from a decoded JSON object. Raises MetadataError."""
        if not isinstance(obj, dict):
            raise MetadataError(METADATA_BLOCK, "expected a JSON object")

        known = set(METADATA_KEYS.values())
        values: dict[str, Any] = {}
        for attr, key in METADATA_KEYS.items():
            value = obj.get(key)
            if attr == "author_contacts":
                values[attr] = _contacts(value)
            elif attr == "format_version":
                values[attr] = _optional_str(key, value) or ""
            else:
                values[attr] = _optional_str(key, value)

        custom = {k: v for k, v in obj.items() if k not in known}
        if len(custom) > MAX_CUSTOM_FIELDS:
            raise MetadataError(
                METADATA_BLOCK,
                f"too many unknown fields: {len(custom)} (max {MAX_CUSTOM_FIELDS})",
            )
        return cls(custom=custom, **values)


def _optional_str(key: str, value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise MetadataError(
        METADATA_BLOCK, f"{key} must be a string or null, got {type(value).__name__}"
    )


def _contacts(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MetadataError(METADATA_BLOCK, "AuthorContacts must be an array of strings")
    return list(value)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a JSON number")


def _parse_object(block: str, text: str | bytes) -> dict[str, Any]:
    """Parse one block as a JSON object, tagging failures with the block name."""
    if isinstance(text, (bytes, bytearray, memoryview)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MetadataError(block, f"not valid UTF-8: {e}") from e
    try:
        obj = json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise MetadataError(block, f"not valid JSON: {e}") from e
    except RecursionError as e:
        raise MetadataError(block, "not valid JSON: nested too deeply") from e
    if not isinstance(obj, dict):
        raise MetadataError(block, f"expected a JSON object, got {type(obj).__name__}")
    return obj


def _dump(block: str, obj: Any) -> str:
    try:
        text = json.dumps(obj, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise MetadataError(block, f"not JSON-serializable: {e}") from e
    # Blocks are stored as UTF-8, which has no encoding for lone surrogates
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise MetadataError(block, f"not encodable as UTF-8: {e}") from e
    return text


def encode_metadata(metadata: PackageMetadata) -> str:
    return _dump(METADATA_BLOCK, metadata.to_dict())


def encode_extension(extension: dict[str, Any]) -> str:
    if not isinstance(extension, dict):
        raise MetadataError(
            EXTENSION_BLOCK, f"expected a mapping, got {type(extension).__name__}"
        )
    if not all(isinstance(k, str) for k in extension):
        raise MetadataError(EXTENSION_BLOCK, "keys must be strings")
    return _dump(EXTENSION_BLOCK, extension)


def encode(metadata: PackageMetadata, extension: dict[str, Any]) -> tuple[str, str]:
    """Encode both blocks. Returns (metadata_text, extension_text)."""
    return encode_metadata(metadata), encode_extension(extension)


def decode_metadata(text: str | bytes) -> PackageMetadata:
    """Decode the metadata block. Raises MetadataError(block="metadata")."""
    return PackageMetadata.from_dict(_parse_object(METADATA_BLOCK, text))


def decode_extension(text: str | bytes) -> dict[str, Any]:
    """Decode the extension block. Raises MetadataError(block="extension").

    An empty block is malformed; the writer always emits at least ``{}``.
    """
    return _parse_object(EXTENSION_BLOCK, text)
