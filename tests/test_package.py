"""
Tests for the Package facade: ppkg.package.

Covers the end-to-end properties: round-trip, idempotent decode,
truncation and magic rejection, corrupt payload, empty package, and the
legacy archive fallback.
"""

from __future__ import annotations

import dataclasses
import io
import json
import logging
import struct
import zipfile
from unittest.mock import MagicMock

import pytest

from ppkg import (
    FORMAT_VERSION,
    LEGACY_FORMAT_VERSION,
    FramingError,
    MetadataError,
    Package,
    PackageError,
    PackageMetadata,
    PayloadError,
    SizeError,
    StructureError,
)
from ppkg._format import PackageWriter
from ppkg.compression import DEFAULT_CODEC, DeflateCodec


RAW = b"\x89PNG fake tile data " * 64


def _frame_text(metadata: str, extension: str, payload: bytes) -> bytes:
    return PackageWriter.frame(metadata.encode("utf-8"), extension.encode("utf-8"), payload)


def _legacy_archive(entries: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_STORED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def sample_pkg():
    pkg = Package.create(RAW)
    md = pkg.metadata
    md.name = "forest-map"
    md.version = "1.4.0"
    md.license = "MIT"
    md.description = "A forest level"
    md.author_name = "Map Team"
    md.author_contacts = ["maps@example.org"]
    md.type = "GameMap"
    pkg.extension = {"Gamemode": "ctf", "MaxPlayers": 16, "Spawns": [[0, 0], [5, 9]]}
    return pkg


@pytest.fixture
def sample_bytes(sample_pkg):
    return sample_pkg.to_bytes()


# ---------------------------------------------------------------------------
# TestCreate
# ---------------------------------------------------------------------------

class TestCreate:

    def test_payload_is_compressed(self):
        pkg = Package.create(RAW)
        assert pkg.compressed_payload == DEFAULT_CODEC.compress(RAW)
        assert pkg.compressed_payload != RAW

    def test_fresh_metadata(self):
        pkg = Package.create(RAW)
        assert pkg.metadata == PackageMetadata(format_version=FORMAT_VERSION)
        assert pkg.extension == {}

    def test_from_stream(self):
        pkg = Package.create(io.BytesIO(RAW))
        assert pkg.get_decompressed_payload() == RAW

    def test_custom_codec(self):
        codec = DeflateCodec(level=0)
        pkg = Package.create(RAW, codec=codec)
        assert pkg.codec is codec
        assert pkg.compressed_payload == codec.compress(RAW)

    def test_metadata_never_none(self):
        pkg = Package.create(b"")
        with pytest.raises(TypeError, match="metadata must be PackageMetadata"):
            pkg.metadata = None
        with pytest.raises(TypeError, match="extension must be a dict"):
            pkg.extension = None

    def test_fresh_instances_do_not_share_state(self):
        a = Package.create(b"a")
        b = Package.create(b"b")
        a.extension["k"] = 1
        a.metadata.author_contacts.append("x")
        assert b.extension == {}
        assert b.metadata.author_contacts == []


# ---------------------------------------------------------------------------
# TestRoundTrip
# ---------------------------------------------------------------------------

class TestRoundTrip:

    def test_full_roundtrip(self, sample_pkg, sample_bytes):
        loaded = Package.load(sample_bytes)
        assert loaded.metadata == sample_pkg.metadata
        assert loaded.extension == sample_pkg.extension
        assert loaded.get_decompressed_payload() == RAW
        assert loaded == sample_pkg

    def test_idempotent_decode(self, sample_bytes):
        assert Package.load(sample_bytes) == Package.load(sample_bytes)

    def test_reencode_is_stable(self, sample_bytes):
        assert Package.load(sample_bytes).to_bytes() == sample_bytes

    def test_empty_payload_and_extension(self):
        pkg = Package.load(Package.create(b"").to_bytes())
        assert pkg.get_decompressed_payload() == b""
        assert pkg.extension == {}
        assert pkg.metadata.format_version == FORMAT_VERSION

    def test_nul_bytes_in_fields(self):
        pkg = Package.create(b"\x00\x00\x00")
        pkg.metadata.description = "before\x00\x00\x00after"
        pkg.extension = {"sep": "\x00\x00\x00", "PackageName": "not-metadata"}
        loaded = Package.load(pkg.to_bytes())
        assert loaded.metadata.description == "before\x00\x00\x00after"
        assert loaded.extension == pkg.extension
        assert loaded.get_decompressed_payload() == b"\x00\x00\x00"

    def test_unknown_metadata_fields_survive(self):
        metadata = json.dumps({"PackageName": "n", "Checksum": "abc123"})
        pkg = Package.load(_frame_text(metadata, "{}", DEFAULT_CODEC.compress(b"x")))
        assert pkg.metadata.custom == {"Checksum": "abc123"}
        reloaded = Package.load(pkg.to_bytes())
        assert reloaded.metadata.custom == {"Checksum": "abc123"}

    def test_load_accepts_missing_optional_fields(self):
        pkg = Package.load(_frame_text("{}", "{}", DEFAULT_CODEC.compress(b"x")))
        assert pkg.metadata.name is None
        assert pkg.metadata.author_contacts == []


# ---------------------------------------------------------------------------
# TestFormatVersion
# ---------------------------------------------------------------------------

class TestFormatVersion:
    """FormatVersion always reflects the framing revision, never the caller."""

    def test_header_overrides_metadata_text(self):
        metadata = json.dumps({"FormatVersion": "9.9.9"})
        pkg = Package.load(_frame_text(metadata, "{}", DEFAULT_CODEC.compress(b"")))
        assert pkg.metadata.format_version == FORMAT_VERSION

    def test_to_bytes_stamps_current_version(self, sample_pkg):
        sample_pkg.metadata.format_version = "caller-set"
        data = sample_pkg.to_bytes()
        assert sample_pkg.metadata.format_version == "caller-set"
        metadata_len = struct.unpack(">I", data[5:9])[0]
        text = json.loads(data[17:17 + metadata_len])
        assert text["FormatVersion"] == FORMAT_VERSION

    def test_to_bytes_does_not_mutate(self, sample_pkg):
        before = dataclasses.replace(sample_pkg.metadata)
        sample_pkg.to_bytes()
        assert sample_pkg.metadata == before


# ---------------------------------------------------------------------------
# TestLoadErrors
# ---------------------------------------------------------------------------

class TestLoadErrors:

    @pytest.mark.parametrize("length", [0, 3, 16])
    def test_truncated_header(self, sample_bytes, length):
        with pytest.raises(FramingError, match="truncated header"):
            Package.load(sample_bytes[:length])

    def test_truncated_body(self, sample_bytes):
        for length in (17, 40, len(sample_bytes) - 1):
            with pytest.raises(FramingError, match="truncated body"):
                Package.load(sample_bytes[:length])

    @pytest.mark.parametrize("index", range(4))
    def test_bad_magic(self, sample_bytes, index):
        corrupted = bytearray(sample_bytes)
        corrupted[index] = (corrupted[index] + 1) % 256
        with pytest.raises(FramingError, match="bad magic"):
            Package.load(bytes(corrupted))

    def test_unsupported_version(self, sample_bytes):
        corrupted = bytearray(sample_bytes)
        corrupted[4] = 7
        with pytest.raises(FramingError, match="unsupported version"):
            Package.load(bytes(corrupted))

    def test_corrupt_metadata_block(self):
        data = _frame_text("{not json", "{}", DEFAULT_CODEC.compress(b""))
        with pytest.raises(MetadataError) as exc_info:
            Package.load(data)
        assert exc_info.value.block == "metadata"

    def test_corrupt_extension_block(self):
        data = _frame_text("{}", "{not json", DEFAULT_CODEC.compress(b""))
        with pytest.raises(MetadataError) as exc_info:
            Package.load(data)
        assert exc_info.value.block == "extension"

    def test_empty_extension_block_fails(self):
        data = _frame_text("{}", "", DEFAULT_CODEC.compress(b""))
        with pytest.raises(MetadataError) as exc_info:
            Package.load(data)
        assert exc_info.value.block == "extension"

    def test_metadata_checked_first(self):
        data = _frame_text("[]", "[]", b"")
        with pytest.raises(MetadataError) as exc_info:
            Package.load(data)
        assert exc_info.value.block == "metadata"

    def test_deeply_nested_extension_block(self):
        nested = '{"a":' * 100000 + "1" + "}" * 100000
        data = _frame_text("{}", nested, DEFAULT_CODEC.compress(b""))
        with pytest.raises(MetadataError) as exc_info:
            Package.load(data)
        assert exc_info.value.block == "extension"

    def test_all_errors_are_package_errors(self):
        with pytest.raises(PackageError):
            Package.load(b"")

    def test_decode_failure_not_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="ppkg"):
            with pytest.raises(FramingError):
                Package.load(b"\x00" * 32)
        assert caplog.records == []


# ---------------------------------------------------------------------------
# TestPayload
# ---------------------------------------------------------------------------

class TestPayload:

    @pytest.mark.parametrize("filler", [b"\x00", b"\xff"])
    def test_corrupt_payload_loads_then_fails(self, sample_pkg, sample_bytes, filler):
        size = len(sample_pkg.compressed_payload)
        corrupted = sample_bytes[:-size] + filler * size
        pkg = Package.load(corrupted)
        assert pkg.metadata == sample_pkg.metadata
        assert pkg.extension == sample_pkg.extension
        with pytest.raises(PayloadError):
            pkg.get_decompressed_payload()

    def test_compressed_payload_accessors(self, sample_pkg):
        assert sample_pkg.get_compressed_payload() is sample_pkg.compressed_payload
        assert isinstance(sample_pkg.compressed_payload, bytes)

    def test_decompression_not_cached(self):
        codec = MagicMock()
        codec.decompress.return_value = b"raw"
        pkg = Package(b"compressed", codec=codec)
        assert pkg.get_decompressed_payload() == b"raw"
        assert pkg.get_decompressed_payload() == b"raw"
        assert codec.decompress.call_count == 2

    def test_decompression_cap(self, sample_pkg):
        with pytest.raises(PayloadError, match="exceeds maximum"):
            sample_pkg.get_decompressed_payload(max_size=10)

    def test_oversized_block_on_export(self, sample_pkg, monkeypatch):
        monkeypatch.setattr("ppkg._format.writer.MAX_BLOCK_SIZE", 8)
        with pytest.raises(SizeError):
            sample_pkg.to_bytes()

    def test_unserializable_extension_on_export(self, sample_pkg):
        sample_pkg.extension["bad"] = object()
        with pytest.raises(MetadataError) as exc_info:
            sample_pkg.to_bytes()
        assert exc_info.value.block == "extension"

    def test_lone_surrogate_on_export(self, sample_pkg):
        sample_pkg.metadata.name = "\ud800"
        with pytest.raises(MetadataError, match="UTF-8") as exc_info:
            sample_pkg.to_bytes()
        assert exc_info.value.block == "metadata"

    def test_nan_extension_value_on_export(self, sample_pkg):
        sample_pkg.extension["ratio"] = float("nan")
        with pytest.raises(MetadataError) as exc_info:
            sample_pkg.to_bytes()
        assert exc_info.value.block == "extension"


# ---------------------------------------------------------------------------
# TestLegacyLoad
# ---------------------------------------------------------------------------

class TestLegacyLoad:

    @pytest.fixture
    def legacy_entries(self):
        return {
            "metadata": json.dumps({
                "PackageName": "old-map",
                "AuthorContacts": ["old@example.org"],
                "FormatVersion": "1.0.0",
                "Type": "GameMap",
            }).encode("utf-8"),
            "data": DEFAULT_CODEC.compress(b"legacy payload"),
            "extra": b'{"Gamemode": "dm"}',
        }

    def test_loads(self, legacy_entries):
        pkg = Package.load(_legacy_archive(legacy_entries))
        assert pkg.metadata.name == "old-map"
        assert pkg.metadata.type == "GameMap"
        assert pkg.metadata.format_version == LEGACY_FORMAT_VERSION
        assert pkg.extension == {"Gamemode": "dm"}
        assert pkg.get_decompressed_payload() == b"legacy payload"

    def test_rewritten_in_current_layout(self, legacy_entries):
        pkg = Package.load(_legacy_archive(legacy_entries))
        data = pkg.to_bytes()
        assert data[:4] == b"ppkg"
        reloaded = Package.load(data)
        assert reloaded.metadata.format_version == FORMAT_VERSION
        assert reloaded.metadata.name == "old-map"
        assert reloaded.get_decompressed_payload() == b"legacy payload"

    def test_four_entries(self, legacy_entries):
        legacy_entries["notes"] = b"extra entry"
        with pytest.raises(StructureError):
            Package.load(_legacy_archive(legacy_entries))

    def test_wrong_entry_name(self, legacy_entries):
        legacy_entries["payload"] = legacy_entries.pop("data")
        with pytest.raises(StructureError):
            Package.load(_legacy_archive(legacy_entries))

    def test_corrupt_legacy_extension(self, legacy_entries):
        legacy_entries["extra"] = b"not json"
        with pytest.raises(MetadataError) as exc_info:
            Package.load(_legacy_archive(legacy_entries))
        assert exc_info.value.block == "extension"


# ---------------------------------------------------------------------------
# TestFileAndStreamIO
# ---------------------------------------------------------------------------

class TestFileAndStreamIO:

    def test_write_read_path(self, sample_pkg, tmp_path):
        path = tmp_path / "forest.ppkg"
        nbytes = sample_pkg.write(path)
        assert nbytes == path.stat().st_size
        assert Package.read(path) == sample_pkg
        assert Package.read(str(path)) == sample_pkg

    def test_write_leaves_no_temp_files(self, sample_pkg, tmp_path):
        sample_pkg.write(tmp_path / "forest.ppkg")
        assert [p.name for p in tmp_path.iterdir()] == ["forest.ppkg"]

    def test_read_stream_left_open(self, sample_pkg, sample_bytes):
        stream = io.BytesIO(sample_bytes)
        assert Package.read(stream) == sample_pkg
        assert not stream.closed

    def test_to_stream(self, sample_pkg, sample_bytes):
        stream = sample_pkg.to_stream()
        assert stream.tell() == 0
        assert stream.read() == sample_bytes

    def test_write_to(self, sample_pkg, sample_bytes):
        out = io.BytesIO(b"prefix:")
        out.seek(0, io.SEEK_END)
        assert sample_pkg.write_to(out) == len(sample_bytes)
        assert out.getvalue() == b"prefix:" + sample_bytes

    def test_read_size_limit(self, sample_pkg, tmp_path):
        path = tmp_path / "forest.ppkg"
        sample_pkg.write(path)
        with pytest.raises(SizeError):
            Package.read(path, max_size=16)

    def test_read_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "bad.ppkg"
        path.write_bytes(b"ppkg\x02" + b"\x00" * 11 + b"\x05")
        with pytest.raises(FramingError, match="truncated body"):
            Package.read(path)

    def test_repr(self, sample_pkg):
        text = repr(sample_pkg)
        assert "forest-map" in text
        assert FORMAT_VERSION in text
