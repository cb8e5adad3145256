"""
Legacy reader: ZIP archives from the revision before length-prefixed framing.

The archive must hold exactly three entries:
    metadata   <- metadata JSON
    data       <- raw DEFLATE payload (compressed at entry-content level)
    extra      <- extension JSON

Anything else is a StructureError. There is no writer for this layout.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib

from ppkg import LEGACY_FORMAT_VERSION
from ppkg._format.spec import (
    Blocks,
    LEGACY_ENTRIES,
    LEGACY_EXTENSION_ENTRY,
    LEGACY_METADATA_ENTRY,
    LEGACY_PAYLOAD_ENTRY,
)
from ppkg.errors import StructureError

log = logging.getLogger(__name__)


def is_legacy_archive(data: bytes) -> bool:
    """True if the bytes look like a ZIP archive (end-of-central-directory found)."""
    return zipfile.is_zipfile(io.BytesIO(data))


def read_archive(data: bytes) -> Blocks:
    """Split a legacy archive into blocks. Raises StructureError."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = archive.namelist()
            if len(names) != len(LEGACY_ENTRIES):
                raise StructureError(
                    f"Legacy archive must have {len(LEGACY_ENTRIES)} entries, "
                    f"found {len(names)}"
                )
            if set(names) != LEGACY_ENTRIES:
                raise StructureError(
                    f"Legacy archive entries must be "
                    f"{', '.join(sorted(LEGACY_ENTRIES))}; "
                    f"found {', '.join(sorted(names))}"
                )
            blocks = Blocks(
                format_version=LEGACY_FORMAT_VERSION,
                metadata=archive.read(LEGACY_METADATA_ENTRY),
                extension=archive.read(LEGACY_EXTENSION_ENTRY),
                payload=archive.read(LEGACY_PAYLOAD_ENTRY),
            )
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, NotImplementedError, EOFError) as e:
        raise StructureError(f"Unreadable legacy archive: {e}") from e

    log.debug("Read legacy archive package (%s)", LEGACY_FORMAT_VERSION)
    return blocks
