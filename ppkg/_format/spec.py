"""
Container format, revision 2.

Layout:
    offset 0          magic "ppkg"                  (4 bytes)
    offset 4          format revision               (1 byte, uint8)
    offset 5          Lm: metadata block length     (4 bytes, big-endian uint32)
    offset 9          Le: extension block length    (4 bytes, big-endian uint32)
    offset 13         Lp: payload block length      (4 bytes, big-endian uint32)
    offset 17         metadata JSON                 (Lm bytes, UTF-8)
    offset 17+Lm      extension JSON                (Le bytes, UTF-8)
    offset 17+Lm+Le   raw DEFLATE payload           (Lp bytes)

Every block is length-prefixed; nothing is located by scanning for a
separator, so block contents may hold any byte sequence.

Version dispatch:
    The revision byte selects the layout. Unknown revisions are rejected
    rather than guessed at. Input that does not start with the magic is
    tried once as a legacy ZIP archive (see legacy.py) and otherwise
    rejected.
"""

import struct
from typing import NamedTuple

from ppkg import FORMAT_MAGIC, FORMAT_REVISION, FORMAT_VERSION

MAGIC = FORMAT_MAGIC

# Header: magic, revision, three block lengths
HEADER_STRUCT = struct.Struct(">4sBIII")
HEADER_SIZE = HEADER_STRUCT.size  # 17

# Largest block representable in a uint32 length field
MAX_BLOCK_SIZE = 0xFFFFFFFF

# revision byte -> metadata FormatVersion string
SUPPORTED_REVISIONS = {
    FORMAT_REVISION: FORMAT_VERSION,
}

# Legacy archive entry names, in block order
LEGACY_METADATA_ENTRY = "metadata"
LEGACY_PAYLOAD_ENTRY = "data"
LEGACY_EXTENSION_ENTRY = "extra"
LEGACY_ENTRIES = frozenset({
    LEGACY_METADATA_ENTRY,
    LEGACY_PAYLOAD_ENTRY,
    LEGACY_EXTENSION_ENTRY,
})

# File extension
EXTENSION = ".ppkg"


class Blocks(NamedTuple):
    """The three raw blocks of one package, plus the revision that framed them."""

    format_version: str
    metadata: bytes
    extension: bytes
    payload: bytes
