"""
ppkg: self-describing package container codec.

Architecture:
    Header:   "ppkg" (4 bytes) + revision (1 byte) + 3 x uint32 block lengths = 17 bytes
    Blocks:   metadata JSON + extension JSON + raw-DEFLATE payload
    Legacy:   read-only ZIP layout with entries metadata / data / extra
"""

__version__ = "0.2.0"

# Container format constants
FORMAT_MAGIC = b"ppkg"
FORMAT_REVISION = 2
FORMAT_VERSION = "2.0.0"
LEGACY_FORMAT_VERSION = "1.1.0"  # ZIP-based revision, read only

# Safety limits
MAX_PACKAGE_SIZE = 512 * 1024 * 1024  # 512 MiB max container read
MAX_PAYLOAD_SIZE = 1024 * 1024 * 1024  # 1 GiB max decompressed payload

# Compression defaults
DEFAULT_COMPRESSION_LEVEL = 6
COMPRESSION_LEVEL_ENV = "PPKG_COMPRESSION_LEVEL"

from ppkg.errors import (  # noqa: E402
    FramingError,
    MetadataError,
    PackageError,
    PayloadError,
    SizeError,
    StructureError,
)
from ppkg.metadata import PackageMetadata  # noqa: E402
from ppkg.package import Package  # noqa: E402
