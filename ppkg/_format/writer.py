"""
Writer: frames the three package blocks into the revision-2 layout.

Only the current revision is ever written. The legacy ZIP layout has a
reader but deliberately no writer.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from ppkg import FORMAT_REVISION
from ppkg._format.spec import HEADER_STRUCT, MAGIC, MAX_BLOCK_SIZE
from ppkg.errors import SizeError

log = logging.getLogger(__name__)


class PackageWriter:

    @staticmethod
    def frame(metadata: bytes, extension: bytes, payload: bytes) -> bytes:
        """Assemble header + blocks. Raises SizeError if a block overflows uint32."""
        for name, block in (
            ("metadata", metadata),
            ("extension", extension),
            ("payload", payload),
        ):
            if len(block) > MAX_BLOCK_SIZE:
                raise SizeError(
                    f"{name} block is {len(block)} bytes; "
                    f"the length field holds at most {MAX_BLOCK_SIZE}"
                )

        header = HEADER_STRUCT.pack(
            MAGIC, FORMAT_REVISION, len(metadata), len(extension), len(payload),
        )
        log.debug(
            "Framed package r%d: metadata=%d extension=%d payload=%d",
            FORMAT_REVISION, len(metadata), len(extension), len(payload),
        )
        return b"".join((header, metadata, extension, payload))

    @staticmethod
    def write(data: bytes, path: str | Path, mode: int = 0o644) -> int:
        """Write framed bytes to a file atomically. Returns bytes written."""
        path = Path(path)
        dir_name = path.resolve().parent
        fd, tmp_path = tempfile.mkstemp(dir=str(dir_name), suffix=".ppkg.tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, str(path))
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        log.debug("Wrote %d bytes to %s", len(data), path)
        return len(data)
