"""
Internal container format engine.

Revision 2 layout (length-prefixed, see spec.py) is the only one written.
Legacy ZIP packages are read through legacy.py when the magic is absent.
This package is internal; use ppkg.Package.
"""

from ppkg._format.spec import MAGIC, HEADER_SIZE, SUPPORTED_REVISIONS, Blocks
from ppkg._format.writer import PackageWriter
from ppkg._format.reader import PackageReader
