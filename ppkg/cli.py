"""
ppkg CLI: build and inspect package files.

Commands:
  ppkg pack    - Compress a file into a package with metadata
  ppkg unpack  - Write a package's decompressed payload to a file
  ppkg info    - Print a package's metadata and extension map as JSON
  ppkg verify  - Check framing, metadata and payload of a package
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path


def _fail(e: Exception) -> None:
    print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
    sys.exit(1)


def _read_package(path: str):
    from ppkg import Package, PackageError

    try:
        return Package.read(path)
    except (OSError, PackageError) as e:
        _fail(e)


def cmd_pack(args: argparse.Namespace) -> None:
    """Compress a file into a package."""
    from ppkg import Package, PackageError
    from ppkg._format.spec import EXTENSION
    from ppkg.compression import DeflateCodec

    try:
        codec = DeflateCodec(args.level) if args.level is not None else DeflateCodec.from_env()
    except ValueError as e:
        _fail(e)

    source = Path(args.input)
    if not source.is_file():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)
    pkg = Package.create(source.read_bytes(), codec=codec)

    md = pkg.metadata
    md.name = args.name
    md.version = args.pkg_version
    md.license = args.license
    md.description = args.description
    md.author_name = args.author
    md.author_contacts = list(args.contact or [])
    md.type = args.type

    if args.extension:
        try:
            extension = json.loads(Path(args.extension).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            _fail(e)
        if not isinstance(extension, dict):
            print("Error: Extension file must contain a JSON object", file=sys.stderr)
            sys.exit(1)
        pkg.extension = extension

    output = args.output or str(source.with_suffix(EXTENSION))
    try:
        nbytes = pkg.write(output)
    except (OSError, PackageError) as e:
        _fail(e)
    print(f"Packed {args.input} -> {output} ({nbytes} bytes)")


def cmd_unpack(args: argparse.Namespace) -> None:
    """Write the decompressed payload of a package."""
    from ppkg import PackageError

    pkg = _read_package(args.path)
    try:
        data = pkg.get_decompressed_payload()
    except PackageError as e:
        _fail(e)

    output = args.output or str(Path(args.path).with_suffix(".bin"))
    try:
        Path(output).write_bytes(data)
    except OSError as e:
        _fail(e)
    print(f"Unpacked {args.path} -> {output} ({len(data)} bytes)")


def cmd_info(args: argparse.Namespace) -> None:
    """Print metadata and extension map."""
    pkg = _read_package(args.path)
    info = {
        "metadata": pkg.metadata.to_dict(),
        "extension": pkg.extension,
        "compressed_size": len(pkg.compressed_payload),
    }
    print(json.dumps(info, indent=2, ensure_ascii=False))


def cmd_verify(args: argparse.Namespace) -> None:
    """Load a package and inflate its payload."""
    from ppkg import PackageError

    pkg = _read_package(args.path)
    try:
        data = pkg.get_decompressed_payload()
    except PackageError as e:
        print(f"FAIL: {args.path}: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"OK: {args.path} ({pkg.metadata.format_version}, {len(data)} bytes payload)")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="ppkg",
        description="Build and inspect ppkg package containers.",
    )
    from ppkg import __version__
    parser.add_argument("--version", action="version", version=f"ppkg {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # pack
    p_pack = sub.add_parser("pack", help="Compress a file into a package")
    p_pack.add_argument("input", help="File to package")
    p_pack.add_argument("-o", "--output", help="Output path (default: <input>.ppkg)")
    p_pack.add_argument("--name", help="Package name")
    p_pack.add_argument("--pkg-version", help="Package version")
    p_pack.add_argument("--license", help="Package license")
    p_pack.add_argument("--description", help="Package description")
    p_pack.add_argument("--author", help="Author name")
    p_pack.add_argument("--contact", action="append", help="Author contact (repeatable)")
    p_pack.add_argument("--type", help="Package type, e.g. GameMap")
    p_pack.add_argument("--extension", help="JSON file holding the extension map")
    p_pack.add_argument(
        "--level", type=int,
        help="Compression level 0-9 (or set PPKG_COMPRESSION_LEVEL)",
    )

    # unpack
    p_unpack = sub.add_parser("unpack", help="Extract the decompressed payload")
    p_unpack.add_argument("path", help="Path to .ppkg file")
    p_unpack.add_argument("-o", "--output", help="Output path (default: <path>.bin)")

    # info
    p_info = sub.add_parser("info", help="Show metadata and extension map")
    p_info.add_argument("path", help="Path to .ppkg file")

    # verify
    p_verify = sub.add_parser("verify", help="Check a package end to end")
    p_verify.add_argument("path", help="Path to .ppkg file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "pack": cmd_pack,
        "unpack": cmd_unpack,
        "info": cmd_info,
        "verify": cmd_verify,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
