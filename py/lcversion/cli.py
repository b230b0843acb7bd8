"""lcversion CLI – read or set LC_VERSION_MIN_MACOSX in a Mach-O file.

Usage::

    # Print the current version / sdk
    lcversion libfoo.dylib

    # Set new values
    lcversion libfoo.dylib 10.9.0 10.12.0

    # Check with otool
    otool -l libfoo.dylib | fgrep -A 3 LC_VERSION_MIN_MACOSX
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from . import __version__
from .builder import write_test_vector
from .commands import list_load_commands
from .errors import LCVersionError, VerificationError
from .format import LoadCommand, load_command_name
from .header import read_header
from .image import MachOImage
from .patcher import process_file
from .version import DEFAULT_POLICY, VersionPolicy
from .version_min import VersionMinCommand

TARGET = LoadCommand.VERSION_MIN_MACOSX


# ── Terminal UI (colors when TTY) ───────────────────────────────────────────

def _color_enabled() -> bool:
    if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
        return False
    return os.environ.get("NO_COLOR", "").strip() == ""

_COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "red": "\033[31m",
}

def _c(name: str, text: str) -> str:
    if not _color_enabled() or name not in _COLORS:
        return text
    return f"{_COLORS[name]}{text}{_COLORS['reset']}"


def _fail(message: str) -> int:
    print(f"lcversion: {message}", file=sys.stderr)
    return 1


# ── Commands ────────────────────────────────────────────────────────────────


def _print_listing(path: str) -> None:
    with MachOImage(path) as image:
        cursor = image.cursor()
        header = read_header(cursor)
        print(_c("dim", header.describe()))
        print("Load Commands:")
        for ref in list_load_commands(cursor, header):
            print(
                f"  [{ref.index}] {ref.name:24s} "
                f"pos {ref.offset} (0x{ref.offset:x})  size {ref.cmdsize}"
            )


def _report_current(cmd: VersionMinCommand) -> None:
    print(f"Found {cmd.name} at offset {cmd.offset} (0x{cmd.offset:x})")
    print(f"Current version {cmd.version} sdk {cmd.sdk}")


def _cmd_run(args: argparse.Namespace, policy: VersionPolicy) -> int:
    if args.list:
        _print_listing(args.file)

    version, sdk = (args.values[0], args.values[1]) if args.values else (None, None)
    result = process_file(
        args.file, version, sdk,
        policy=policy, target=TARGET, on_read=_report_current,
    )
    if result.after is not None:
        print(_c("green", f"    New version {result.after.version} sdk {result.after.sdk}"))
    return 0


# ── Entry point ─────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lcversion",
        description=f"Read or set {load_command_name(TARGET)} version and sdk "
                    "in a 64-bit Mach-O file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lcversion libfoo.dylib
  lcversion libfoo.dylib 10.9.0 10.12.0
  lcversion libfoo.dylib --list
""",
    )
    parser.add_argument("file", help="Mach-O application binary or dylib")
    parser.add_argument(
        "values", nargs="*", metavar="version sdk",
        help="New version and sdk as X.Y.Z (both or neither)",
    )
    parser.add_argument(
        "--list", action="store_true",
        help="Print the header and every load command first",
    )
    parser.add_argument(
        "--major", type=int, default=DEFAULT_POLICY.major,
        help=f"Required major version (default: {DEFAULT_POLICY.major})",
    )
    parser.add_argument(
        "--min-minor", type=int, default=DEFAULT_POLICY.min_minor,
        help=f"Lowest accepted minor version (default: {DEFAULT_POLICY.min_minor})",
    )
    parser.add_argument(
        "--max-minor", type=int, default=DEFAULT_POLICY.max_minor,
        help=f"Highest accepted minor version (default: {DEFAULT_POLICY.max_minor})",
    )
    parser.add_argument(
        "--make-test-vector", action="store_true",
        help="Write a sample Mach-O image to FILE instead of reading it",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version", action="version", version=f"lcversion {__version__}"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    if len(args.values) not in (0, 2):
        parser.error("expected either no values or both version and sdk")

    try:
        policy = VersionPolicy(args.major, args.min_minor, args.max_minor)
    except ValueError as e:
        parser.error(str(e))

    if args.make_test_vector:
        if os.path.lexists(args.file):
            return _fail(f"Error: refusing to overwrite existing file {args.file!r}")
        try:
            size = write_test_vector(args.file)
        except OSError as e:
            return _fail(f"Error: cannot write {args.file!r}: {e.strerror or e}")
        print(f"Wrote test vector {args.file} ({size} bytes)")
        return 0

    try:
        return _cmd_run(args, policy)
    except VerificationError as e:
        return _fail(_c("red", f"patch could not be verified: {e}"))
    except LCVersionError as e:
        return _fail(f"Error: {e}")


if __name__ == "__main__":
    sys.exit(main())
