"""Read or rewrite the minimum-OS load command of a Mach-O file.

One call runs the whole pipeline over one file::

    START -> HEADER_READ -> RECORD_FOUND -> VALUES_READ
          -> REPORT_ONLY                                   (no new values)
          -> PATCHED -> VERIFIED -> DONE                   (new values)

Any failure raises an :class:`~lcversion.errors.LCVersionError` whose
``stage`` names the last stage reached.  New values are validated before
the buffer is touched, so a failure before ``PATCHED`` leaves the file
byte-for-byte unchanged.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

import blake3

from .commands import find_load_command
from .errors import (
    InvalidVersionError,
    LCVersionError,
    TargetNotPresentError,
    VerificationError,
)
from .format import VERSION_MIN_PAYLOAD_SIZE, LoadCommand, load_command_name
from .header import MachHeader64, read_header
from .image import MachOImage
from .version import DEFAULT_POLICY, VersionPolicy, VersionTriple, pack, parse
from .version_min import VersionMinCommand, read_version_min, write_version_min

logger = logging.getLogger("lcversion")

VersionArg = Union[str, VersionTriple]


class Stage(Enum):
    START = "start"
    HEADER_READ = "header-read"
    RECORD_FOUND = "record-found"
    VALUES_READ = "values-read"
    REPORT_ONLY = "report-only"
    PATCHED = "patched"
    VERIFIED = "verified"
    DONE = "done"


@dataclass(frozen=True)
class PatchResult:
    path: str
    header: MachHeader64
    before: VersionMinCommand
    after: VersionMinCommand | None
    stage: Stage

    @property
    def offset(self) -> int:
        return self.before.offset

    @property
    def written(self) -> bool:
        return self.after is not None


def _coerce(value: VersionArg, policy: VersionPolicy | None) -> VersionTriple:
    text = str(value) if isinstance(value, VersionTriple) else value
    return parse(text, policy)


def _digest_outside(buf, start: int, end: int) -> bytes:
    """BLAKE3 of every byte of *buf* except ``[start, end)``."""
    h = blake3.blake3()
    h.update(buf[:start])
    h.update(buf[end:])
    return h.digest()


class _Run:
    """Stage bookkeeping for one :func:`process_file` call."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.stage = Stage.START

    def advance(self, stage: Stage) -> None:
        logger.debug("%s: %s -> %s", self.path, self.stage.value, stage.value)
        self.stage = stage


def process_file(
    path: str | os.PathLike,
    version: VersionArg | None = None,
    sdk: VersionArg | None = None,
    policy: VersionPolicy | None = DEFAULT_POLICY,
    target: int = LoadCommand.VERSION_MIN_MACOSX,
    on_read: Callable[[VersionMinCommand], None] | None = None,
) -> PatchResult:
    """Report, and optionally rewrite, the *target* command of *path*.

    With neither *version* nor *sdk* the file is mapped read-only.  Both
    must be given to write.  *on_read* is called with the current values
    as soon as they are decoded, before any write is attempted.
    """
    run = _Run(os.fspath(path))
    if (version is None) != (sdk is None):
        err = InvalidVersionError("version and sdk must be given together")
        err.stage = run.stage.value
        raise err
    write = version is not None

    try:
        with MachOImage(path, writable=write) as image:
            cursor = image.cursor()

            header = read_header(cursor)
            run.advance(Stage.HEADER_READ)
            logger.debug("header: %s", header.describe())

            ref = find_load_command(cursor, header, target)
            if ref is None:
                raise TargetNotPresentError(
                    f"could not find {load_command_name(target)} "
                    f"in {header.ncmds} load commands of {run.path!r}"
                )
            run.advance(Stage.RECORD_FOUND)

            before = read_version_min(cursor, ref.offset)
            run.advance(Stage.VALUES_READ)
            if on_read is not None:
                on_read(before)

            if not write:
                run.advance(Stage.REPORT_ONLY)
                return PatchResult(run.path, header, before, None, run.stage)

            new_version = _coerce(version, policy)
            new_sdk = _coerce(sdk, policy)
            packed_version = pack(*new_version)
            packed_sdk = pack(*new_sdk)

            start = before.payload_offset
            end = start + VERSION_MIN_PAYLOAD_SIZE
            outside = _digest_outside(image.buffer, start, end)

            write_version_min(cursor, ref.offset, packed_version, packed_sdk)
            image.flush()
            run.advance(Stage.PATCHED)
            logger.info(
                "patched %s at offset %d: version %s sdk %s",
                run.path, start, new_version, new_sdk,
            )

            after = _verify(image, ref.offset, packed_version, packed_sdk, outside)
            run.advance(Stage.VERIFIED)
            run.advance(Stage.DONE)
            return PatchResult(run.path, header, before, after, run.stage)
    except LCVersionError as exc:
        if exc.stage is None:
            exc.stage = run.stage.value
        logger.debug("%s: failed after %s: %s", run.path, run.stage.value, exc)
        raise


def _verify(
    image: MachOImage,
    offset: int,
    packed_version: int,
    packed_sdk: int,
    outside_digest: bytes,
) -> VersionMinCommand:
    try:
        after = read_version_min(image.cursor(), offset)
    except LCVersionError as exc:
        raise VerificationError(
            f"could not re-read load command at offset {offset} "
            f"after writing: {exc}"
        ) from exc

    if (after.version_packed, after.sdk_packed) != (packed_version, packed_sdk):
        raise VerificationError(
            f"re-read values version {after.version} sdk {after.sdk} at offset "
            f"{offset} do not match the values written"
        )
    start = after.payload_offset
    if _digest_outside(image.buffer, start, start + VERSION_MIN_PAYLOAD_SIZE) != outside_digest:
        raise VerificationError(
            f"bytes outside [{start}, {start + VERSION_MIN_PAYLOAD_SIZE}) "
            f"changed while patching {image.path!r}"
        )
    return after
