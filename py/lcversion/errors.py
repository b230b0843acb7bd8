"""Exceptions raised while reading or patching Mach-O images."""

from __future__ import annotations


class LCVersionError(Exception):
    """Base exception for lcversion format / patch errors.

    ``stage`` is set by :func:`lcversion.patcher.process_file` to the name of
    the last stage that completed before the failure.
    """

    stage: str | None = None


class MachOFileNotFoundError(LCVersionError, FileNotFoundError):
    """Input path is missing, not a regular file, or empty."""


class OutOfRangeError(LCVersionError):
    """Cursor access beyond the end of the buffer."""


class UnsupportedFormatError(LCVersionError):
    """Magic header is not the one accepted variant."""


class CorruptRecordError(LCVersionError):
    """Malformed load command encountered during traversal."""


class TargetNotPresentError(LCVersionError):
    """Requested load command does not occur within ``ncmds``."""


class InvalidVersionError(LCVersionError, ValueError):
    """Version text fails the ``N.N.N`` grammar or the accepted range."""


class VerificationError(LCVersionError):
    """Post-write re-read could not confirm the patch.

    Bytes in the file may already have changed when this is raised.
    """


class MachOAccessError(LCVersionError):
    """File exists but cannot be opened or memory-mapped."""
