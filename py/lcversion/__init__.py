"""lcversion – read and set the minimum-OS load command of Mach-O files."""

__version__ = "0.1.0"

from .errors import (
    CorruptRecordError,
    InvalidVersionError,
    LCVersionError,
    MachOAccessError,
    MachOFileNotFoundError,
    OutOfRangeError,
    TargetNotPresentError,
    UnsupportedFormatError,
    VerificationError,
)
from .format import ACCEPTED_MAGIC, LoadCommand
from .patcher import PatchResult, Stage, process_file
from .version import DEFAULT_POLICY, VersionPolicy, VersionTriple, pack, parse, unpack

__all__ = [
    "__version__",
    "ACCEPTED_MAGIC", "LoadCommand",
    "LCVersionError", "MachOAccessError", "MachOFileNotFoundError", "OutOfRangeError",
    "UnsupportedFormatError", "CorruptRecordError", "TargetNotPresentError",
    "InvalidVersionError", "VerificationError",
    "PatchResult", "Stage", "process_file",
    "DEFAULT_POLICY", "VersionPolicy", "VersionTriple", "pack", "parse", "unpack",
]
