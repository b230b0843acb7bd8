"""``version_min_command`` payload codec."""

from __future__ import annotations

from dataclasses import dataclass

from .cursor import BinaryCursor
from .errors import CorruptRecordError
from .format import LOAD_COMMAND_SIZE, VERSION_MIN_COMMAND_SIZE, load_command_name
from .version import VersionTriple, unpack


@dataclass(frozen=True)
class VersionMinCommand:
    offset: int
    cmd: int
    cmdsize: int
    version_packed: int
    sdk_packed: int

    @property
    def name(self) -> str:
        return load_command_name(self.cmd)

    @property
    def version(self) -> VersionTriple:
        return unpack(self.version_packed)

    @property
    def sdk(self) -> VersionTriple:
        return unpack(self.sdk_packed)

    @property
    def payload_offset(self) -> int:
        return self.offset + LOAD_COMMAND_SIZE


def read_version_min(cursor: BinaryCursor, offset: int) -> VersionMinCommand:
    """Decode the command at *offset*, leaving the cursor after its payload."""
    cursor.seek(offset)
    cmd = cursor.read_u32()
    cmdsize = cursor.read_u32()
    if cmdsize < VERSION_MIN_COMMAND_SIZE:
        raise CorruptRecordError(
            f"{load_command_name(cmd)} at offset {offset} has cmdsize "
            f"{cmdsize}, too small for its {VERSION_MIN_COMMAND_SIZE}-byte layout"
        )
    version = cursor.read_u32()
    sdk = cursor.read_u32()
    return VersionMinCommand(offset, cmd, cmdsize, version, sdk)


def write_version_min(
    cursor: BinaryCursor, offset: int, version: int, sdk: int
) -> None:
    """Overwrite the 8-byte payload of the command at *offset* in place.

    ``cmd`` and ``cmdsize`` are left untouched.
    """
    cursor.seek(offset + LOAD_COMMAND_SIZE)
    cursor.write_u32(version)
    cursor.write_u32(sdk)
