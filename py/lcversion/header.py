"""mach_header_64 decoding."""

from __future__ import annotations

from dataclasses import dataclass

from .cursor import BinaryCursor
from .errors import UnsupportedFormatError
from .format import (
    ACCEPTED_MAGIC,
    HEADER_FMT,
    HEADER_SIZE,
    cpu_type_name,
    file_type_name,
    magic_name,
)


@dataclass(frozen=True)
class MachHeader64:
    magic: int
    cputype: int
    cpusubtype: int
    filetype: int
    ncmds: int
    sizeofcmds: int
    flags: int
    reserved: int

    @property
    def commands_offset(self) -> int:
        """Offset of the first load command."""
        return HEADER_SIZE

    @property
    def commands_end(self) -> int:
        return HEADER_SIZE + self.sizeofcmds

    def describe(self) -> str:
        return (
            f"{magic_name(self.magic)} {cpu_type_name(self.cputype)} "
            f"{file_type_name(self.filetype)} ncmds={self.ncmds} "
            f"sizeofcmds={self.sizeofcmds} flags=0x{self.flags:08x}"
        )


def read_header(cursor: BinaryCursor) -> MachHeader64:
    """Decode the header at offset 0 and leave *cursor* just past it.

    Only :data:`~lcversion.format.ACCEPTED_MAGIC` is accepted; byte-swapped
    and 32-bit images are rejected rather than converted.
    """
    if cursor.size < HEADER_SIZE:
        raise UnsupportedFormatError(
            f"file too small for mach_header_64 ({cursor.size} < {HEADER_SIZE} bytes)"
        )
    cursor.seek(0)
    magic = cursor.read_u32()
    if magic != ACCEPTED_MAGIC:
        raise UnsupportedFormatError(
            f"unsupported magic header 0x{magic:08x} ({magic_name(magic)}); "
            f"only {magic_name(ACCEPTED_MAGIC)} is supported"
        )
    cursor.seek(0)
    return MachHeader64(*cursor.read_struct(HEADER_FMT))
