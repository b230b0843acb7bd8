"""Load command traversal.

Commands follow the header back to back.  Each starts with an 8-byte
``(cmd, cmdsize)`` descriptor where ``cmdsize`` counts the descriptor
itself, so the next command begins ``cmdsize`` bytes after the current one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from .cursor import BinaryCursor
from .errors import CorruptRecordError, OutOfRangeError
from .format import LOAD_COMMAND_SIZE, MAX_LOAD_COMMANDS, load_command_name
from .header import MachHeader64

logger = logging.getLogger("lcversion")


@dataclass(frozen=True)
class LoadCommandRef:
    """Position and descriptor of one load command (payload not loaded)."""

    index: int
    offset: int
    cmd: int
    cmdsize: int

    @property
    def name(self) -> str:
        return load_command_name(self.cmd)

    @property
    def end(self) -> int:
        return self.offset + self.cmdsize


def iter_load_commands(
    cursor: BinaryCursor, header: MachHeader64
) -> Iterator[LoadCommandRef]:
    """Yield each load command in file order.

    *cursor* must sit at the first command (where :func:`read_header` left
    it).  The cursor is advanced past a command only when the next one is
    requested, so a consumer that stops early leaves it just after the
    matched descriptor.
    """
    if header.ncmds > MAX_LOAD_COMMANDS:
        raise CorruptRecordError(
            f"ncmds {header.ncmds} exceeds safety cap ({MAX_LOAD_COMMANDS})"
        )
    region_end = min(header.commands_end, cursor.size)

    for index in range(header.ncmds):
        offset = cursor.tell()
        if offset + LOAD_COMMAND_SIZE > region_end:
            raise CorruptRecordError(
                f"load command {index} at offset {offset} starts outside "
                f"the {header.sizeofcmds}-byte command region"
            )
        try:
            cmd = cursor.read_u32()
            cmdsize = cursor.read_u32()
        except OutOfRangeError as exc:
            raise CorruptRecordError(
                f"load command {index} at offset {offset}: {exc}"
            ) from exc
        if cmdsize < LOAD_COMMAND_SIZE:
            raise CorruptRecordError(
                f"load command {index} ({load_command_name(cmd)}) at offset "
                f"{offset} has cmdsize {cmdsize} < {LOAD_COMMAND_SIZE}"
            )

        yield LoadCommandRef(index=index, offset=offset, cmd=cmd, cmdsize=cmdsize)

        if offset + cmdsize > region_end:
            raise CorruptRecordError(
                f"load command {index} ({load_command_name(cmd)}) at offset "
                f"{offset} overruns the command region "
                f"({offset}+{cmdsize} > {region_end})"
            )
        cursor.skip(cmdsize - LOAD_COMMAND_SIZE)

    if cursor.tell() != header.commands_end:
        logger.warning(
            "load commands end at %d but header declares %d",
            cursor.tell(), header.commands_end,
        )


def find_load_command(
    cursor: BinaryCursor, header: MachHeader64, cmd: int
) -> LoadCommandRef | None:
    """Return the first command whose type is *cmd*, or ``None``."""
    for ref in iter_load_commands(cursor, header):
        logger.debug(
            "%s at offset %d (0x%x) size %d",
            ref.name, ref.offset, ref.offset, ref.cmdsize,
        )
        if ref.cmd == cmd:
            return ref
    return None


def list_load_commands(
    cursor: BinaryCursor, header: MachHeader64
) -> list[LoadCommandRef]:
    cursor.seek(header.commands_offset)
    return list(iter_load_commands(cursor, header))
