"""Assemble small thin Mach-O images.

Produces just enough structure (header + load commands + optional body)
for the reader and patcher to work on; the result is not loadable by dyld.
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass

from .format import (
    ACCEPTED_MAGIC,
    CPU_SUBTYPE_X86_64_ALL,
    HEADER_FMT,
    LOAD_COMMAND_FMT,
    LOAD_COMMAND_SIZE,
    VERSION_MIN_FMT,
    CpuType,
    FileType,
    LoadCommand,
)
from .version import pack


@dataclass
class RawCommand:
    """A load command to be emitted verbatim.

    *cmdsize* defaults to the padded payload length plus the descriptor;
    set it explicitly to produce malformed commands.
    """

    cmd: int
    payload: bytes = b""
    cmdsize: int | None = None

    def encode(self) -> bytes:
        size = self.cmdsize
        if size is None:
            size = LOAD_COMMAND_SIZE + len(self.payload)
        return struct.pack(LOAD_COMMAND_FMT, self.cmd, size) + self.payload


def make_load_command(cmd: int, payload: bytes = b"", align: int = 8) -> RawCommand:
    """Return a well-formed command with *payload* zero-padded to *align*."""
    pad = (-(LOAD_COMMAND_SIZE + len(payload))) % align
    return RawCommand(cmd, payload + b"\x00" * pad)


def make_version_min_command(
    version: tuple[int, int, int],
    sdk: tuple[int, int, int],
    cmd: int = LoadCommand.VERSION_MIN_MACOSX,
) -> RawCommand:
    return RawCommand(cmd, struct.pack(VERSION_MIN_FMT, pack(*version), pack(*sdk)))


def build_image(
    commands: list[RawCommand],
    *,
    magic: int = ACCEPTED_MAGIC,
    cputype: int = CpuType.X86_64,
    cpusubtype: int = CPU_SUBTYPE_X86_64_ALL,
    filetype: int = FileType.MH_DYLIB,
    flags: int = 0,
    ncmds: int | None = None,
    sizeofcmds: int | None = None,
    body: bytes = b"",
) -> bytes:
    """Return header, commands and *body* concatenated.

    *ncmds* and *sizeofcmds* are derived from *commands* unless given.
    """
    blob = b"".join(c.encode() for c in commands)
    header = struct.pack(
        HEADER_FMT,
        magic,
        cputype,
        cpusubtype,
        filetype,
        len(commands) if ncmds is None else ncmds,
        len(blob) if sizeofcmds is None else sizeofcmds,
        flags,
        0,
    )
    return header + blob + body


def sample_commands() -> list[RawCommand]:
    """A dylib-like command list with ``LC_VERSION_MIN_MACOSX`` 10.6.0/10.6.0."""
    return [
        make_load_command(LoadCommand.ID_DYLIB, b"\x18\x00\x00\x00" + b"\x00" * 12 + b"@rpath/libsample.dylib\x00"),
        make_load_command(LoadCommand.UUID, bytes(range(16))),
        make_version_min_command((10, 6, 0), (10, 6, 0)),
        make_load_command(LoadCommand.SOURCE_VERSION, b"\x00" * 8),
        make_load_command(LoadCommand.LOAD_DYLIB, b"\x18\x00\x00\x00" + b"\x00" * 12 + b"/usr/lib/libSystem.B.dylib\x00"),
    ]


def write_test_vector(path: str | os.PathLike) -> int:
    """Write a sample image to the new file *path*; return its size in bytes."""
    data = build_image(sample_commands(), body=b"\xcc" * 64)
    with open(path, "xb") as f:
        f.write(data)
    return len(data)
