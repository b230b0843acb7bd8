"""Mach-O 64-bit format constants, structs, and name lookups.

References:
    mach-o/loader.h (xnu EXTERNAL_HEADERS)
    mach/machine.h (xnu osfmk)
"""

import struct
from enum import IntEnum

# ── Magic ───────────────────────────────────────────────────────────────────

MH_MAGIC = 0xFEEDFACE
MH_CIGAM = 0xCEFAEDFE
MH_MAGIC_64 = 0xFEEDFACF
MH_CIGAM_64 = 0xCFFAEDFE

# Only thin, little-endian 64-bit images are accepted.
ACCEPTED_MAGIC = MH_MAGIC_64

MAGIC_NAMES: dict[int, str] = {
    MH_MAGIC: "MH_MAGIC",
    MH_CIGAM: "MH_CIGAM",
    MH_MAGIC_64: "MH_MAGIC_64",
    MH_CIGAM_64: "MH_CIGAM_64",
}

# ── Fixed sizes (bytes) ────────────────────────────────────────────────────

HEADER_SIZE = 32
LOAD_COMMAND_SIZE = 8
VERSION_MIN_PAYLOAD_SIZE = 8
VERSION_MIN_COMMAND_SIZE = LOAD_COMMAND_SIZE + VERSION_MIN_PAYLOAD_SIZE

# ── Struct formats (little-endian) ──────────────────────────────────────────
#
# mach_header_64 (32 B):
#   magic(u32) cputype(i32) cpusubtype(i32) filetype(u32)
#   ncmds(u32) sizeofcmds(u32) flags(u32) reserved(u32)
#
# load_command (8 B):
#   cmd(u32) cmdsize(u32)
#
# version_min_command payload (8 B):
#   version(u32) sdk(u32)    X.Y.Z packed as xxxx.yy.zz

BYTE_ORDER = "<"
HEADER_FMT = "<IiiIIIII"
LOAD_COMMAND_FMT = "<II"
VERSION_MIN_FMT = "<II"

assert struct.calcsize(HEADER_FMT) == HEADER_SIZE
assert struct.calcsize(LOAD_COMMAND_FMT) == LOAD_COMMAND_SIZE
assert struct.calcsize(VERSION_MIN_FMT) == VERSION_MIN_PAYLOAD_SIZE

# ── File types (u32) ───────────────────────────────────────────────────────


class FileType(IntEnum):
    MH_OBJECT = 0x1
    MH_EXECUTE = 0x2
    MH_FVMLIB = 0x3
    MH_CORE = 0x4
    MH_PRELOAD = 0x5
    MH_DYLIB = 0x6
    MH_DYLINKER = 0x7
    MH_BUNDLE = 0x8
    MH_DYLIB_STUB = 0x9
    MH_DSYM = 0xA
    MH_KEXT_BUNDLE = 0xB


# ── CPU types (i32) ────────────────────────────────────────────────────────

CPU_ARCH_ABI64 = 0x01000000


class CpuType(IntEnum):
    X86 = 7
    X86_64 = 7 | CPU_ARCH_ABI64
    ARM = 12
    ARM64 = 12 | CPU_ARCH_ABI64
    POWERPC = 18
    POWERPC64 = 18 | CPU_ARCH_ABI64


CPU_SUBTYPE_X86_64_ALL = 3

# ── Load commands (u32) ────────────────────────────────────────────────────

LC_REQ_DYLD = 0x80000000


class LoadCommand(IntEnum):
    SEGMENT = 0x1
    SYMTAB = 0x2
    SYMSEG = 0x3
    THREAD = 0x4
    UNIXTHREAD = 0x5
    LOADFVMLIB = 0x6
    IDFVMLIB = 0x7
    IDENT = 0x8
    FVMFILE = 0x9
    PREPAGE = 0xA
    DYSYMTAB = 0xB
    LOAD_DYLIB = 0xC
    ID_DYLIB = 0xD
    LOAD_DYLINKER = 0xE
    ID_DYLINKER = 0xF
    PREBOUND_DYLIB = 0x10
    ROUTINES = 0x11
    SUB_FRAMEWORK = 0x12
    SUB_UMBRELLA = 0x13
    SUB_CLIENT = 0x14
    SUB_LIBRARY = 0x15
    TWOLEVEL_HINTS = 0x16
    PREBIND_CKSUM = 0x17
    LOAD_WEAK_DYLIB = 0x18 | LC_REQ_DYLD
    SEGMENT_64 = 0x19
    ROUTINES_64 = 0x1A
    UUID = 0x1B
    RPATH = 0x1C | LC_REQ_DYLD
    CODE_SIGNATURE = 0x1D
    SEGMENT_SPLIT_INFO = 0x1E
    REEXPORT_DYLIB = 0x1F | LC_REQ_DYLD
    LAZY_LOAD_DYLIB = 0x20
    ENCRYPTION_INFO = 0x21
    DYLD_INFO = 0x22
    DYLD_INFO_ONLY = 0x22 | LC_REQ_DYLD
    LOAD_UPWARD_DYLIB = 0x23 | LC_REQ_DYLD
    VERSION_MIN_MACOSX = 0x24
    VERSION_MIN_IPHONEOS = 0x25
    FUNCTION_STARTS = 0x26
    DYLD_ENVIRONMENT = 0x27
    MAIN = 0x28 | LC_REQ_DYLD
    DATA_IN_CODE = 0x29
    SOURCE_VERSION = 0x2A
    DYLIB_CODE_SIGN_DRS = 0x2B


# ── Name lookups ───────────────────────────────────────────────────────────


def magic_name(magic: int) -> str:
    return MAGIC_NAMES.get(magic, "UNKNOWN")


def file_type_name(filetype: int) -> str:
    try:
        return FileType(filetype).name
    except ValueError:
        return "UNKNOWN"


def cpu_type_name(cputype: int) -> str:
    try:
        return CpuType(cputype).name.lower()
    except ValueError:
        return f"cpu{cputype}"


def load_command_name(cmd: int) -> str:
    """Return the ``LC_*`` name for *cmd*, or ``UNKNOWN``."""
    try:
        return "LC_" + LoadCommand(cmd).name
    except ValueError:
        return "UNKNOWN"


# ── Safety limits ──────────────────────────────────────────────────────────

MAX_LOAD_COMMANDS = 65_536        # far beyond any linker output
