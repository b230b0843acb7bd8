"""Offset-tracked sequential access over a fixed byte buffer."""

from __future__ import annotations

import struct

from .errors import OutOfRangeError
from .format import BYTE_ORDER

_CODES = {
    (1, False): "B", (2, False): "H", (4, False): "I",
    (1, True): "b", (2, True): "h", (4, True): "i",
}


class BinaryCursor:
    """Read and write fixed-width integers at a tracked position.

    *buf* is any object supporting the buffer protocol (``bytes``,
    ``bytearray``, ``mmap.mmap``).  Writes need a writable buffer.  The
    buffer never grows; every access is checked against its length.
    """

    def __init__(self, buf, byte_order: str = BYTE_ORDER) -> None:
        self._buf = buf
        self._size = len(buf)
        self._order = byte_order
        self._pos = 0

    @property
    def size(self) -> int:
        return self._size

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int) -> None:
        """Move to the absolute *offset* (``size`` is allowed, as EOF)."""
        if offset < 0 or offset > self._size:
            raise OutOfRangeError(
                f"seek to {offset} outside buffer of {self._size} bytes"
            )
        self._pos = offset

    def skip(self, count: int) -> None:
        self.seek(self._pos + count)

    # ── Reads ────────────────────────────────────────────────────────────

    def read_u8(self) -> int:
        return self._read(1, False)

    def read_u16(self) -> int:
        return self._read(2, False)

    def read_u32(self) -> int:
        return self._read(4, False)

    def read_i8(self) -> int:
        return self._read(1, True)

    def read_i16(self) -> int:
        return self._read(2, True)

    def read_i32(self) -> int:
        return self._read(4, True)

    def read_struct(self, fmt: str) -> tuple:
        """Unpack a whole ``struct`` format at the current position."""
        n = struct.calcsize(fmt)
        self._check(n, "read")
        values = struct.unpack_from(fmt, self._buf, self._pos)
        self._pos += n
        return values

    # ── Writes ───────────────────────────────────────────────────────────

    def write_u8(self, value: int) -> None:
        self._write(1, False, value)

    def write_u16(self, value: int) -> None:
        self._write(2, False, value)

    def write_u32(self, value: int) -> None:
        self._write(4, False, value)

    def write_i32(self, value: int) -> None:
        self._write(4, True, value)

    # ── Internal ─────────────────────────────────────────────────────────

    def _check(self, width: int, what: str) -> None:
        if self._pos + width > self._size:
            raise OutOfRangeError(
                f"{what} of {width} bytes at offset {self._pos} "
                f"past end of buffer ({self._size} bytes)"
            )

    def _read(self, width: int, signed: bool) -> int:
        self._check(width, "read")
        (value,) = struct.unpack_from(
            self._order + _CODES[(width, signed)], self._buf, self._pos
        )
        self._pos += width
        return value

    def _write(self, width: int, signed: bool, value: int) -> None:
        self._check(width, "write")
        try:
            struct.pack_into(
                self._order + _CODES[(width, signed)], self._buf, self._pos, value
            )
        except struct.error as exc:
            raise OutOfRangeError(f"value {value} does not fit: {exc}") from exc
        self._pos += width
