"""Scoped memory-mapped access to a Mach-O file."""

from __future__ import annotations

import logging
import mmap
import os

from .cursor import BinaryCursor
from .errors import MachOAccessError, MachOFileNotFoundError

logger = logging.getLogger("lcversion")


class MachOImage:
    """Owns an open file and its ``mmap`` for the duration of a ``with`` block.

    Usage::

        with MachOImage("libfoo.dylib", writable=True) as image:
            cur = image.cursor()
            ...
            image.flush()

    Read-only images are mapped with ``ACCESS_READ`` so no byte can change.
    The map and file are released on every exit path.
    """

    def __init__(self, path: str | os.PathLike, writable: bool = False) -> None:
        self._path = os.fspath(path)
        self._writable = writable
        if not os.path.isfile(self._path):
            raise MachOFileNotFoundError(f"file {self._path!r} not found")
        mode = "r+b" if writable else "rb"
        try:
            self._fd = open(self._path, mode)  # noqa: SIM115
        except OSError as exc:
            raise MachOAccessError(
                f"cannot open {self._path!r} ({mode}): {exc.strerror or exc}"
            ) from exc
        try:
            self._size = os.fstat(self._fd.fileno()).st_size
            if self._size == 0:
                raise MachOFileNotFoundError(f"file {self._path!r} is empty")
            access = mmap.ACCESS_WRITE if writable else mmap.ACCESS_READ
            try:
                self._mm = mmap.mmap(self._fd.fileno(), 0, access=access)
            except (OSError, ValueError) as exc:
                raise MachOAccessError(
                    f"cannot memory-map {self._path!r}: {exc}"
                ) from exc
        except BaseException:
            self._fd.close()
            raise
        logger.debug(
            "mapped %s (%d bytes, %s)",
            self._path, self._size, "rw" if writable else "ro",
        )

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        return self._size

    @property
    def writable(self) -> bool:
        return self._writable

    @property
    def buffer(self) -> mmap.mmap:
        return self._mm

    def cursor(self) -> BinaryCursor:
        return BinaryCursor(self._mm)

    def flush(self) -> None:
        if self._writable:
            self._mm.flush()

    # ── Lifecycle ────────────────────────────────────────────────────────

    def close(self) -> None:
        try:
            self._mm.close()
        finally:
            self._fd.close()

    def __enter__(self) -> MachOImage:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
