"""Packed ``xxxx.yy.zz`` version numbers.

Mach-O stores versions as a u32 with the major number in the high 16 bits,
the minor in bits 8-15 and the patch level in bits 0-7.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import NamedTuple

from .errors import InvalidVersionError

MAX_MAJOR = 0xFFFF
MAX_MINOR = 0xFF
MAX_PATCH = 0xFF

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")


class VersionTriple(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def pack(major: int, minor: int, patch: int) -> int:
    if not (0 <= major <= MAX_MAJOR and 0 <= minor <= MAX_MINOR and 0 <= patch <= MAX_PATCH):
        raise InvalidVersionError(
            f"version {major}.{minor}.{patch} not representable as xxxx.yy.zz"
        )
    return (major << 16) | (minor << 8) | patch


def unpack(packed: int) -> VersionTriple:
    return VersionTriple(
        (packed >> 16) & 0xFFFF,
        (packed >> 8) & 0xFF,
        packed & 0xFF,
    )


@dataclass(frozen=True)
class VersionPolicy:
    """Accepted range for new version values.

    The default (10.6.0 – 10.20.255) covers the macOS 10.x deployment
    targets that ``LC_VERSION_MIN_MACOSX`` was used for.
    """

    major: int = 10
    min_minor: int = 6
    max_minor: int = 20

    def __post_init__(self) -> None:
        if not 0 <= self.major <= MAX_MAJOR:
            raise ValueError(f"policy major {self.major} out of range 0-{MAX_MAJOR}")
        if not 0 <= self.min_minor <= self.max_minor <= MAX_MINOR:
            raise ValueError(
                f"policy minor range {self.min_minor}-{self.max_minor} "
                f"must satisfy 0 <= min <= max <= {MAX_MINOR}"
            )

    def check(self, v: VersionTriple, text: str) -> None:
        if v.major != self.major:
            raise InvalidVersionError(
                f"version {text!r}: major must be {self.major}, got {v.major}"
            )
        if not self.min_minor <= v.minor <= self.max_minor:
            raise InvalidVersionError(
                f"version {text!r}: minor must be in "
                f"{self.min_minor}-{self.max_minor}, got {v.minor}"
            )
        if v.patch > MAX_PATCH:
            raise InvalidVersionError(
                f"version {text!r}: patch must be in 0-{MAX_PATCH}, got {v.patch}"
            )

    def __str__(self) -> str:
        return f"{self.major}.{self.min_minor}.0 - {self.major}.{self.max_minor}.{MAX_PATCH}"


DEFAULT_POLICY = VersionPolicy()


def parse(text: str, policy: VersionPolicy | None = DEFAULT_POLICY) -> VersionTriple:
    """Parse ``"X.Y.Z"`` and check it against *policy*.

    With ``policy=None`` only the grammar and the packed field widths are
    checked.
    """
    m = _VERSION_RE.fullmatch(text)
    if m is None or not text.isascii():
        raise InvalidVersionError(f"version {text!r} does not match N.N.N")
    v = VersionTriple(*(int(g) for g in m.groups()))
    if policy is not None:
        policy.check(v, text)
    elif v.major > MAX_MAJOR or v.minor > MAX_MINOR or v.patch > MAX_PATCH:
        raise InvalidVersionError(
            f"version {text!r} not representable as xxxx.yy.zz"
        )
    return v
