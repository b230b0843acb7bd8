"""End-to-end read / patch / verify over files on disk."""

import hashlib

import pytest

from lcversion.builder import (
    build_image,
    make_load_command,
    make_version_min_command,
    sample_commands,
    write_test_vector,
)
from lcversion.errors import (
    CorruptRecordError,
    InvalidVersionError,
    LCVersionError,
    MachOAccessError,
    MachOFileNotFoundError,
    TargetNotPresentError,
    UnsupportedFormatError,
    VerificationError,
)
from lcversion.format import LoadCommand
from lcversion.patcher import Stage, process_file
from lcversion.version import VersionPolicy, VersionTriple


# ── Helpers ─────────────────────────────────────────────────────────────────


def _minimal(**kwargs) -> bytes:
    """Header + one 16-byte LC_VERSION_MIN_MACOSX at offset 32."""
    return build_image([make_version_min_command((10, 6, 0), (10, 6, 0))], **kwargs)


def _write(path, data: bytes) -> str:
    path.write_bytes(data)
    return str(path)


def _sha(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def minimal_file(tmp_path):
    return _write(tmp_path / "minimal.dylib", _minimal())


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "sample.dylib"
    write_test_vector(path)
    return str(path)


# ── Read mode ───────────────────────────────────────────────────────────────


def test_read_minimal(minimal_file):
    result = process_file(minimal_file)
    assert result.stage is Stage.REPORT_ONLY
    assert result.offset == 32
    assert result.before.version == VersionTriple(10, 6, 0)
    assert result.before.sdk == VersionTriple(10, 6, 0)
    assert result.before.name == "LC_VERSION_MIN_MACOSX"
    assert result.after is None
    assert not result.written


def test_read_only_leaves_file_identical(sample_file):
    with open(sample_file, "rb") as f:
        original = f.read()
    result = process_file(sample_file)
    assert result.offset == 104
    with open(sample_file, "rb") as f:
        assert f.read() == original


def test_on_read_called_before_write(minimal_file):
    seen = []
    process_file(minimal_file, "10.9.0", "10.12.0", on_read=seen.append)
    assert len(seen) == 1
    assert str(seen[0].version) == "10.6.0"
    assert str(seen[0].sdk) == "10.6.0"


# ── Write mode ──────────────────────────────────────────────────────────────


def test_write_minimal_scenario(minimal_file):
    with open(minimal_file, "rb") as f:
        original = f.read()

    result = process_file(minimal_file, "10.9.0", "10.12.0")
    assert result.stage is Stage.DONE
    assert result.written
    assert result.after.version == VersionTriple(10, 9, 0)
    assert result.after.sdk == VersionTriple(10, 12, 0)

    with open(minimal_file, "rb") as f:
        patched = f.read()
    assert len(patched) == len(original)
    assert patched[:40] == original[:40]
    assert patched[40:48] == bytes.fromhex("00090a00000c0a00")
    assert patched[48:] == original[48:]

    again = process_file(minimal_file)
    assert str(again.before.version) == "10.9.0"
    assert str(again.before.sdk) == "10.12.0"


def test_patch_touches_only_payload_window(sample_file):
    with open(sample_file, "rb") as f:
        original = f.read()
    result = process_file(sample_file, "10.13.2", "10.15.1")
    start = result.offset + 8
    with open(sample_file, "rb") as f:
        patched = f.read()

    assert _sha(patched[:start] + patched[start + 8:]) == _sha(original[:start] + original[start + 8:])
    diff = [i for i, (a, b) in enumerate(zip(original, patched)) if a != b]
    assert diff and all(start <= i < start + 8 for i in diff)


def test_write_same_values_is_stable(minimal_file):
    with open(minimal_file, "rb") as f:
        original = f.read()
    process_file(minimal_file, "10.6.0", "10.6.0")
    with open(minimal_file, "rb") as f:
        assert f.read() == original


def test_write_accepts_triples(minimal_file):
    result = process_file(minimal_file, VersionTriple(10, 10, 0), VersionTriple(10, 11, 4))
    assert result.after.sdk == (10, 11, 4)


def test_write_with_custom_policy(minimal_file):
    policy = VersionPolicy(major=11, min_minor=0, max_minor=5)
    result = process_file(minimal_file, "11.0.0", "11.3.0", policy=policy)
    assert result.after.version == (11, 0, 0)


def test_write_iphoneos_target(tmp_path):
    cmds = [
        make_load_command(LoadCommand.UUID, b"\x00" * 16),
        make_version_min_command((9, 0, 0), (12, 1, 0), cmd=LoadCommand.VERSION_MIN_IPHONEOS),
    ]
    path = _write(tmp_path / "ios.dylib", build_image(cmds))
    result = process_file(
        path, "10.0.0", "13.0.0", policy=None, target=LoadCommand.VERSION_MIN_IPHONEOS
    )
    assert result.before.version == (9, 0, 0)
    assert result.after.sdk == (13, 0, 0)


# ── Failures (file never modified) ──────────────────────────────────────────


def _assert_unchanged_after(path, exc_type, *args, **kwargs):
    with open(path, "rb") as f:
        original = f.read()
    with pytest.raises(exc_type) as excinfo:
        process_file(path, *args, **kwargs)
    with open(path, "rb") as f:
        assert f.read() == original
    return excinfo.value


def test_target_not_present(tmp_path):
    path = _write(tmp_path / "none.dylib", _minimal(ncmds=0))
    err = _assert_unchanged_after(path, TargetNotPresentError, "10.9.0", "10.12.0")
    assert "LC_VERSION_MIN_MACOSX" in str(err)
    assert err.stage == Stage.HEADER_READ.value


def test_target_not_present_among_others(tmp_path):
    cmds = [make_load_command(LoadCommand.UUID, b"\x00" * 16)]
    path = _write(tmp_path / "uuid.dylib", build_image(cmds))
    _assert_unchanged_after(path, TargetNotPresentError)


def test_bad_magic(tmp_path):
    data = bytearray(_minimal())
    data[0:4] = b"NOPE"
    path = _write(tmp_path / "bad.dylib", bytes(data))
    err = _assert_unchanged_after(path, UnsupportedFormatError, "10.9.0", "10.12.0")
    assert err.stage == Stage.START.value


def test_corrupt_command(tmp_path):
    data = bytearray(build_image(sample_commands()))
    # cmdsize of the first command
    data[36:40] = (4).to_bytes(4, "little")
    path = _write(tmp_path / "corrupt.dylib", bytes(data))
    _assert_unchanged_after(path, CorruptRecordError, "10.9.0", "10.12.0")


def test_target_too_short_for_payload(tmp_path):
    data = bytearray(_minimal())
    data[36:40] = (8).to_bytes(4, "little")
    path = _write(tmp_path / "short.dylib", bytes(data))
    err = _assert_unchanged_after(path, CorruptRecordError)
    assert err.stage == Stage.RECORD_FOUND.value


@pytest.mark.parametrize(
    "version, sdk",
    [("10.9", "10.12.0"), ("10.9.0", "10.12.0.1"), ("a.b.c", "10.9.0"), ("11.0.0", "10.9.0"), ("10.9.0", "10.30.0")],
)
def test_invalid_versions_never_patch(minimal_file, version, sdk):
    seen = []
    err = _assert_unchanged_after(minimal_file, InvalidVersionError, version, sdk, on_read=seen.append)
    assert err.stage == Stage.VALUES_READ.value
    # Current values are still reported.
    assert len(seen) == 1


def test_only_one_value_given(minimal_file):
    _assert_unchanged_after(minimal_file, InvalidVersionError, "10.9.0")
    _assert_unchanged_after(minimal_file, InvalidVersionError, None, "10.9.0")


def test_missing_file(tmp_path):
    with pytest.raises(MachOFileNotFoundError, match="not found"):
        process_file(tmp_path / "missing.dylib")


def test_missing_file_is_file_not_found(tmp_path):
    with pytest.raises(FileNotFoundError):
        process_file(tmp_path / "missing.dylib")


def test_directory_is_not_a_file(tmp_path):
    with pytest.raises(MachOFileNotFoundError):
        process_file(tmp_path)


def test_empty_file(tmp_path):
    path = _write(tmp_path / "empty.dylib", b"")
    with pytest.raises(MachOFileNotFoundError, match="empty"):
        process_file(path)


def test_verification_failure_is_distinct(minimal_file, monkeypatch):
    import lcversion.patcher as patcher

    original = patcher.write_version_min
    monkeypatch.setattr(
        patcher, "write_version_min",
        lambda cursor, offset, version, sdk: original(cursor, offset, version, sdk + 1),
    )
    with pytest.raises(VerificationError, match="do not match") as excinfo:
        process_file(minimal_file, "10.9.0", "10.12.0")
    assert excinfo.value.stage == Stage.PATCHED.value
    assert isinstance(excinfo.value, LCVersionError)


def test_verification_detects_stray_write(tmp_path, monkeypatch):
    import lcversion.patcher as patcher

    # Trailing body so a byte written just past the payload stays in the file.
    path = _write(tmp_path / "body.dylib", _minimal(body=b"\x00" * 16))
    original = patcher.write_version_min

    def sloppy_write(cursor, offset, version, sdk):
        original(cursor, offset, version, sdk)
        cursor.write_u8(0xAA)

    monkeypatch.setattr(patcher, "write_version_min", sloppy_write)
    with pytest.raises(VerificationError, match="changed while patching"):
        process_file(path, "10.9.0", "10.12.0")
    with open(path, "rb") as f:
        data = f.read()
    assert len(data) == 64
    assert data[48] == 0xAA


def test_unopenable_file_never_patched(minimal_file, monkeypatch):
    import lcversion.image as image

    def denied(path, mode="r", *args, **kwargs):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(image, "open", denied, raising=False)
    with pytest.raises(MachOAccessError, match="cannot open") as excinfo:
        process_file(minimal_file, "10.9.0", "10.12.0")
    assert excinfo.value.stage == Stage.START.value
    assert isinstance(excinfo.value.__cause__, PermissionError)
