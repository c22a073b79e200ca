"""Tests for the format revision registry and the per-revision codecs."""
import struct

import pytest

from easypack.core.errors import (
    InvalidNameError,
    MalformedError,
    TruncatedError,
    UnknownVersionError,
)
from easypack.core.formats import CURRENT, REGISTRY, lookup, supported_versions
from easypack.core.formats import v1_0, v1_1, v2_0
from easypack.core.formats.common import decode_preamble, encode_preamble
from easypack.core.models import FormatVersion, TocEntry


@pytest.mark.unit
def test_current_is_latest_registered_revision():
    assert CURRENT is v2_0.REVISION
    assert CURRENT.version == max(REGISTRY)
    assert supported_versions() == [
        FormatVersion(1, 0),
        FormatVersion(1, 1),
        FormatVersion(2, 0),
    ]


@pytest.mark.unit
def test_registry_is_read_only():
    with pytest.raises(TypeError):
        REGISTRY[FormatVersion(9, 9)] = CURRENT  # type: ignore[index]


@pytest.mark.unit
def test_lookup_known_and_unknown():
    assert lookup(FormatVersion(1, 0)) is v1_0.REVISION
    assert lookup(FormatVersion(1, 1)) is v1_1.REVISION
    with pytest.raises(UnknownVersionError, match="3.7"):
        lookup(FormatVersion(3, 7))


@pytest.mark.unit
def test_preamble_is_shared_by_all_revisions():
    for version in REGISTRY:
        encoded = encode_preamble(version)
        assert encoded[:4] == b"SMPL"
        assert len(encoded) == 6
        assert decode_preamble(encoded) == version

    assert v1_0.encode_header() == b"SMPL\x01\x00"
    assert v1_1.encode_header() == b"SMPL\x01\x01"
    assert v2_0.encode_header(0, 0)[:6] == b"SMPL\x02\x00"


@pytest.mark.unit
def test_decode_preamble_errors():
    with pytest.raises(TruncatedError):
        decode_preamble(b"SMP")
    with pytest.raises(MalformedError, match="Invalid magic"):
        decode_preamble(b"This is just text.")


@pytest.mark.unit
def test_v2_header_layout():
    header = v2_0.encode_header(2, 5)
    assert header == b"SMPL\x02\x00" + struct.pack("<I", 2) + struct.pack("<Q", 5)
    assert v2_0.decode_header(header) == (2, 5)


@pytest.mark.unit
def test_v2_entry_layout_and_inverse():
    raw = v2_0.encode_entry("name", 7, 11)
    assert raw == struct.pack("<H", 4) + b"name" + struct.pack("<QQ", 7, 11)

    entry, end = v2_0.decode_entry(raw, 0)
    assert entry == TocEntry(name="name", offset=7, length=11)
    assert end == len(raw)


@pytest.mark.unit
def test_v2_decode_entry_truncated():
    raw = v2_0.encode_entry("name", 7, 11)
    with pytest.raises(TruncatedError):
        v2_0.decode_entry(raw[:-1], 0)
    with pytest.raises(TruncatedError):
        v2_0.decode_entry(raw[:1], 0)


@pytest.mark.unit
def test_v1_entry_layouts():
    raw10 = v1_0.encode_entry("file_1", 6, 3)
    assert raw10 == struct.pack("<IIB", 6, 3, 6) + b"file_1"
    assert v1_0.decode_entry(raw10, 0) == (TocEntry("file_1", 6, 3), len(raw10))

    raw11 = v1_1.encode_entry("file_1", 6, 3)
    assert raw11 == struct.pack("<QQB", 6, 3, 6) + b"file_1"
    assert v1_1.decode_entry(raw11, 0) == (TocEntry("file_1", 6, 3), len(raw11))

    assert v1_0.encode_trailer(12, 2) == struct.pack("<II", 12, 2)
    assert v1_1.encode_trailer(12, 2) == struct.pack("<QQ", 12, 2)


@pytest.mark.unit
@pytest.mark.parametrize(
    "revision, limit",
    [(v1_0.REVISION, 255), (v1_1.REVISION, 255), (v2_0.REVISION, 65535)],
)
def test_name_length_limits(revision, limit):
    assert revision.max_name_length == limit
    assert revision.validate_name("x" * limit) == b"x" * limit
    with pytest.raises(InvalidNameError, match="too long"):
        revision.validate_name("x" * (limit + 1))


@pytest.mark.unit
def test_name_limit_counts_utf8_bytes():
    # 128 two-byte characters = 256 bytes
    with pytest.raises(InvalidNameError):
        v1_0.REVISION.validate_name("ż" * 128)
    assert v2_0.REVISION.validate_name("ż" * 128) == ("ż" * 128).encode("utf-8")


@pytest.mark.unit
def test_invalid_names():
    with pytest.raises(InvalidNameError, match="empty"):
        CURRENT.validate_name("")
    with pytest.raises(InvalidNameError, match="not valid text"):
        CURRENT.validate_name("bad\ud800name")
    with pytest.raises(TypeError):
        CURRENT.validate_name(b"bytes")  # type: ignore[arg-type]


@pytest.mark.unit
def test_v2_decode_entry_rejects_non_utf8_name():
    raw = struct.pack("<H", 2) + b"\xff\xfe" + struct.pack("<QQ", 0, 0)
    with pytest.raises(MalformedError, match="UTF-8"):
        v2_0.decode_entry(raw, 0)


@pytest.mark.unit
def test_build_matches_layouts():
    items = [("a", b"\x01\x02\x03"), ("b", b"\x09\x09")]

    v10 = v1_0.build(items)
    assert v10 == (
        b"SMPL\x01\x00"
        + b"\x01\x02\x03\x09\x09"
        + struct.pack("<IIB", 6, 3, 1) + b"a"
        + struct.pack("<IIB", 9, 2, 1) + b"b"
        + struct.pack("<II", 11, 2)
    )

    v20 = v2_0.build(items)
    assert v20 == (
        b"SMPL\x02\x00" + struct.pack("<IQ", 2, 5)
        + struct.pack("<H", 1) + b"a" + struct.pack("<QQ", 0, 3)
        + struct.pack("<H", 1) + b"b" + struct.pack("<QQ", 3, 2)
        + b"\x01\x02\x03\x09\x09"
    )


@pytest.mark.unit
def test_read_index_from_plain_bytes():
    blob = v2_0.build([("a", b"abc"), ("b", b"de")])

    def read_at(position, size):
        return blob[position : position + size]

    index = v2_0.read_index(read_at, len(blob))
    assert index.version == FormatVersion(2, 0)
    assert index.entries == (TocEntry("a", 0, 3), TocEntry("b", 3, 2))
    assert index.data_length == 5
    assert blob[index.data_start : index.data_end] == b"abcde"
