"""Tests for Packer."""
import io
import struct

import pytest

from easypack.core import (
    CURRENT,
    DuplicateNameError,
    EasypackError,
    InvalidNameError,
    Packer,
    TocEntry,
)
from easypack.core.formats import v2_0


class _Pipe(io.RawIOBase):
    """Readable, non-seekable stream."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._data = data
        self._pos = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        chunk = self._data[self._pos : self._pos + len(buffer)]
        buffer[: len(chunk)] = chunk
        self._pos += len(chunk)
        return len(chunk)


def _write(packer: Packer) -> bytes:
    sink = io.BytesIO()
    packer.write(sink)
    return sink.getvalue()


@pytest.mark.unit
def test_write_exact_layout():
    packer = Packer()
    packer.add("a", bytes([1, 2, 3]))
    packer.add("b", bytes([9, 9]))

    sink = io.BytesIO()
    written = packer.write(sink)
    blob = sink.getvalue()

    expected = (
        b"SMPL\x02\x00" + struct.pack("<IQ", 2, 5)
        + struct.pack("<H", 1) + b"a" + struct.pack("<QQ", 0, 3)
        + struct.pack("<H", 1) + b"b" + struct.pack("<QQ", 3, 2)
        + bytes([1, 2, 3, 9, 9])
    )
    assert blob == expected
    assert written == len(expected)


@pytest.mark.unit
def test_offsets_are_contiguous_in_add_order(sample_items):
    packer = Packer()
    for name, data in sample_items.items():
        packer.add(name, data)

    toc = packer.toc()
    assert [e.name for e in toc] == list(sample_items)
    assert toc[0].offset == 0
    for prev, cur in zip(toc, toc[1:]):
        assert cur.offset == prev.offset + prev.length
    assert packer.names() == list(sample_items)
    assert len(packer) == len(sample_items)
    assert "a.txt" in packer


@pytest.mark.unit
def test_write_is_deterministic(sample_items, pack_bytes):
    first = pack_bytes(sample_items)
    second = pack_bytes(dict(sample_items))
    assert first == second
    assert first == v2_0.build(sample_items.items())


@pytest.mark.unit
def test_empty_packer_writes_header_only():
    blob = _write(Packer())
    assert blob == CURRENT.encode_header(0, 0)


@pytest.mark.unit
def test_duplicate_name_rejected():
    packer = Packer()
    packer.add("file_1", b"\x12\x34")
    with pytest.raises(DuplicateNameError, match="file_1"):
        packer.add("file_1", b"\x56")
    # The failed add leaves the session untouched
    assert packer.names() == ["file_1"]


@pytest.mark.unit
def test_invalid_names_rejected():
    packer = Packer()
    with pytest.raises(InvalidNameError):
        packer.add("", b"x")
    with pytest.raises(InvalidNameError):
        packer.add("n" * (CURRENT.max_name_length + 1), b"x")
    with pytest.raises(TypeError):
        packer.add(42, b"x")  # type: ignore[arg-type]
    assert len(packer) == 0


@pytest.mark.unit
def test_long_names_accepted_by_current_revision():
    name = "this_name_is_longer_than_24_chars_but_it_should_work_just_fine" * 5
    packer = Packer()
    packer.add(name, b"\x87\x65\x43")
    assert packer.toc() == [TocEntry(name=name, offset=0, length=3)]


@pytest.mark.unit
def test_unsupported_data_type():
    with pytest.raises(TypeError, match="bytes-like"):
        Packer().add("x", "text is not bytes")  # type: ignore[arg-type]


@pytest.mark.unit
def test_seekable_stream_copied_from_current_position():
    stream = io.BytesIO(b"skip-this|payload")
    stream.seek(len(b"skip-this|"))

    packer = Packer(copy_chunk_size=3)
    packer.add("s", stream)
    packer.add("b", b"tail")

    assert packer.toc()[0].length == len(b"payload")
    assert _write(packer).endswith(b"payloadtail")


@pytest.mark.unit
def test_non_seekable_stream_is_read_at_add_time():
    packer = Packer()
    packer.add("pipe", _Pipe(b"streamed bytes"))
    assert packer.toc()[0].length == len(b"streamed bytes")
    assert _write(packer).endswith(b"streamed bytes")


@pytest.mark.unit
def test_stream_that_shrinks_fails_write():
    stream = io.BytesIO(b"0123456789")
    packer = Packer()
    packer.add("s", stream)
    stream.truncate(4)

    with pytest.raises(EasypackError, match="ended 6 bytes early"):
        packer.write(io.BytesIO())


@pytest.mark.unit
def test_packer_is_single_use():
    packer = Packer()
    packer.add("a", b"1")
    _write(packer)

    with pytest.raises(RuntimeError):
        packer.write(io.BytesIO())
    with pytest.raises(RuntimeError):
        packer.add("b", b"2")


@pytest.mark.unit
def test_sink_errors_propagate():
    class BrokenSink(io.RawIOBase):
        def writable(self) -> bool:
            return True

        def write(self, b) -> int:
            raise OSError("disk full")

    packer = Packer()
    packer.add("a", b"1")
    with pytest.raises(OSError, match="disk full"):
        packer.write(BrokenSink())


@pytest.mark.unit
def test_invalid_chunk_size():
    with pytest.raises(ValueError):
        Packer(copy_chunk_size=0)


@pytest.mark.unit
def test_into_writes_on_clean_exit():
    sink = io.BytesIO()
    with Packer.into(sink) as packer:
        packer.add("a", b"\x01\x02\x03")
    assert sink.getvalue() == v2_0.build([("a", b"\x01\x02\x03")])


@pytest.mark.unit
def test_into_writes_nothing_when_block_raises():
    sink = io.BytesIO()
    with pytest.raises(DuplicateNameError):
        with Packer.into(sink) as packer:
            packer.add("a", b"1")
            packer.add("a", b"2")
    assert sink.getvalue() == b""


@pytest.mark.unit
def test_sink_that_would_block_raises():
    class WouldBlockSink(io.RawIOBase):
        def writable(self) -> bool:
            return True

        def write(self, b):
            return None

    packer = Packer()
    packer.add("a", b"payload")
    with pytest.raises(BlockingIOError):
        packer.write(WouldBlockSink())


@pytest.mark.unit
def test_text_stream_rejected_at_add(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    packer = Packer()
    with open(path, "r", encoding="utf-8") as text_file:
        with pytest.raises(TypeError, match="binary mode"):
            packer.add("notes", text_file)
    with pytest.raises(TypeError, match="binary mode"):
        packer.add("buffer", io.StringIO("hello"))

    assert len(packer) == 0
    packer.add("notes", b"hello")
    assert _write(packer) == v2_0.build([("notes", b"hello")])


@pytest.mark.unit
def test_add_file_copies_at_write_time(tmp_path):
    first = tmp_path / "first.bin"
    second = tmp_path / "second.bin"
    first.write_bytes(b"abc")
    second.write_bytes(b"")

    packer = Packer(copy_chunk_size=2)
    packer.add_file("first", first)
    packer.add_file("second", str(second))
    packer.add("inline", b"xyz")

    assert packer.toc() == [
        TocEntry("first", 0, 3),
        TocEntry("second", 3, 0),
        TocEntry("inline", 3, 3),
    ]
    assert _write(packer) == v2_0.build(
        [("first", b"abc"), ("second", b""), ("inline", b"xyz")]
    )


@pytest.mark.unit
def test_add_file_errors(tmp_path):
    packer = Packer()
    with pytest.raises(FileNotFoundError):
        packer.add_file("missing", tmp_path / "missing.bin")
    with pytest.raises(IsADirectoryError):
        packer.add_file("dir", tmp_path)

    (tmp_path / "a.bin").write_bytes(b"1")
    packer.add_file("a", tmp_path / "a.bin")
    with pytest.raises(DuplicateNameError):
        packer.add_file("a", tmp_path / "a.bin")
    assert packer.names() == ["a"]


@pytest.mark.unit
def test_add_file_that_shrinks_fails_write(tmp_path):
    path = tmp_path / "shrinks.bin"
    path.write_bytes(b"0123456789")
    packer = Packer()
    packer.add_file("s", path)
    path.write_bytes(b"0123")

    with pytest.raises(EasypackError, match="ended 6 bytes early"):
        packer.write(io.BytesIO())
