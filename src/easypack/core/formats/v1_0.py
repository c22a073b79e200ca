"""
Format revision 1.0 (read-only).

All numbers are little endian. Layout::

    PREAMBLE   magic "SMPL"(4) + major(1)=1 + minor(1)=0
    DATA       entries back to back
    TOC        entry_count x [offset u32 + length u32 + name_len u8 + name]
    FOOTER     toc_position u32 + entry_count u32

Offsets in the TOC are absolute file positions. The data region spans from
the end of the preamble up to `toc_position`.
"""

from __future__ import annotations

import struct
from typing import Iterable, List, Tuple

from easypack.core.constants import PREAMBLE_SIZE
from easypack.core.errors import MalformedError, TruncatedError
from easypack.core.formats.common import (
    ReadAt,
    Revision,
    check_entries,
    decode_name,
    decode_preamble,
    encode_name,
    encode_preamble,
    read_exact,
    take,
)
from easypack.core.models import ContainerIndex, FormatVersion, TocEntry

VERSION = FormatVersion(1, 0)

HEADER_SIZE = PREAMBLE_SIZE

# TOC entry: offset(4) + length(4) + name_len(1) + name
ENTRY_FIXED_STRUCT = struct.Struct("<II")
NAME_LEN_STRUCT = struct.Struct("<B")

# Footer: toc_position(4) + entry_count(4) = 8 bytes
FOOTER_STRUCT = struct.Struct("<II")
FOOTER_SIZE = FOOTER_STRUCT.size

MAX_NAME_LENGTH = 0xFF


def encode_header(entry_count: int = 0, data_length: int = 0) -> bytes:
    """The 1.0 header is the bare preamble; the entry count lives in the footer."""
    return encode_preamble(VERSION)


def decode_header(buf: bytes) -> FormatVersion:
    version = decode_preamble(buf)
    if version != VERSION:
        raise MalformedError(f"Not a {VERSION} header: found version {version}")
    return version


def encode_entry(name: str, offset: int, length: int) -> bytes:
    name_bytes = encode_name(name, MAX_NAME_LENGTH)
    return (
        ENTRY_FIXED_STRUCT.pack(offset, length)
        + NAME_LEN_STRUCT.pack(len(name_bytes))
        + name_bytes
    )


def decode_entry(buf: bytes, pos: int) -> Tuple[TocEntry, int]:
    """Decode the entry at `pos`. The returned offset is the stored absolute one."""
    fixed = take(buf, pos, ENTRY_FIXED_STRUCT.size + NAME_LEN_STRUCT.size, "an entry")
    offset, length = ENTRY_FIXED_STRUCT.unpack_from(fixed)
    (name_len,) = NAME_LEN_STRUCT.unpack_from(fixed, ENTRY_FIXED_STRUCT.size)
    pos += len(fixed)
    name = decode_name(take(buf, pos, name_len, "an entry name"))
    return TocEntry(name=name, offset=offset, length=length), pos + name_len


def encode_trailer(toc_position: int, entry_count: int) -> bytes:
    return FOOTER_STRUCT.pack(toc_position, entry_count)


def decode_trailer(buf: bytes) -> Tuple[int, int]:
    """Return (toc_position, entry_count)."""
    return FOOTER_STRUCT.unpack_from(buf)


def read_index(read_at: ReadAt, size: int) -> ContainerIndex:
    if size < HEADER_SIZE + FOOTER_SIZE:
        raise TruncatedError(f"Container too small for {VERSION}: {size} bytes")
    decode_header(read_exact(read_at, 0, HEADER_SIZE, "the header"))

    toc_end = size - FOOTER_SIZE
    toc_position, entry_count = decode_trailer(
        read_exact(read_at, toc_end, FOOTER_SIZE, "the footer")
    )
    if toc_position > toc_end:
        raise TruncatedError(
            f"Table of contents starts at {toc_position}, past the footer at {toc_end}"
        )
    if toc_position < HEADER_SIZE:
        raise MalformedError(f"Table of contents position {toc_position} is inside the header")

    toc = read_exact(read_at, toc_position, toc_end - toc_position, "the table of contents")
    entries: List[TocEntry] = []
    pos = 0
    for _ in range(entry_count):
        stored, pos = decode_entry(toc, pos)
        if stored.offset < HEADER_SIZE:
            raise MalformedError(
                f"Entry {stored.name!r} starts at {stored.offset}, inside the header"
            )
        entries.append(
            TocEntry(name=stored.name, offset=stored.offset - HEADER_SIZE, length=stored.length)
        )
    if pos != len(toc):
        raise MalformedError(
            f"{len(toc) - pos} unexpected bytes after {entry_count} table of contents entries"
        )

    data_length = toc_position - HEADER_SIZE
    check_entries(entries, data_length)

    return ContainerIndex(
        version=VERSION,
        entries=tuple(entries),
        data_start=HEADER_SIZE,
        data_length=data_length,
    )


def build(items: Iterable[Tuple[str, bytes]]) -> bytes:
    """Serialize a complete 1.0 container held in memory."""
    blobs = []
    toc = []
    position = HEADER_SIZE
    for name, data in items:
        toc.append(encode_entry(name, position, len(data)))
        blobs.append(bytes(data))
        position += len(data)
    return (
        encode_header()
        + b"".join(blobs)
        + b"".join(toc)
        + encode_trailer(position, len(toc))
    )


REVISION = Revision(
    version=VERSION,
    max_name_length=MAX_NAME_LENGTH,
    encode_header=encode_header,
    encode_entry=encode_entry,
    decode_entry=decode_entry,
    read_index=read_index,
    build=build,
    encode_trailer=encode_trailer,
)
