"""
Format revision 2.0 (current write revision).

All numbers are little endian. Layout::

    PREAMBLE   magic "SMPL"(4) + major(1)=2 + minor(1)=0
    HEADER     entry_count u32 + data_length u64
    TOC        entry_count x [name_len u16 + name + offset u64 + length u64]
    DATA       data_length bytes, entries back to back in TOC order

Offsets are relative to the first byte of DATA, which follows the last TOC
entry directly.
"""

from __future__ import annotations

import struct
from typing import Iterable, List, Tuple

from easypack.core.constants import MAGIC
from easypack.core.errors import EasypackError, MalformedError, TruncatedError
from easypack.core.formats.common import (
    ReadAt,
    Revision,
    check_entries,
    decode_name,
    encode_name,
    read_exact,
)
from easypack.core.models import ContainerIndex, FormatVersion, TocEntry

VERSION = FormatVersion(2, 0)

# Header: magic(4) + major(1) + minor(1) + entry_count(4) + data_length(8) = 18 bytes
HEADER_STRUCT = struct.Struct("<4sBBIQ")
HEADER_SIZE = HEADER_STRUCT.size

# TOC entry: name_len(2) + name + offset(8) + length(8)
NAME_LEN_STRUCT = struct.Struct("<H")
ENTRY_FIXED_STRUCT = struct.Struct("<QQ")

MAX_NAME_LENGTH = 0xFFFF
MAX_ENTRY_COUNT = 0xFFFFFFFF
MAX_DATA_LENGTH = 0xFFFFFFFFFFFFFFFF


def encode_header(entry_count: int, data_length: int) -> bytes:
    if not 0 <= entry_count <= MAX_ENTRY_COUNT:
        raise EasypackError(f"Too many entries: {entry_count} (max {MAX_ENTRY_COUNT})")
    if not 0 <= data_length <= MAX_DATA_LENGTH:
        raise EasypackError(f"Data region too large: {data_length} bytes")
    return HEADER_STRUCT.pack(MAGIC, VERSION.major, VERSION.minor, entry_count, data_length)


def decode_header(buf: bytes) -> Tuple[int, int]:
    """Return (entry_count, data_length) from an 18-byte header."""
    if len(buf) < HEADER_SIZE:
        raise TruncatedError(f"Not enough bytes in the header: {len(buf)} (expected {HEADER_SIZE})")
    magic, major, minor, entry_count, data_length = HEADER_STRUCT.unpack_from(buf)
    if magic != MAGIC or (major, minor) != VERSION:
        raise MalformedError(f"Not a {VERSION} header: {buf[:6]!r}")
    return entry_count, data_length


def encode_entry(name: str, offset: int, length: int) -> bytes:
    name_bytes = encode_name(name, MAX_NAME_LENGTH)
    return (
        NAME_LEN_STRUCT.pack(len(name_bytes))
        + name_bytes
        + ENTRY_FIXED_STRUCT.pack(offset, length)
    )


def decode_entry(buf: bytes, pos: int) -> Tuple[TocEntry, int]:
    """Decode the entry starting at `pos`; return it and the next position."""
    if pos + NAME_LEN_STRUCT.size > len(buf):
        raise TruncatedError("Table of contents ends inside a name length")
    (name_len,) = NAME_LEN_STRUCT.unpack_from(buf, pos)
    pos += NAME_LEN_STRUCT.size
    end = pos + name_len + ENTRY_FIXED_STRUCT.size
    if end > len(buf):
        raise TruncatedError("Table of contents ends inside an entry")
    name = decode_name(buf[pos : pos + name_len])
    offset, length = ENTRY_FIXED_STRUCT.unpack_from(buf, pos + name_len)
    return TocEntry(name=name, offset=offset, length=length), end


def read_index(read_at: ReadAt, size: int) -> ContainerIndex:
    header = read_exact(read_at, 0, HEADER_SIZE, "the header")
    entry_count, data_length = decode_header(header)

    entries: List[TocEntry] = []
    pos = HEADER_SIZE
    for i in range(entry_count):
        raw_len = read_exact(read_at, pos, NAME_LEN_STRUCT.size, f"the name length of entry {i}")
        (name_len,) = NAME_LEN_STRUCT.unpack(raw_len)
        body = read_exact(
            read_at,
            pos + NAME_LEN_STRUCT.size,
            name_len + ENTRY_FIXED_STRUCT.size,
            f"entry {i}",
        )
        entry, _ = decode_entry(raw_len + body, 0)
        entries.append(entry)
        pos += NAME_LEN_STRUCT.size + len(body)

    data_start = pos
    if data_start + data_length > size:
        raise TruncatedError(
            f"Data region [{data_start}, {data_start + data_length}) exceeds "
            f"container size ({size})"
        )
    check_entries(entries, data_length)

    return ContainerIndex(
        version=VERSION,
        entries=tuple(entries),
        data_start=data_start,
        data_length=data_length,
    )


def build(items: Iterable[Tuple[str, bytes]]) -> bytes:
    """Serialize a complete 2.0 container held in memory."""
    toc = []
    blobs = []
    offset = 0
    for name, data in items:
        toc.append(encode_entry(name, offset, len(data)))
        blobs.append(bytes(data))
        offset += len(data)
    return encode_header(len(toc), offset) + b"".join(toc) + b"".join(blobs)


REVISION = Revision(
    version=VERSION,
    max_name_length=MAX_NAME_LENGTH,
    encode_header=encode_header,
    encode_entry=encode_entry,
    decode_entry=decode_entry,
    read_index=read_index,
    build=build,
)
