"""
Pieces every format revision shares: the preamble, name rules, bounds checks.

Nothing in here knows the layout of a particular revision.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Tuple

from easypack.core.constants import MAGIC, PREAMBLE_SIZE, PREAMBLE_STRUCT
from easypack.core.errors import InvalidNameError, MalformedError, TruncatedError
from easypack.core.models import ContainerIndex, FormatVersion, TocEntry

# read_at(position, size) -> up to `size` bytes starting at `position` of the
# container (fewer only at end of source).
ReadAt = Callable[[int, int], bytes]


@dataclass(frozen=True)
class Revision:
    """
    Stateless function set describing one format revision.

    Attributes:
        version: Tag written in the preamble
        max_name_length: Largest encoded name (bytes) the layout can hold
        encode_header: (entry_count, data_length) -> header bytes
        encode_entry: (name, offset, length) -> one table-of-contents entry
        decode_entry: (buffer, position) -> (TocEntry, next position)
        read_index: (read_at, size) -> ContainerIndex
        build: [(name, data), ...] -> complete container bytes
        encode_trailer: (toc_position, entry_count) -> trailer bytes, for
            revisions that keep the table of contents at the end
    """

    version: FormatVersion
    max_name_length: int
    encode_header: Callable[[int, int], bytes]
    encode_entry: Callable[[str, int, int], bytes]
    decode_entry: Callable[[bytes, int], Tuple[TocEntry, int]]
    read_index: Callable[[ReadAt, int], ContainerIndex]
    build: Callable[[Iterable[Tuple[str, bytes]]], bytes]
    encode_trailer: Optional[Callable[[int, int], bytes]] = None

    def validate_name(self, name: str) -> bytes:
        """Check `name` against this revision and return its encoded form."""
        return encode_name(name, self.max_name_length)


def encode_preamble(version: FormatVersion) -> bytes:
    return PREAMBLE_STRUCT.pack(MAGIC, version.major, version.minor)


def decode_preamble(buf: bytes) -> FormatVersion:
    """
    Extract the version tag from the first bytes of a container.

    Raises:
        TruncatedError: If fewer than 6 bytes are available
        MalformedError: If the magic does not match
    """
    if len(buf) < PREAMBLE_SIZE:
        raise TruncatedError(
            f"Not enough bytes in the preamble: {len(buf)} (expected {PREAMBLE_SIZE})"
        )
    magic, major, minor = PREAMBLE_STRUCT.unpack_from(buf)
    if magic != MAGIC:
        raise MalformedError(f"Invalid magic: {magic!r} (expected {MAGIC!r})")
    return FormatVersion(major, minor)


def encode_name(name: str, max_length: int) -> bytes:
    """
    Encode an entry name as UTF-8, enforcing the shared name rules.

    Raises:
        TypeError: If name is not a str
        InvalidNameError: If name is empty, not encodable or too long
    """
    if not isinstance(name, str):
        raise TypeError(f"name must be str, not {type(name).__name__}")
    if not name:
        raise InvalidNameError("Entry name cannot be empty")
    try:
        name_bytes = name.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidNameError(f"Entry name is not valid text: {name!r}") from exc
    if len(name_bytes) > max_length:
        raise InvalidNameError(
            f"Entry name too long: {len(name_bytes)} bytes (max {max_length})"
        )
    return name_bytes


def decode_name(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedError(f"Entry name is not valid UTF-8: {raw!r}") from exc


def read_exact(read_at: ReadAt, position: int, size: int, what: str) -> bytes:
    """Read exactly `size` bytes or fail with TruncatedError."""
    data = read_at(position, size)
    if len(data) != size:
        raise TruncatedError(
            f"Not enough bytes to read {what}: got {len(data)} of {size} at {position}"
        )
    return data


def take(buf: bytes, position: int, size: int, what: str) -> bytes:
    """Slice `size` bytes out of an in-memory table, or fail with TruncatedError."""
    end = position + size
    if end > len(buf):
        raise TruncatedError(
            f"Table of contents ends inside {what} ({len(buf) - position} of {size} bytes)"
        )
    return buf[position:end]


def check_entries(entries: Sequence[TocEntry], data_length: int) -> None:
    """
    Validate decoded entries against the data region.

    Raises:
        MalformedError: On duplicate names, entries outside the data region
            or overlapping entries
    """
    seen = set()
    for entry in entries:
        if entry.name in seen:
            raise MalformedError(f"Duplicate entry name in table of contents: {entry.name!r}")
        seen.add(entry.name)
        if entry.offset < 0 or entry.length < 0 or entry.end > data_length:
            raise MalformedError(
                f"Entry {entry.name!r} [{entry.offset}, {entry.end}) lies outside "
                f"the data region (length {data_length})"
            )

    # Empty entries occupy no bytes and cannot alias anything
    occupied = sorted((e for e in entries if e.length), key=lambda e: e.offset)
    for prev, cur in zip(occupied, occupied[1:]):
        if cur.offset < prev.end:
            raise MalformedError(
                f"Entry {cur.name!r} overlaps entry {prev.name!r}: "
                f"{prev.name!r} ends at {prev.end}, {cur.name!r} starts at {cur.offset}"
            )
