"""Unpacker for reading easypack containers of any registered revision."""

from __future__ import annotations

import io
import os
import threading
from types import MappingProxyType
from typing import Any, BinaryIO, Iterable, Iterator, Optional, Sequence, Tuple, Union

from easypack.core.constants import DEFAULT_MAX_GAP_SIZE, PREAMBLE_SIZE
from easypack.core.errors import FormatError, NotFoundError, TruncatedError
from easypack.core.formats import Revision, decode_preamble, lookup
from easypack.core.models import ContainerIndex, ContainerStats, FormatVersion, TocEntry
from easypack.monitoring.metrics import CONTAINERS_OPENED, ENTRIES_READ, FORMAT_ERRORS
from easypack.utils.logging import get_logger

logger = get_logger(__name__)

EntryKey = Union[str, int]


class TocListing:
    """
    Lazy (name, length) view over a parsed table of contents.

    Each iteration starts over from the first entry.
    """

    def __init__(self, entries: Tuple[TocEntry, ...]) -> None:
        self._entries = entries

    def __iter__(self) -> Iterator[Tuple[str, int]]:
        for entry in self._entries:
            yield entry.name, entry.length

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"TocListing({len(self._entries)} entries)"


class EntryReader(io.RawIOBase):
    """Read-only stream bounded to one entry's byte range."""

    def __init__(self, unpacker: "Unpacker", entry: TocEntry) -> None:
        super().__init__()
        self._unpacker = unpacker
        self.entry = entry
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if whence == os.SEEK_SET:
            pos = offset
        elif whence == os.SEEK_CUR:
            pos = self._pos + offset
        elif whence == os.SEEK_END:
            pos = self.entry.length + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if pos < 0:
            raise ValueError(f"Negative seek position: {pos}")
        self._pos = pos
        return pos

    def readinto(self, buffer: Any) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed entry reader")
        view = memoryview(buffer).cast("B")
        remaining = self.entry.length - self._pos
        if remaining <= 0 or not len(view):
            return 0
        size = min(len(view), remaining)
        data = self._unpacker._read_data(self.entry.offset + self._pos, size)
        if len(data) != size:
            raise TruncatedError(
                f"Entry {self.entry.name!r} is cut short: got {len(data)} of {size} bytes"
            )
        view[:size] = data
        self._pos += size
        return size


class Unpacker:
    """
    Reader for easypack containers.

    The version tag in the preamble picks one revision from the registry,
    which then parses the whole table of contents into an immutable index.
    Entry data is only read on request.

    Concurrent `get` / `open_entry` / `list` calls on one instance are safe;
    each positioned read on the shared source holds a lock.
    """

    def __init__(self, source: BinaryIO, *, close_source: bool = False) -> None:
        """
        Args:
            source: Seekable, readable binary stream positioned at the start
                of the container
            close_source: Close `source` when the Unpacker is closed

        Raises:
            UnknownVersionError: If the version tag is not registered
            TruncatedError: If the source ends before the declared structures
            MalformedError: If the container is structurally invalid
        """
        self._source = source
        self._close_source = close_source
        self._lock = threading.Lock()
        self._base = source.tell()
        self.container_size: int = source.seek(0, os.SEEK_END) - self._base

        try:
            self.version: FormatVersion = decode_preamble(self._read_at(0, PREAMBLE_SIZE))
            self.revision: Revision = lookup(self.version)
            index = self.revision.read_index(self._read_at, self.container_size)
        except FormatError as exc:
            FORMAT_ERRORS.labels(kind=exc.kind.value).inc()
            logger.warning("format_error", kind=exc.kind.value, error=str(exc))
            raise

        self._index: ContainerIndex = index
        self._entries: Tuple[TocEntry, ...] = index.entries
        self._positions = MappingProxyType(
            {entry.name: i for i, entry in enumerate(index.entries)}
        )

        CONTAINERS_OPENED.labels(version=str(self.version)).inc()
        logger.debug(
            "container_opened",
            format_version=str(self.version),
            entry_count=len(self._entries),
            data_bytes=index.data_length,
        )

    @classmethod
    def open(cls, source: BinaryIO) -> "Unpacker":
        """Open a container from a caller-owned byte source."""
        return cls(source)

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> "Unpacker":
        """Open a container file; the Unpacker owns and closes the handle."""
        f = open(path, "rb")
        try:
            return cls(f, close_source=True)
        except BaseException:
            f.close()
            raise

    # Low-level reads

    def _read_at(self, position: int, size: int) -> bytes:
        chunks = []
        with self._lock:
            self._source.seek(self._base + position)
            while size > 0:
                chunk = self._source.read(size)
                if not chunk:
                    break
                chunks.append(chunk)
                size -= len(chunk)
        return b"".join(chunks)

    def _read_data(self, offset: int, size: int) -> bytes:
        return self._read_at(self._index.data_start + offset, size)

    # Index queries

    @property
    def index(self) -> ContainerIndex:
        return self._index

    @property
    def entries(self) -> Tuple[TocEntry, ...]:
        return self._entries

    def entry(self, key: EntryKey) -> TocEntry:
        """
        Look up an entry by name or by table-of-contents index.

        Raises:
            NotFoundError: If the name is absent or the index out of range
        """
        if isinstance(key, bool):
            raise TypeError("entry key must be str or int, not bool")
        if isinstance(key, str):
            position = self._positions.get(key)
            if position is None:
                raise NotFoundError(f"Entry not found: {key}")
            return self._entries[position]
        if isinstance(key, int):
            try:
                return self._entries[key]
            except IndexError:
                raise NotFoundError(
                    f"Entry index out of range: {key} ({len(self._entries)} entries)"
                ) from None
        raise TypeError(f"entry key must be str or int, not {type(key).__name__}")

    def list(self) -> TocListing:
        """(name, length) pairs in table-of-contents order. Reads nothing."""
        return TocListing(self._entries)

    def names(self) -> list[str]:
        return [entry.name for entry in self._entries]

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    # Data access

    def get(self, key: EntryKey) -> bytes:
        """
        Return the bytes of one entry, reading only its own range.

        Raises:
            NotFoundError: If the entry does not exist
            TruncatedError: If the source shrank after it was opened
        """
        entry = self.entry(key)
        if not entry.length:
            return b""
        data = self._read_data(entry.offset, entry.length)
        if len(data) != entry.length:
            raise TruncatedError(
                f"Entry {entry.name!r} is cut short: got {len(data)} of {entry.length} bytes"
            )
        ENTRIES_READ.inc()
        return data

    def open_entry(self, key: EntryKey) -> EntryReader:
        """Return a seekable stream over one entry, for large payloads."""
        entry = self.entry(key)
        ENTRIES_READ.inc()
        return EntryReader(self, entry)

    def get_many(
        self,
        names: Sequence[str],
        max_gap_size: int = DEFAULT_MAX_GAP_SIZE,
    ) -> dict[str, bytes]:
        """
        Batch read multiple entries with gap merging optimization.

        Entries whose ranges are closer than `max_gap_size` are fetched with
        a single read and split afterwards.

        Args:
            names: Sequence of entry names to retrieve
            max_gap_size: Maximum gap between entries to merge (bytes)

        Returns:
            Dict mapping entry name to content (missing names are skipped)

        Raises:
            TypeError: If names is a string instead of sequence
        """
        if isinstance(names, str):
            raise TypeError("names must be a sequence of entry names, not string")

        entries = []
        for name in names:
            position = self._positions.get(name)
            if position is not None:
                entries.append(self._entries[position])

        if not entries:
            return {}

        entries.sort(key=lambda e: e.offset)

        results: dict[str, bytes] = {}
        for batch in _group_entries(entries, max_gap_size):
            start_offset = batch[0].offset
            end_offset = max(e.end for e in batch)
            batch_data = self._read_data(start_offset, end_offset - start_offset)
            if len(batch_data) != end_offset - start_offset:
                raise TruncatedError(
                    f"Data region is cut short at offset {start_offset + len(batch_data)}"
                )

            for entry in batch:
                file_start = entry.offset - start_offset
                results[entry.name] = batch_data[file_start : file_start + entry.length]

        ENTRIES_READ.inc(len(results))
        return results

    def stats(self) -> ContainerStats:
        return ContainerStats(
            version=self.version,
            entry_count=len(self._entries),
            data_size_bytes=sum(e.length for e in self._entries),
            container_size_bytes=self.container_size,
        )

    # Lifecycle

    def close(self) -> None:
        if self._close_source and not self._source.closed:
            self._source.close()

    def __enter__(self) -> "Unpacker":
        return self

    def __exit__(self, exc_type: Optional[type], exc: Optional[BaseException], tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Unpacker(version={self.version}, entries={len(self._entries)})"


def _group_entries(entries: Iterable[TocEntry], max_gap_size: int) -> list[list[TocEntry]]:
    """
    Group entries (sorted by offset) whose gaps are at most `max_gap_size`.
    """
    batches: list[list[TocEntry]] = []
    current: list[TocEntry] = []
    current_end = 0

    for entry in entries:
        if current and entry.offset - current_end <= max_gap_size:
            current.append(entry)
        else:
            if current:
                batches.append(current)
            current = [entry]
            current_end = 0
        current_end = max(current_end, entry.end)

    if current:
        batches.append(current)
    return batches
