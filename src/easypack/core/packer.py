"""
Packer: builds a new container in the current format revision.
"""

from __future__ import annotations

import errno
import io
import os
import stat
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional, Union

from easypack.core.constants import DEFAULT_COPY_CHUNK_SIZE
from easypack.core.errors import DuplicateNameError, EasypackError
from easypack.core.formats import CURRENT, Revision
from easypack.core.models import TocEntry
from easypack.monitoring.metrics import CONTAINERS_WRITTEN, PACKED_BYTES, PACKED_ENTRIES
from easypack.utils.logging import get_logger

logger = get_logger(__name__)

DataSource = Union[bytes, bytearray, memoryview, BinaryIO]


@dataclass
class _PendingItem:
    name: str
    length: int
    data: Optional[bytes] = None
    stream: Optional[BinaryIO] = None
    stream_start: int = 0
    path: Optional[str] = None


class Packer:
    """
    Collects named items and writes them as one container.

    Entries appear in the table of contents, and in the data region, in the
    order `add` was called. Writing the same sequence twice gives
    byte-identical output.

    A Packer is single-use: once `write` has run it refuses further calls.
    It is not thread-safe.
    """

    def __init__(self, copy_chunk_size: int = DEFAULT_COPY_CHUNK_SIZE) -> None:
        if copy_chunk_size <= 0:
            raise ValueError("copy_chunk_size must be positive")
        self.revision: Revision = CURRENT
        self.copy_chunk_size = copy_chunk_size
        self._items: List[_PendingItem] = []
        self._names: set[str] = set()
        self._written = False

    @classmethod
    @contextmanager
    def into(
        cls, sink: BinaryIO, copy_chunk_size: int = DEFAULT_COPY_CHUNK_SIZE
    ) -> Iterator["Packer"]:
        """
        Yield a fresh Packer and write it to `sink` when the block exits cleanly.

        Nothing is written if the block raises.
        """
        packer = cls(copy_chunk_size)
        yield packer
        packer.write(sink)

    def add(self, name: str, data: DataSource) -> None:
        """
        Register one item to be packed.

        Args:
            name: Entry name, unique within this Packer
            data: Bytes-like object or readable binary stream. Seekable
                streams are copied at write time starting from their current
                position; other streams are read fully now.

        Raises:
            RuntimeError: If the Packer has already been written
            DuplicateNameError: If `name` was already added
            InvalidNameError: If the current revision cannot store `name`
            TypeError: If name is not a str or data is of an unsupported type
        """
        self._check_new_name(name)

        if isinstance(data, io.TextIOBase):
            raise TypeError(f"stream for {name!r} must be opened in binary mode")
        if isinstance(data, (bytes, bytearray, memoryview)):
            payload = bytes(data)
            item = _PendingItem(name=name, length=len(payload), data=payload)
        elif hasattr(data, "read"):
            item = self._stream_item(name, data)
        else:
            raise TypeError(
                f"data must be bytes-like or a readable binary stream, not {type(data).__name__}"
            )

        self._items.append(item)
        self._names.add(name)

    def add_file(self, name: str, path: Union[str, "os.PathLike[str]"]) -> None:
        """
        Register a file on disk to be packed under `name`.

        Only the size is taken now. The file is opened, copied and closed
        during `write`, so no handle is held per pending item.

        Raises:
            OSError: If the file cannot be stat-ed (e.g. FileNotFoundError)
            IsADirectoryError: If `path` is a directory
        """
        self._check_new_name(name)

        path = os.fspath(path)
        st = os.stat(path)
        if stat.S_ISDIR(st.st_mode):
            raise IsADirectoryError(f"Is a directory: {path!r}")

        self._items.append(_PendingItem(name=name, length=st.st_size, path=path))
        self._names.add(name)

    def _check_new_name(self, name: str) -> None:
        if self._written:
            raise RuntimeError("Packer has already been written")
        self.revision.validate_name(name)
        if name in self._names:
            raise DuplicateNameError(f"Name {name!r} has already been used")

    @staticmethod
    def _stream_item(name: str, stream: BinaryIO) -> _PendingItem:
        seekable = getattr(stream, "seekable", None)
        if seekable is not None and seekable():
            start = stream.tell()
            end = stream.seek(0, os.SEEK_END)
            stream.seek(start)
            return _PendingItem(
                name=name, length=end - start, stream=stream, stream_start=start
            )

        payload = stream.read()
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError(f"stream for {name!r} must be opened in binary mode")
        return _PendingItem(name=name, length=len(payload), data=bytes(payload))

    def names(self) -> List[str]:
        """Names added so far, in insertion order."""
        return [item.name for item in self._items]

    def toc(self) -> List[TocEntry]:
        """
        Table of contents as `write` would lay it out.

        Item N starts where item N-1 ends; the first item starts at offset 0,
        the first byte past the table of contents.
        """
        entries = []
        offset = 0
        for item in self._items:
            entries.append(TocEntry(name=item.name, offset=offset, length=item.length))
            offset += item.length
        return entries

    def write(self, sink: BinaryIO) -> int:
        """
        Write header, table of contents and data blocks to `sink`.

        Args:
            sink: Writable binary stream

        Returns:
            Number of bytes written

        Raises:
            RuntimeError: If called a second time
            EasypackError: If a stream changed size since it was added
            OSError: Propagated unchanged from the sink or the sources
        """
        if self._written:
            raise RuntimeError("Packer has already been written")
        # Sealed up front: a failed write leaves streams half consumed
        self._written = True

        entries = self.toc()
        data_length = sum(e.length for e in entries)

        written = 0
        written += _write_all(sink, self.revision.encode_header(len(entries), data_length))
        toc = b"".join(
            self.revision.encode_entry(e.name, e.offset, e.length) for e in entries
        )
        written += _write_all(sink, toc)

        for item in self._items:
            if item.path is not None:
                with open(item.path, "rb") as stream:
                    written += self._copy_stream(item, stream, sink)
            elif item.stream is not None:
                written += self._copy_stream(item, item.stream, sink)
            elif item.data:
                written += _write_all(sink, item.data)

        PACKED_ENTRIES.inc(len(entries))
        PACKED_BYTES.inc(data_length)
        CONTAINERS_WRITTEN.labels(version=str(self.revision.version)).inc()
        logger.debug(
            "container_written",
            format_version=str(self.revision.version),
            entry_count=len(entries),
            data_bytes=data_length,
            total_bytes=written,
        )
        return written

    def _copy_stream(self, item: _PendingItem, stream: BinaryIO, sink: BinaryIO) -> int:
        stream.seek(item.stream_start)
        remaining = item.length
        while remaining:
            chunk = stream.read(min(self.copy_chunk_size, remaining))
            if not chunk:
                raise EasypackError(
                    f"Source for {item.name!r} ended {remaining} bytes early "
                    f"(expected {item.length} bytes)"
                )
            _write_all(sink, chunk)
            remaining -= len(chunk)
        return item.length

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._names


def _write_all(sink: BinaryIO, data: bytes) -> int:
    """Write all of `data`, looping over short writes from raw streams."""
    view = memoryview(data)
    while view:
        n = sink.write(view)
        if n is None:
            # non-blocking raw stream that would block: nothing was taken
            raise BlockingIOError(
                errno.EAGAIN, "Sink would block", len(data) - len(view)
            )
        view = view[n:]
    return len(data)
