"""
easypack data models and structures.
"""

from dataclasses import dataclass
from typing import NamedTuple, Tuple


class FormatVersion(NamedTuple):
    """
    Version tag stored in every container preamble.

    Compares as an ordered (major, minor) pair.
    """

    major: int
    minor: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(frozen=True)
class TocEntry:
    """
    Represents a single entry in the table of contents.

    Attributes:
        name: Entry name (unique within a container)
        offset: Byte offset of the entry data, relative to the data region
        length: Length of the entry data in bytes
    """

    name: str
    offset: int
    length: int

    @property
    def end(self) -> int:
        """Offset one past the last byte of the entry."""
        return self.offset + self.length

    def __repr__(self) -> str:
        return (
            f"TocEntry(name={self.name!r}, "
            f"offset={self.offset}, "
            f"length={self.length})"
        )


@dataclass(frozen=True)
class ContainerIndex:
    """
    Parsed table of contents of one container.

    Attributes:
        version: Format revision the container was written with
        entries: Entries in table-of-contents order
        data_start: Position of the data region, relative to the container start
        data_length: Size of the data region in bytes
    """

    version: FormatVersion
    entries: Tuple[TocEntry, ...]
    data_start: int
    data_length: int

    @property
    def data_end(self) -> int:
        return self.data_start + self.data_length


@dataclass
class Record:
    """A named blob, as handed to or returned by the convenience API."""

    name: str
    data: bytes

    def __repr__(self) -> str:
        return f"Record(name={self.name!r}, size={len(self.data)})"


@dataclass
class ContainerStats:
    """
    Statistics for an easypack container.
    """

    version: FormatVersion
    entry_count: int
    data_size_bytes: int
    container_size_bytes: int

    @property
    def overhead_bytes(self) -> int:
        """Bytes spent on header, table of contents and trailer."""
        return self.container_size_bytes - self.data_size_bytes

    def __repr__(self) -> str:
        return (
            f"ContainerStats(version={self.version}, "
            f"entries={self.entry_count}, "
            f"data={self._human_size(self.data_size_bytes)}, "
            f"container={self._human_size(self.container_size_bytes)})"
        )

    @staticmethod
    def _human_size(size_bytes: float) -> str:
        """Format bytes as human-readable string."""
        for unit in ["B", "KB", "MB", "GB", "TB"]:
            if size_bytes < 1024:
                return f"{size_bytes:.1f}{unit}"
            size_bytes /= 1024
        return f"{size_bytes:.1f}PB"
