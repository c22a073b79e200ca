"""
Path-based convenience functions around Packer and Unpacker.

Unlike the core, these open files themselves. Containers are written to a
temporary file next to the destination and moved into place once complete,
so a crash never leaves a half-written container under the final name.
"""

from __future__ import annotations

import os
import tempfile
from typing import Iterable, List, Tuple, Union

from easypack.core.constants import DEFAULT_COPY_CHUNK_SIZE, DEFAULT_MAX_GAP_SIZE
from easypack.core.models import Record
from easypack.core.packer import Packer
from easypack.core.unpacker import Unpacker
from easypack.utils.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def _write_atomic(packer: Packer, outfile: PathLike) -> int:
    outfile = os.fspath(outfile)
    dir_path = os.path.dirname(os.path.abspath(outfile))
    os.makedirs(dir_path, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=".easypack-", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, "wb") as f:
            written = packer.write(f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, outfile)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise
    logger.info("container_saved", path=outfile, entry_count=len(packer), bytes=written)
    return written


def pack_records(outfile: PathLike, records: Iterable[Record]) -> int:
    """
    Pack `records` into a new container at `outfile`.

    Returns:
        Size of the container in bytes

    Raises:
        DuplicateNameError, InvalidNameError: On bad record names
        OSError: If the container cannot be written
    """
    packer = Packer()
    for record in records:
        packer.add(record.name, record.data)
    return _write_atomic(packer, outfile)


def pack_files(
    outfile: PathLike,
    pack_from: Iterable[Tuple[str, PathLike]],
    copy_chunk_size: int = DEFAULT_COPY_CHUNK_SIZE,
) -> int:
    """
    Pack files into a new container, storing each under the given name.

    Args:
        outfile: Destination container path
        pack_from: (entry name, input file path) pairs
        copy_chunk_size: Chunk size used when streaming input files

    Input files are opened one at a time while the container is written.

    Returns:
        Size of the container in bytes

    Raises:
        FileNotFoundError: If an input file does not exist
    """
    packer = Packer(copy_chunk_size=copy_chunk_size)
    for name, path in pack_from:
        packer.add_file(name, path)
    return _write_atomic(packer, outfile)


def unpack_records(
    infile: PathLike,
    names: Iterable[str],
    max_gap_size: int = DEFAULT_MAX_GAP_SIZE,
) -> Tuple[List[Record], List[str]]:
    """
    Read the entries called `names` from the container at `infile`.

    Entries lying within `max_gap_size` bytes of each other are fetched
    with one read.

    Returns:
        Tuple of (records found in request order, names that were not found)
    """
    names = list(names)
    found: List[Record] = []
    not_found: List[str] = []
    with Unpacker.from_path(infile) as unpacker:
        batch = unpacker.get_many(names, max_gap_size=max_gap_size)
    for name in names:
        if name in batch:
            found.append(Record(name=name, data=batch[name]))
        else:
            not_found.append(name)
    return found, not_found


def unpack_files(
    infile: PathLike,
    unpack_to: Iterable[Tuple[str, PathLike]],
    copy_chunk_size: int = DEFAULT_COPY_CHUNK_SIZE,
    max_gap_size: int = DEFAULT_MAX_GAP_SIZE,
) -> List[str]:
    """
    Extract entries from the container at `infile` into files.

    Entries no larger than `copy_chunk_size` are fetched together through
    `Unpacker.get_many` (merging gaps up to `max_gap_size`); larger ones are
    streamed chunk by chunk.

    Args:
        infile: Container path
        unpack_to: (entry name, output file path) pairs
        copy_chunk_size: Chunk size used when streaming large entries
        max_gap_size: Largest gap merged into one read for small entries

    Returns:
        Names of entries that were not found; their output files are not created
    """
    pairs = list(unpack_to)
    not_found: List[str] = []
    with Unpacker.from_path(infile) as unpacker:
        small = [
            name
            for name, _ in pairs
            if name in unpacker and unpacker.entry(name).length <= copy_chunk_size
        ]
        batch = unpacker.get_many(small, max_gap_size=max_gap_size)

        for name, outpath in pairs:
            if name not in unpacker:
                not_found.append(name)
                continue
            if name in batch:
                with open(outpath, "wb") as dst:
                    dst.write(batch[name])
                continue
            with unpacker.open_entry(name) as src, open(outpath, "wb") as dst:
                while True:
                    chunk = src.read(copy_chunk_size)
                    if not chunk:
                        break
                    dst.write(chunk)
    return not_found


__all__ = ["pack_records", "pack_files", "unpack_records", "unpack_files"]
