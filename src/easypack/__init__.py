"""easypack - pack many small read-only files into one container and read them back."""

__version__ = "1.0.0"

from .api import pack_files, pack_records, unpack_files, unpack_records  # noqa: E402
from .core import (  # noqa: E402
    CURRENT,
    DuplicateNameError,
    EasypackError,
    FormatError,
    InvalidNameError,
    MalformedError,
    NotFoundError,
    Packer,
    Record,
    TruncatedError,
    UnknownVersionError,
    Unpacker,
)

__all__ = [
    "Packer",
    "Unpacker",
    "Record",
    "CURRENT",
    "pack_records",
    "pack_files",
    "unpack_records",
    "unpack_files",
    "EasypackError",
    "DuplicateNameError",
    "InvalidNameError",
    "FormatError",
    "UnknownVersionError",
    "TruncatedError",
    "MalformedError",
    "NotFoundError",
]
