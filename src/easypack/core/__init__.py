"""easypack core functionality."""

from .errors import (
    DuplicateNameError,
    EasypackError,
    FormatError,
    FormatErrorKind,
    InvalidNameError,
    MalformedError,
    NotFoundError,
    TruncatedError,
    UnknownVersionError,
)
from .formats import CURRENT, REGISTRY
from .models import ContainerStats, FormatVersion, Record, TocEntry
from .packer import Packer
from .unpacker import EntryReader, TocListing, Unpacker

__all__ = [
    "Packer",
    "Unpacker",
    "EntryReader",
    "TocListing",
    "CURRENT",
    "REGISTRY",
    "FormatVersion",
    "TocEntry",
    "Record",
    "ContainerStats",
    "EasypackError",
    "DuplicateNameError",
    "InvalidNameError",
    "FormatError",
    "FormatErrorKind",
    "UnknownVersionError",
    "TruncatedError",
    "MalformedError",
    "NotFoundError",
]
