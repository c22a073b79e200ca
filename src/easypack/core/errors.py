"""Exceptions raised by the easypack core."""

from __future__ import annotations

from enum import Enum


class EasypackError(Exception):
    """Base class for easypack-specific errors."""


# Pack time
class DuplicateNameError(EasypackError, ValueError):
    """The same entry name was added twice to one Packer."""


class InvalidNameError(EasypackError, ValueError):
    """The entry name cannot be stored by the format revision."""


# Unpack time
class FormatErrorKind(str, Enum):
    UNKNOWN_VERSION = "unknown_version"
    TRUNCATED = "truncated"
    MALFORMED = "malformed"


class FormatError(EasypackError, ValueError):
    """Structural problem found while decoding a container."""

    kind: FormatErrorKind = FormatErrorKind.MALFORMED


class UnknownVersionError(FormatError):
    kind = FormatErrorKind.UNKNOWN_VERSION


class TruncatedError(FormatError):
    kind = FormatErrorKind.TRUNCATED


class MalformedError(FormatError):
    kind = FormatErrorKind.MALFORMED


class NotFoundError(EasypackError, KeyError):
    """No entry with the requested name or index."""

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0]) if self.args else ""
