"""Monitoring helpers for easypack."""

from .metrics import (
    CONTAINERS_OPENED,
    CONTAINERS_WRITTEN,
    CONTENT_TYPE_LATEST,
    ENTRIES_READ,
    FORMAT_ERRORS,
    PACKED_BYTES,
    PACKED_ENTRIES,
    generate_latest,
)

__all__ = [
    "PACKED_ENTRIES",
    "PACKED_BYTES",
    "CONTAINERS_WRITTEN",
    "CONTAINERS_OPENED",
    "FORMAT_ERRORS",
    "ENTRIES_READ",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
]
