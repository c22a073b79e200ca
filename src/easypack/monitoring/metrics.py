"""Prometheus metrics for easypack."""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

# Packing
PACKED_ENTRIES = Counter(
    "easypack_entries_packed_total", "Number of entries written into containers"
)
PACKED_BYTES = Counter(
    "easypack_bytes_packed_total", "Total entry bytes written into containers"
)
CONTAINERS_WRITTEN = Counter(
    "easypack_containers_written_total",
    "Containers written",
    ["version"],
)

# Unpacking
CONTAINERS_OPENED = Counter(
    "easypack_containers_opened_total",
    "Containers opened successfully",
    ["version"],
)
FORMAT_ERRORS = Counter(
    "easypack_format_errors_total",
    "Containers rejected while opening",
    ["kind"],
)
ENTRIES_READ = Counter(
    "easypack_entries_read_total", "Entries read from containers"
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
