"""
Format revision registry.

Every revision ever shipped stays in REGISTRY so it can be read forever.
Only CURRENT is ever written. A new revision is added by writing a new module
and extending the table below; there is no runtime registration.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from easypack.core.errors import UnknownVersionError
from easypack.core.formats import v1_0, v1_1, v2_0
from easypack.core.formats.common import Revision, decode_preamble, encode_preamble
from easypack.core.models import FormatVersion

REGISTRY: Mapping[FormatVersion, Revision] = MappingProxyType(
    {
        v1_0.VERSION: v1_0.REVISION,
        v1_1.VERSION: v1_1.REVISION,
        v2_0.VERSION: v2_0.REVISION,
    }
)

CURRENT: Revision = v2_0.REVISION


def lookup(version: FormatVersion) -> Revision:
    """
    Return the revision registered for `version`.

    Raises:
        UnknownVersionError: If no revision carries that tag
    """
    revision = REGISTRY.get(version)
    if revision is None:
        supported = ", ".join(str(v) for v in sorted(REGISTRY))
        raise UnknownVersionError(
            f"Found version {version}, which is not supported (supported: {supported})"
        )
    return revision


def supported_versions() -> list:
    return sorted(REGISTRY)


__all__ = [
    "CURRENT",
    "REGISTRY",
    "Revision",
    "decode_preamble",
    "encode_preamble",
    "lookup",
    "supported_versions",
]
