import io
import sys
from pathlib import Path
from typing import Dict

import pytest

# Ensure src/ is on sys.path for local test runs without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from easypack.core import Packer  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line("markers", "integration: tests that touch the filesystem or the CLI")


@pytest.fixture
def sample_items() -> Dict[str, bytes]:
    return {
        "a.txt": b"hello",
        "b.bin": b"\x00\x01\x02",
        "empty": b"",
        "c.log": b"line1\nline2",
    }


@pytest.fixture
def pack_bytes():
    """Pack a name -> bytes mapping (in insertion order) and return the container."""

    def _pack(items: Dict[str, bytes]) -> bytes:
        packer = Packer()
        for name, data in items.items():
            packer.add(name, data)
        sink = io.BytesIO()
        packer.write(sink)
        return sink.getvalue()

    return _pack
