"""Helpers shared by the sha1sync tests."""

from __future__ import annotations

import os
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

NS = 1_000_000_000

# Whole seconds so filesystems with coarse timestamps round-trip exactly.
REFERENCE_TIME_NS = (time.time_ns() // NS) * NS
HOUR_AGO_NS = REFERENCE_TIME_NS - 3600 * NS
DAY_NS = 86400 * NS


def write_file(path: Path, content: bytes | str, mtime_ns: int = HOUR_AGO_NS) -> Path:
    """Create a file with the given content and modification time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, str):
        content = content.encode("utf-8")
    path.write_bytes(content)
    os.utime(path, ns=(mtime_ns, mtime_ns))
    return path
