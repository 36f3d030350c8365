"""Shared test fixtures for sha1sync."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sha1sync.config import ScanOptions, ScanSettings
from tests.helpers import REFERENCE_TIME_NS

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """An empty directory to scan."""
    root = tmp_path / "tree"
    root.mkdir()
    return root


@pytest.fixture
def make_options(tree: Path) -> Callable[..., ScanOptions]:
    """Build ScanOptions for the ``tree`` fixture with a fixed reference time."""

    def _make(**overrides: object) -> ScanOptions:
        values: dict[str, object] = {
            "root": tree,
            "manifest_path": tree / ".sha1s",
            "reference_time_ns": REFERENCE_TIME_NS,
        }
        values.update(overrides)
        return ScanOptions.model_validate(values)

    return _make


@pytest.fixture
def settings() -> ScanSettings:
    return ScanSettings(_env_file=None)
