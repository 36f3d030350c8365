"""Scan configuration: environment defaults plus per-invocation options."""

from __future__ import annotations

import os
import time
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SECONDS_PER_DAY = 86400
MAX_IGNORE_DAYS = 0xFFFFFFFF // SECONDS_PER_DAY
TEMP_SUFFIX = ".tmp"

# Files modified less than this many seconds before the scan started are not
# hashed. Some filesystems report an mtime that still changes shortly after a
# write completes; a record taken inside that window would look unchanged on
# the next run even though its content differs.
DEFAULT_FRESHNESS_SECONDS = 3

_FALLBACK_PATH_MAX = 4096


class ScanSettings(BaseSettings):
    """Process-wide defaults, overridable through SHA1SYNC_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="SHA1SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    manifest_name: str = ".sha1s"
    # The progress tag for skipped young files is always "<3s".
    freshness_seconds: int = Field(default=DEFAULT_FRESHNESS_SECONDS, ge=0)
    read_chunk_size: int = Field(default=1024 * 1024, ge=64)
    debug: bool = False


def _path_max(directory: Path) -> int:
    try:
        return os.pathconf(directory, "PC_PATH_MAX")
    except (OSError, ValueError, AttributeError):
        return _FALLBACK_PATH_MAX


class ScanOptions(BaseModel):
    """Immutable options for one invocation, built once at process entry."""

    model_config = ConfigDict(frozen=True)

    root: Path
    manifest_path: Path
    remove_missing: bool = False
    ignore_seconds: int = Field(default=0, ge=0, le=0xFFFFFFFF)
    freshness_seconds: int = Field(default=DEFAULT_FRESHNESS_SECONDS, ge=0)
    read_chunk_size: int = Field(default=1024 * 1024, ge=64)
    reference_time_ns: int = Field(default_factory=time.time_ns, ge=0)

    @model_validator(mode="after")
    def _check_manifest_path_length(self) -> ScanOptions:
        temp = os.fsencode(str(self.temp_path))
        limit = _path_max(self.manifest_path.parent)
        if len(temp) >= limit:
            raise ValueError(f"Manifest path too long: {self.manifest_path}")
        return self

    @classmethod
    def from_settings(
        cls,
        settings: ScanSettings,
        *,
        root: Path,
        manifest_path: Path | None = None,
        remove_missing: bool = False,
        ignore_days: int = 0,
        reference_time_ns: int | None = None,
    ) -> ScanOptions:
        """Combine environment defaults with command-line choices."""
        if ignore_days < 0:
            raise ValueError(f"{ignore_days}: ignore threshold must not be negative")
        if ignore_days > MAX_IGNORE_DAYS:
            raise ValueError(f"{ignore_days} too big")
        values: dict[str, object] = {
            "root": root,
            "manifest_path": manifest_path or root / settings.manifest_name,
            "remove_missing": remove_missing,
            "ignore_seconds": ignore_days * SECONDS_PER_DAY,
            "freshness_seconds": settings.freshness_seconds,
            "read_chunk_size": settings.read_chunk_size,
        }
        if reference_time_ns is not None:
            values["reference_time_ns"] = reference_time_ns
        return cls.model_validate(values)

    @property
    def temp_path(self) -> Path:
        """Sibling file the manifest is written to before the atomic rename."""
        return self.manifest_path.with_name(self.manifest_path.name + TEMP_SUFFIX)

    @property
    def reference_seconds(self) -> int:
        return self.reference_time_ns // 1_000_000_000
