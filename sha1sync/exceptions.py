"""Error types shared by the library and the command-line tools.

Convention:
- ``ManifestFormatError`` for malformed or truncated manifest files. Never
  recovered from: the invocation aborts without touching the manifest.
- ``FilesystemError`` for any failing filesystem call other than the entry
  that vanished between listing and opening, which the scanner tolerates.
  It names the operation and path, and chains the original ``OSError``.

Both are raised from the point of failure and handled once, by the ``main()``
of each command-line tool, which prints the diagnostic and exits non-zero.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class Sha1SyncError(Exception):
    """Base class for fatal errors reported by the command-line tools."""


class ManifestFormatError(Sha1SyncError, ValueError):
    """Raised when a manifest cannot be decoded."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        self.offset = offset
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message)


class FilesystemError(Sha1SyncError):
    """Raised when a filesystem operation fails."""

    def __init__(self, operation: str, path: str | Path, cause: OSError | None = None) -> None:
        self.operation = operation
        self.path = str(path)
        self.cause = cause
        detail = cause.strerror if cause is not None and cause.strerror else str(cause or "")
        message = f"Failed to {operation} {self.path}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
