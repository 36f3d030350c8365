"""Loading, pruning and atomically publishing the manifest file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sha1sync.exceptions import FilesystemError
from sha1sync.filesystem.manifest_codec import Manifest, decode_manifest, encode_manifest
from sha1sync.filesystem.tree_scanner import reconcile

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from sha1sync.config import ScanOptions
    from sha1sync.filesystem.tree_scanner import ScanResult

    Reporter = Callable[[str, str], None]
    Notifier = Callable[[str], None]

logger = logging.getLogger(__name__)


def read_manifest(path: Path, *, missing_ok: bool = False) -> Manifest:
    """Read and decode a manifest file.

    With ``missing_ok`` an absent file yields an empty manifest; any other
    failure raises FilesystemError or ManifestFormatError.
    """
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        if missing_ok:
            logger.info("No existing manifest at %s", path)
            return {}
        raise FilesystemError("open", path, exc) from exc
    except OSError as exc:
        raise FilesystemError("read", path, exc) from exc
    return decode_manifest(data)


@dataclass
class PruneResult:
    """Manifest left after pruning and the paths that were dropped."""

    manifest: Manifest
    removed: list[str] = field(default_factory=list)
    expired: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.expired)


def _no_report(tag: str, path: str) -> None:
    pass


def _no_notify(message: str) -> None:
    pass


class ManifestStore:
    """Owns the manifest file named by the scan options."""

    def __init__(self, options: ScanOptions) -> None:
        self.options = options

    @property
    def path(self) -> Path:
        return self.options.manifest_path

    def load(self) -> Manifest:
        """Load the manifest, or an empty one if none has been written yet."""
        manifest = read_manifest(self.path, missing_ok=True)
        logger.debug("Loaded %d records from %s", len(manifest), self.path)
        return manifest

    def prune(self, scan: ScanResult, report: Reporter = _no_report) -> PruneResult:
        """Drop untouched records (remove-missing) and expired records.

        A record older than the ignore threshold is expired even if the file
        was seen during the scan. Each dropped record is reported once, as
        ``rem`` or ``exp``.
        """
        opts = self.options
        cutoff = opts.reference_seconds - opts.ignore_seconds
        result = PruneResult(manifest={})
        for path, record in scan.manifest.items():
            if opts.remove_missing and path not in scan.touched:
                result.removed.append(path)
                report("rem", path)
            elif opts.ignore_seconds and record.modified.seconds < cutoff:
                result.expired.append(path)
                report("exp", path)
            else:
                result.manifest[path] = record
        return result

    def persist(self, manifest: Manifest) -> None:
        """Publish the manifest atomically.

        The data is written and fsynced to the temporary sibling, which is
        then renamed over the manifest. On failure the temporary file is
        removed and the previous manifest is left as it was.
        """
        tmp = self.options.temp_path
        try:
            with open(tmp, "wb") as f:
                f.write(encode_manifest(manifest))
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            self._discard(tmp)
            raise FilesystemError("write", tmp, exc) from exc

        try:
            os.replace(tmp, self.path)
        except OSError as exc:
            self._discard(tmp)
            raise FilesystemError("rename", tmp, exc) from exc
        logger.debug("Wrote %d records to %s", len(manifest), self.path)

    def update(self, report: Reporter = _no_report, notify: Notifier = _no_notify) -> bool:
        """Load, reconcile, prune and persist if anything changed.

        Returns True if the manifest file was rewritten.
        """
        opts = self.options
        scan = reconcile(self.load(), opts, report=report)
        if not scan.changed:
            notify("No new or modified files.")

        need_to_write = scan.changed
        manifest = scan.manifest
        if opts.remove_missing or opts.ignore_seconds:
            pruned = self.prune(scan, report=report)
            if opts.remove_missing and not pruned.removed:
                notify("No missing files.")
            if opts.ignore_seconds and not pruned.expired:
                notify("No expired files.")
            need_to_write = need_to_write or pruned.changed
            manifest = pruned.manifest

        if need_to_write:
            self.persist(manifest)
        return need_to_write

    @staticmethod
    def _discard(tmp: Path) -> None:
        try:
            tmp.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove temporary manifest %s: %s", tmp, exc)
