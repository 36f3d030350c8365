"""Directory walk and per-file reconciliation against a loaded manifest."""

from __future__ import annotations

import errno
import logging
import os
import stat
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, NamedTuple

from sha1sync.exceptions import FilesystemError
from sha1sync.filesystem.manifest_codec import FileRecord, Manifest, Timestamp
from sha1sync.services.hash_service import hash_file

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sha1sync.config import ScanOptions

    Reporter = Callable[[str, str], None]

logger = logging.getLogger(__name__)

_NS_PER_SECOND = 1_000_000_000

# stat() errors meaning the link target cannot be reached by name.
_UNRESOLVABLE_LINK_ERRNOS = frozenset({errno.ENOENT, errno.ENOTDIR, errno.ELOOP})


class EntryKind(StrEnum):
    """What the walker does with a directory entry."""

    DIRECTORY = "directory"
    REGULAR_FILE = "regular_file"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Classification:
    kind: EntryKind
    reason: str = ""


DIRECTORY = Classification(EntryKind.DIRECTORY)
REGULAR_FILE = Classification(EntryKind.REGULAR_FILE)


def skipped(reason: str) -> Classification:
    return Classification(EntryKind.SKIPPED, reason)


class FoundFile(NamedTuple):
    """A regular file found by the walk.

    ``path`` is the manifest key (``./``-prefixed, relative to the scan root);
    ``fs_path`` is where the file can be opened.
    """

    path: str
    fs_path: str


class VisitOutcome(StrEnum):
    # TOO_FRESH keeps the "<3s" tag whatever the configured window is.
    UNCHANGED = "unchanged"
    ADDED = "add"
    MODIFIED = "mod"
    TOO_FRESH = "<3s"
    IGNORED = "ignored"
    VANISHED = "vanished"


@dataclass(frozen=True)
class FileVisit:
    outcome: VisitOutcome
    record: FileRecord | None = None


@dataclass
class ScanResult:
    """Reconciled manifest plus what the pass observed."""

    manifest: Manifest
    touched: set[str] = field(default_factory=set)
    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    too_fresh: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.modified)


def classify(entry: os.DirEntry[str]) -> Classification:
    """Decide whether an entry is walked into, reconciled, or skipped.

    Symbolic links are judged by their target.
    """
    if entry.is_symlink():
        try:
            st = entry.stat()
        except OSError as exc:
            if exc.errno in _UNRESOLVABLE_LINK_ERRNOS:
                return skipped("dangling symbolic link")
            raise FilesystemError("resolve symbolic link", entry.path, exc) from exc
        if stat.S_ISDIR(st.st_mode):
            return DIRECTORY
        if stat.S_ISREG(st.st_mode):
            return REGULAR_FILE
        return skipped("symbolic link to a special file")

    if entry.is_dir(follow_symlinks=False):
        return DIRECTORY
    if entry.is_file(follow_symlinks=False):
        return REGULAR_FILE
    return skipped("not a regular file")


def _directory_key(path: str) -> tuple[int, int]:
    try:
        st = os.stat(path)
    except OSError as exc:
        raise FilesystemError("stat directory", path, exc) from exc
    return st.st_dev, st.st_ino


def _iter_entries(directory: str) -> Iterator[os.DirEntry[str]]:
    try:
        it = os.scandir(directory)
    except OSError as exc:
        raise FilesystemError("open directory", directory, exc) from exc
    with it:
        while True:
            try:
                entry = next(it)
            except StopIteration:
                return
            except OSError as exc:
                raise FilesystemError("read directory", directory, exc) from exc
            yield entry


def _walk_directory(
    directory: str,
    prefix: str,
    ancestors: tuple[tuple[int, int], ...],
    excluded: frozenset[str],
) -> Iterator[FoundFile]:
    # os.scandir never yields "." or "..", so only real children recurse.
    for entry in _iter_entries(directory):
        if os.path.abspath(entry.path) in excluded:
            continue
        rel = f"{prefix}/{entry.name}"
        kind = classify(entry)
        if kind.kind is EntryKind.DIRECTORY:
            key = _directory_key(entry.path)
            if key in ancestors:
                logger.warning("Skipping %s -- directory loop", rel)
                continue
            yield from _walk_directory(entry.path, rel, (*ancestors, key), excluded)
        elif kind.kind is EntryKind.REGULAR_FILE:
            yield FoundFile(rel, entry.path)
        else:
            logger.warning("Skipping %s -- %s", rel, kind.reason)


def walk(options: ScanOptions) -> Iterator[FoundFile]:
    """Yield every regular file under the scan root, depth first.

    The manifest and its temporary file are never yielded. Memory use is one
    open directory per level of the current path.
    """
    root = os.fspath(options.root)
    excluded = frozenset(
        os.path.abspath(p) for p in (options.manifest_path, options.temp_path)
    )
    return _walk_directory(root, ".", (_directory_key(root),), excluded)


def visit_file(found: FoundFile, previous: FileRecord | None, options: ScanOptions) -> FileVisit:
    """Reconcile one file against its stored record.

    The stored record is reused when the modification time matches exactly.
    Files younger than the freshness window, or older than the ignore
    threshold, are left alone. Everything else is hashed.
    """
    try:
        f = open(found.fs_path, "rb")
    except FileNotFoundError:
        logger.info("Skipping %s -- removed during scan", found.path)
        return FileVisit(VisitOutcome.VANISHED)
    except OSError as exc:
        raise FilesystemError("open", found.fs_path, exc) from exc

    with f:
        try:
            st = os.fstat(f.fileno())
        except OSError as exc:
            raise FilesystemError("stat", found.fs_path, exc) from exc

        modified = Timestamp.from_ns(st.st_mtime_ns)
        if previous is not None and previous.modified == modified:
            return FileVisit(VisitOutcome.UNCHANGED, previous)

        age_ns = options.reference_time_ns - modified.to_ns()
        if age_ns < options.freshness_seconds * _NS_PER_SECOND:
            return FileVisit(VisitOutcome.TOO_FRESH, previous)

        if (
            options.ignore_seconds
            and options.reference_seconds - modified.seconds > options.ignore_seconds
        ):
            return FileVisit(VisitOutcome.IGNORED, previous)

        try:
            digest = hash_file(f, options.read_chunk_size)
        except OSError as exc:
            raise FilesystemError("read", found.fs_path, exc) from exc

    outcome = VisitOutcome.ADDED if previous is None else VisitOutcome.MODIFIED
    return FileVisit(outcome, FileRecord(found.path, digest, modified))


def _no_report(tag: str, path: str) -> None:
    pass


def reconcile(
    manifest: Manifest,
    options: ScanOptions,
    report: Reporter = _no_report,
) -> ScanResult:
    """Walk the tree and return a new manifest reconciled with it.

    The input manifest is not modified. ``report`` receives ``add``, ``mod``
    and ``<3s`` events as files are visited.
    """
    result = ScanResult(manifest=dict(manifest))
    for found in walk(options):
        visit = visit_file(found, result.manifest.get(found.path), options)
        outcome = visit.outcome
        if outcome is VisitOutcome.UNCHANGED:
            result.touched.add(found.path)
        elif outcome in (VisitOutcome.ADDED, VisitOutcome.MODIFIED) and visit.record is not None:
            result.manifest[found.path] = visit.record
            result.touched.add(found.path)
            if outcome is VisitOutcome.ADDED:
                result.added.append(found.path)
            else:
                result.modified.append(found.path)
            report(str(outcome), found.path)
        elif outcome is VisitOutcome.TOO_FRESH:
            logger.debug(
                "Not hashing %s -- modified within %ds", found.path, options.freshness_seconds
            )
            result.too_fresh.append(found.path)
            report(str(outcome), found.path)
        elif outcome is VisitOutcome.IGNORED:
            logger.debug("Ignoring %s -- older than threshold", found.path)
            result.ignored.append(found.path)
    logger.debug(
        "Scanned %s: %d added, %d modified, %d too fresh",
        options.root,
        len(result.added),
        len(result.modified),
        len(result.too_fresh),
    )
    return result
