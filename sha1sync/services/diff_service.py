"""Content comparison between two independently maintained manifests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sha1sync.filesystem.manifest_store import read_manifest

if TYPE_CHECKING:
    from pathlib import Path

    from sha1sync.filesystem.manifest_codec import Manifest


def find_unsynced(reference: Manifest, candidate: Manifest) -> list[str]:
    """Return candidate paths whose content hash appears nowhere in the reference.

    Only hash presence matters: renamed or duplicated files in the reference
    still count as synchronized. Paths come back in candidate order.
    """
    known = {record.content_hash for record in reference.values()}
    return [path for path, record in candidate.items() if record.content_hash not in known]


def compare_manifest_files(reference_path: Path, candidate_path: Path) -> list[str]:
    """Load two manifest files and list the candidate paths missing from the reference."""
    reference = read_manifest(reference_path)
    candidate = read_manifest(candidate_path)
    return find_unsynced(reference, candidate)
