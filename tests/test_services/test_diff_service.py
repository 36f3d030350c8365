"""Tests for content comparison between manifests."""

from __future__ import annotations

import random
import string
from typing import TYPE_CHECKING

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from sha1sync.exceptions import FilesystemError, ManifestFormatError
from sha1sync.filesystem.manifest_codec import FileRecord, Manifest, Timestamp, encode_manifest
from sha1sync.services.diff_service import compare_manifest_files, find_unsynced

if TYPE_CHECKING:
    from pathlib import Path

PROPERTY_SETTINGS = settings(
    max_examples=250,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

_SEGMENT = st.text(alphabet=string.ascii_lowercase + string.digits, min_size=1, max_size=8)
_PATH = st.builds(
    lambda parts: "./" + "/".join(parts),
    st.lists(_SEGMENT, min_size=1, max_size=3),
)
# A small hash alphabet makes collisions between the two sides likely.
_HASH = st.sampled_from([c * 40 for c in "0123456789abcdef"])
_HASH_MANIFEST = st.dictionaries(keys=_PATH, values=_HASH, max_size=12)


def _to_manifest(hashes: dict[str, str]) -> Manifest:
    return {
        path: FileRecord(path=path, content_hash=content_hash, modified=Timestamp(1, 0))
        for path, content_hash in hashes.items()
    }


class TestFindUnsynced:
    def test_reports_content_missing_from_reference(self) -> None:
        reference = _to_manifest({"./a": "a" * 40})
        candidate = _to_manifest({"./a": "a" * 40, "./b": "b" * 40})
        assert find_unsynced(reference, candidate) == ["./b"]

    def test_renamed_file_counts_as_present(self) -> None:
        reference = _to_manifest({"./old/name": "a" * 40})
        candidate = _to_manifest({"./new/name": "a" * 40})
        assert find_unsynced(reference, candidate) == []

    def test_same_path_different_content(self) -> None:
        reference = _to_manifest({"./a": "a" * 40})
        candidate = _to_manifest({"./a": "b" * 40})
        assert find_unsynced(reference, candidate) == ["./a"]

    def test_duplicates_in_reference_all_match(self) -> None:
        reference = _to_manifest({"./x": "c" * 40, "./y": "c" * 40})
        candidate = _to_manifest({"./z": "c" * 40})
        assert find_unsynced(reference, candidate) == []

    def test_empty_reference_reports_everything(self) -> None:
        candidate = _to_manifest({"./a": "a" * 40, "./b": "b" * 40})
        assert find_unsynced({}, candidate) == ["./a", "./b"]

    def test_paths_come_back_in_candidate_order(self) -> None:
        candidate = _to_manifest({"./z": "1" * 40, "./a": "2" * 40, "./m": "3" * 40})
        assert find_unsynced({}, candidate) == ["./z", "./a", "./m"]


class TestFindUnsyncedProperties:
    @PROPERTY_SETTINGS
    @given(reference=_HASH_MANIFEST, candidate=_HASH_MANIFEST)
    def test_matches_definition(self, reference: dict[str, str], candidate: dict[str, str]) -> None:
        expected = {path for path, h in candidate.items() if h not in set(reference.values())}
        result = find_unsynced(_to_manifest(reference), _to_manifest(candidate))
        assert set(result) == expected
        assert len(result) == len(expected)

    @PROPERTY_SETTINGS
    @given(hashes=_HASH_MANIFEST, extra=_HASH_MANIFEST)
    def test_subset_of_reference_hashes_is_empty(
        self, hashes: dict[str, str], extra: dict[str, str]
    ) -> None:
        reference = _to_manifest({**extra, **hashes})
        candidate = _to_manifest({f"{path}/copy": h for path, h in hashes.items()})
        assert find_unsynced(reference, candidate) == []

    @PROPERTY_SETTINGS
    @given(reference=_HASH_MANIFEST, candidate=_HASH_MANIFEST, seed=st.integers())
    def test_record_order_is_irrelevant(
        self, reference: dict[str, str], candidate: dict[str, str], seed: int
    ) -> None:
        rng = random.Random(seed)
        ref_items = list(reference.items())
        cand_items = list(candidate.items())
        rng.shuffle(ref_items)
        rng.shuffle(cand_items)

        original = find_unsynced(_to_manifest(reference), _to_manifest(candidate))
        shuffled = find_unsynced(_to_manifest(dict(ref_items)), _to_manifest(dict(cand_items)))
        assert set(original) == set(shuffled)

    @PROPERTY_SETTINGS
    @given(reference=_HASH_MANIFEST, candidate=_HASH_MANIFEST)
    def test_inputs_are_not_mutated(
        self, reference: dict[str, str], candidate: dict[str, str]
    ) -> None:
        ref_manifest = _to_manifest(reference)
        cand_manifest = _to_manifest(candidate)
        find_unsynced(ref_manifest, cand_manifest)
        assert ref_manifest == _to_manifest(reference)
        assert cand_manifest == _to_manifest(candidate)


class TestCompareManifestFiles:
    def test_compares_files_on_disk(self, tmp_path: Path) -> None:
        local = tmp_path / "local.sha1s"
        remote = tmp_path / "remote.sha1s"
        local.write_bytes(encode_manifest(_to_manifest({"./a": "a" * 40})))
        remote.write_bytes(encode_manifest(_to_manifest({"./a": "a" * 40, "./b": "b" * 40})))
        assert compare_manifest_files(local, remote) == ["./b"]

    def test_accepts_newline_terminated_records(self, tmp_path: Path) -> None:
        local = tmp_path / "local.sha1s"
        remote = tmp_path / "remote.sha1s"
        local.write_bytes(b"")
        remote.write_bytes(b"./b\x001.0\x00" + b"b" * 40 + b"\x00\n")
        assert compare_manifest_files(local, remote) == ["./b"]

    def test_missing_reference_is_an_error(self, tmp_path: Path) -> None:
        remote = tmp_path / "remote.sha1s"
        remote.write_bytes(b"")
        with pytest.raises(FilesystemError):
            compare_manifest_files(tmp_path / "absent", remote)

    def test_malformed_candidate_is_an_error(self, tmp_path: Path) -> None:
        local = tmp_path / "local.sha1s"
        remote = tmp_path / "remote.sha1s"
        local.write_bytes(b"")
        remote.write_bytes(b"./b\x001.0")
        with pytest.raises(ManifestFormatError):
            compare_manifest_files(local, remote)
