"""Binary manifest format.

Each record is::

    path NUL seconds.nanoseconds NUL sha1 NUL NUL

There is no header, record count or checksum; the file ends after the last
record. The final byte of a record may also be a newline, which older
manifests used. Record order carries no meaning.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import NamedTuple

from sha1sync.exceptions import ManifestFormatError

NUL = 0
NEWLINE = 0x0A

_TIMESTAMP_RE = re.compile(rb"([0-9]+)\.([0-9]+)")
_HASH_RE = re.compile(rb"[0-9a-f]{40}")


class Timestamp(NamedTuple):
    """A modification time split into whole seconds and nanoseconds."""

    seconds: int
    nanoseconds: int

    @classmethod
    def from_ns(cls, mtime_ns: int) -> Timestamp:
        seconds, nanoseconds = divmod(mtime_ns, 1_000_000_000)
        return cls(seconds, nanoseconds)

    def to_ns(self) -> int:
        return self.seconds * 1_000_000_000 + self.nanoseconds

    def __str__(self) -> str:
        return f"{self.seconds}.{self.nanoseconds}"


@dataclass
class FileRecord:
    """Fingerprint of one tracked file."""

    path: str
    content_hash: str
    modified: Timestamp


Manifest = dict[str, FileRecord]


def encode_record(record: FileRecord) -> bytes:
    """Serialize a single record, including its trailing terminator."""
    return b"".join(
        (
            os.fsencode(record.path),
            b"\0",
            str(record.modified).encode("ascii"),
            b"\0",
            record.content_hash.encode("ascii"),
            b"\0\0",
        )
    )


def encode_manifest(manifest: Manifest) -> bytes:
    """Serialize a manifest to its on-disk representation."""
    return b"".join(encode_record(record) for record in manifest.values())


def _read_field(data: bytes, pos: int, name: str) -> tuple[bytes, int]:
    end = data.find(b"\0", pos)
    if end < 0:
        raise ManifestFormatError(f"Manifest truncated: unterminated {name}", pos)
    return data[pos:end], end + 1


def parse_timestamp(raw: bytes, offset: int | None = None) -> Timestamp:
    """Parse ``<seconds>.<nanoseconds>`` written as unsigned ASCII decimals."""
    if b"." not in raw:
        raise ManifestFormatError(f"Malformed timestamp {raw!r}: expected '.'", offset)
    match = _TIMESTAMP_RE.fullmatch(raw)
    if match is None:
        raise ManifestFormatError(f"Malformed timestamp {raw!r}", offset)
    return Timestamp(int(match.group(1)), int(match.group(2)))


def decode_manifest(data: bytes) -> Manifest:
    """Parse a whole manifest file.

    Raises ManifestFormatError on any malformed or truncated record. When a
    path occurs more than once, the last record wins.
    """
    manifest: Manifest = {}
    pos = 0
    size = len(data)
    while pos < size:
        raw_path, pos = _read_field(data, pos, "path")
        time_offset = pos
        raw_time, pos = _read_field(data, pos, "timestamp")
        hash_offset = pos
        raw_hash, pos = _read_field(data, pos, "hash")

        if pos >= size:
            raise ManifestFormatError("Manifest truncated: missing record terminator", pos)
        if data[pos] not in (NUL, NEWLINE):
            raise ManifestFormatError("Expected NUL or newline after hash", pos)
        pos += 1

        if not raw_path:
            raise ManifestFormatError("Empty path", time_offset - 1)
        if _HASH_RE.fullmatch(raw_hash) is None:
            raise ManifestFormatError(f"Malformed hash {raw_hash!r}", hash_offset)

        path = os.fsdecode(raw_path)
        manifest[path] = FileRecord(
            path=path,
            content_hash=raw_hash.decode("ascii"),
            modified=parse_timestamp(raw_time, time_offset),
        )
    return manifest
