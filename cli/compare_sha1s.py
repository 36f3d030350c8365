"""List files of one manifest whose content is missing from another."""

from __future__ import annotations

import argparse
from pathlib import Path

from cli.common import configure_logging, fail
from sha1sync.exceptions import Sha1SyncError
from sha1sync.services.diff_service import compare_manifest_files


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="sha1s-compare",
        description="Print files in CANDIDATE whose content is not in REFERENCE",
    )
    parser.add_argument("reference", type=Path, help="Manifest of the up-to-date side")
    parser.add_argument("candidate", type=Path, help="Manifest of the side to check")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    try:
        unsynced = compare_manifest_files(args.reference, args.candidate)
    except (Sha1SyncError, ValueError) as exc:
        fail(exc)

    for path in unsynced:
        print(path)


if __name__ == "__main__":
    main()
