"""Update the SHA-1 manifest of a directory tree."""

from __future__ import annotations

import argparse
from pathlib import Path

from cli.common import configure_logging, fail
from sha1sync.config import MAX_IGNORE_DAYS, ScanOptions, ScanSettings
from sha1sync.exceptions import Sha1SyncError
from sha1sync.filesystem.manifest_store import ManifestStore


def print_event(tag: str, path: str) -> None:
    print(f"{tag} {path}")


def run_update(options: ScanOptions) -> bool:
    """Scan, prune and persist. Returns True if the manifest was rewritten."""
    return ManifestStore(options).update(report=print_event, notify=print)


def _days(value: str) -> int:
    try:
        days = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value}: not a number of days") from exc
    if days < 0:
        raise argparse.ArgumentTypeError(f"{value}: must not be negative")
    if days > MAX_IGNORE_DAYS:
        raise argparse.ArgumentTypeError(f"{value} too big")
    return days


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sha1s-update",
        description="Record SHA-1 hashes of every file under a directory tree",
    )
    parser.add_argument(
        "-c",
        dest="remove_missing",
        action="store_true",
        help="remove SHA1 hashes for missing files",
    )
    parser.add_argument(
        "-i",
        dest="ignore_days",
        type=_days,
        default=0,
        metavar="DAYS",
        help="ignore files modified longer than DAYS in the past",
    )
    parser.add_argument(
        "-f",
        dest="manifest",
        type=Path,
        metavar="PATH",
        help="manifest file to use (default: .sha1s in the scanned directory)",
    )
    parser.add_argument(
        "--dir", "-d", type=Path, default=Path("."), help="Directory to scan (default: current)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    try:
        settings = ScanSettings()
        configure_logging(args.verbose or settings.debug)
        options = ScanOptions.from_settings(
            settings,
            root=args.dir,
            manifest_path=args.manifest,
            remove_missing=args.remove_missing,
            ignore_days=args.ignore_days,
        )
        run_update(options)
    except (Sha1SyncError, ValueError) as exc:
        fail(exc)


if __name__ == "__main__":
    main()
