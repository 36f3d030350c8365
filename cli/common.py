"""Shared setup for the sha1sync command-line tools."""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure logging for a command-line run.

    Log records go to stderr so that stdout carries only tool output.
    """
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stderr,
        force=True,
    )


def fail(exc: Exception) -> NoReturn:
    """Report a fatal error and terminate with a non-zero status."""
    logger.debug("Aborting", exc_info=exc)
    print(f"Error: {exc}", file=sys.stderr)
    sys.exit(1)
