from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def debug_enabled() -> bool:
    """``DEBUG=dataverse`` (or any value containing it) turns on debug output."""
    return "dataverse" in os.getenv("DEBUG", "")


def setup_logging(verbose: bool = False) -> None:
    """Install one stdout handler on the package logger. Used by the CLI only."""
    level = logging.DEBUG if verbose or debug_enabled() else logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    package_logger = logging.getLogger("dataverse_files")
    package_logger.setLevel(level)
    for existing in package_logger.handlers[:]:
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)

    # request lines from httpx would drown the block-level messages
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
