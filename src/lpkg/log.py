"""Logging setup for the lpkg command-line tools.

Library modules log through ``logging.getLogger(__name__)``; only the CLI
installs handlers. Console records go to stderr through rich, an optional log
file receives plain-text records at DEBUG level.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"


def setup_logging(level: str = "WARNING", log_file: str | Path | None = None) -> None:
    """Configure the ``lpkg`` logger.

    Previously installed handlers are removed first, so calling this twice
    (e.g. from tests invoking the CLI repeatedly) never duplicates output.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a file that receives DEBUG and above.
    """
    logger = logging.getLogger("lpkg")
    reset_logging()

    console_level = getattr(logging, level.upper(), logging.WARNING)
    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    effective = console_level
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)
        effective = logging.DEBUG

    logger.setLevel(effective)
    logger.propagate = False


def reset_logging() -> None:
    """Remove every handler from the ``lpkg`` logger."""
    logger = logging.getLogger("lpkg")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
