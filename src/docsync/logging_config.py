"""Logging setup for the docsync CLI.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed here, on the ``docsync`` logger, by the CLI entry point.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """Configure the ``docsync`` logger.

    Args:
        level: Log level name. Falls back to ``DOCSYNC_LOG_LEVEL``, then INFO.
        log_file: Optional path for an additional plain-text log file.

    Returns:
        The configured ``docsync`` logger.
    """
    name = level or os.getenv("DOCSYNC_LOG_LEVEL") or "INFO"
    log_level = getattr(logging, name.upper(), logging.INFO)

    root = logging.getLogger("docsync")
    root.setLevel(log_level)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
        markup=False,
    )
    console_handler.setLevel(log_level)
    root.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError:
            root.warning("Could not open log file %s, logging to the console only", log_file)
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
            root.addHandler(file_handler)

    return root


def set_level(level: str) -> None:
    """Change the level of the ``docsync`` logger and its handlers in place."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger("docsync")
    root.setLevel(log_level)
    for handler in root.handlers:
        handler.setLevel(log_level)
