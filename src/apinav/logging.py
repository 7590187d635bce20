"""
Logging setup for apinav.

All modules obtain loggers through ``get_logger(__name__)``. Console output goes
through Rich on stderr so it never mixes with command output on stdout.

Set ``APINAV_LOG_LEVEL`` (DEBUG, INFO, WARNING, ...) to change verbosity.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_LEVEL = "WARNING"
LOGGER_ROOT = "apinav"

_initialized = False


def setup_logging(log_level: Optional[str] = None, force: bool = False) -> None:
    """
    Configure the ``apinav`` logger hierarchy.

    Subsequent calls are ignored unless ``force`` is set (the CLI uses that when
    ``--verbose`` is passed after logging was already touched).
    """
    global _initialized

    if _initialized and not force:
        return

    level_str = log_level or os.environ.get("APINAV_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    level = getattr(logging, level_str.upper(), logging.WARNING)

    root = logging.getLogger(LOGGER_ROOT)
    root.setLevel(level)
    root.handlers.clear()

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    handler.setLevel(level)
    root.addHandler(handler)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    if not _initialized:
        setup_logging()
    return logging.getLogger(name)
