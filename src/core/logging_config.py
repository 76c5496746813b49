"""Logging setup (stdlib logging rendered by Rich)."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_LEVELS = (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR)


def level_from_verbosity(verbose: int = 0, quiet: int = 0) -> int:
    """Map repeated ``-v`` / ``-q`` flags to a logging level (default INFO)."""

    index = 1 - verbose + quiet
    index = max(0, min(index, len(_LEVELS) - 1))
    return _LEVELS[index]


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        root.addHandler(handler)

    # httpx logs every request URL, access_token included, at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
    return root
