"""Logger construction for the API service."""

from __future__ import annotations

import logging
import os
import sys
from typing import Callable

_FORMAT = "time=%(asctime)s level=%(levelname)s msg=%(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(name: str) -> int:
    """Map a level name to a logging level, falling back to INFO."""
    return _LEVELS.get(name.lower(), logging.INFO)


def create_logger(
    level: str, file_path: str | os.PathLike[str] | None
) -> tuple[logging.Logger, Callable[[], None]]:
    """Build a logger writing to stdout and, if a path is given, appending to a file.

    Returns the logger and a function that closes the log file.
    """
    logger = logging.Logger("fabriclog", parse_level(level))
    formatter = logging.Formatter(_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    path = os.fspath(file_path) if file_path else ""
    if path:
        directory = os.path.dirname(path)
        if directory not in ("", "."):
            os.makedirs(directory, mode=0o755, exist_ok=True)
        handlers.append(logging.FileHandler(path, mode="a", encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    def cleanup() -> None:
        for handler in handlers[1:]:
            logger.removeHandler(handler)
            handler.close()

    return logger, cleanup