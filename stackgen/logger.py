"""Logging setup for stackgen with Rich console and optional file output."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

from stackgen.utils import console

ROOT_LOGGER = "stackgen"

FILE_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger inside the ``stackgen`` namespace.

    Module loggers propagate to the ``stackgen`` root logger, which is where
    :func:`setup_logging` attaches handlers.
    """
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(level: str | int = "INFO", log_file: str | Path | None = None) -> logging.Logger:
    """Attach console (and optionally file) handlers to the ``stackgen`` logger.

    Calling it again only adjusts the level and adds a file handler for a
    log file that is not yet attached.

    Args:
        level: Logging level name or number.
        log_file: Optional path of a log file; parent directories are created.

    Returns:
        The configured ``stackgen`` root logger.
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    if log_file is not None:
        target = Path(log_file).resolve()
        attached = {
            Path(h.baseFilename)
            for h in root_logger.handlers
            if isinstance(h, logging.FileHandler)
        }
        if target not in attached:
            target.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(target, encoding="utf-8")
            file_handler.setFormatter(
                logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
            root_logger.addHandler(file_handler)

    return root_logger
