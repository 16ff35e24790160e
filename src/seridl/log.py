"""Logging setup for the seridl command-line tool."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: int = logging.WARNING) -> logging.Logger:
    """Attach a console handler to the ``seridl`` logger.

    Library modules only create loggers; handlers are configured here by the CLI.

    Args:
        level: Logging level for the package logger

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("seridl")
    logger.setLevel(level)

    if not any(getattr(h, "_seridl_console", False) for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        console_handler._seridl_console = True  # type: ignore[attr-defined]
        logger.addHandler(console_handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger
