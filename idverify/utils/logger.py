"""Logging setup shared by the verification pipeline, API and CLI."""

import logging
import sys
from typing import TextIO

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_NOISY_LOGGERS = ("PIL", "multipart")


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Configure the root logger once with a timestamped format.

    Repeated calls are no-ops so the API and CLI can both call this safely.
    Third-party loggers that are chatty at DEBUG level are capped at INFO.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to INFO.
        stream: Output stream for the handler, stdout by default.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Return the named module logger, usually ``get_logger(__name__)``."""
    return logging.getLogger(name)
