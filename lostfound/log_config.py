# log_config.py
"""Logging setup shared by the HTTP app and the command line."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_configured = False


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``lostfound`` logger once.

    Messages go to stderr and, when ``log_file`` is given, to that file too.
    Later calls only adjust the level.
    """
    global _configured

    logger = logging.getLogger("lostfound")
    logger.setLevel(level.upper())

    if _configured:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    _configured = True
    return logger


def reset_logging() -> None:
    """Drop handlers installed by configure_logging (used by tests)."""
    global _configured
    logger = logging.getLogger("lostfound")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    _configured = False
