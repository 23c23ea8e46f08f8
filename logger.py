"""Logging for the listing API: one `realestate` tree, one stderr handler."""

import logging
import os
from typing import Optional

NAMESPACE = "realestate"
RECORD_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _stderr_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=RECORD_FORMAT, datefmt=DATE_FORMAT))
    return handler


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Set up the application logger tree and return its root.

    Safe to call repeatedly: the handler is attached once, while an explicit
    `level` (normally `Settings.log_level`) always wins over `LOG_LEVEL`.
    """
    root = logging.getLogger(NAMESPACE)
    if not root.handlers:
        root.addHandler(_stderr_handler())
        root.propagate = False
        root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    if level:
        root.setLevel(level.upper())
    return root


def get_logger(child: Optional[str] = None) -> logging.Logger:
    root = configure_logging()
    return root.getChild(child) if child else root
