"""Logging setup shared by the API process and tests."""

from __future__ import annotations

import logging

_LOGGING_INITIALIZED = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "info") -> None:
    """Install a console handler on the root logger once; later calls only adjust the level."""

    global _LOGGING_INITIALIZED

    level_map = {"debug": logging.DEBUG, "info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}
    console_level = level_map.get(level.lower(), logging.INFO)

    root = logging.getLogger()
    if not _LOGGING_INITIALIZED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _LOGGING_INITIALIZED = True

    root.setLevel(console_level)
    logging.getLogger("orgboard").setLevel(console_level)
    # SQL echo stays off unless explicitly debugging the store.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
