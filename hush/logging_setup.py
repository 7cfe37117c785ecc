"""Logging configuration for the command shell."""
from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"

# Third-party loggers that are noisy at DEBUG.
_QUIET_LOGGERS = ("aiohttp", "urllib3", "asyncio")


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configure the root logger.

    Args:
        level: Level name; unknown names fall back to INFO.
        debug: Force DEBUG regardless of ``level`` (the ``debug`` config toggle).
    """
    resolved = logging.DEBUG if debug else getattr(logging, level.upper(), None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
