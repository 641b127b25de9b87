"""Logger setup shared by the command line and interactive sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from ..config import LoggingSettings

PACKAGE_LOGGER = "keytrace"
DEFAULT_FORMAT = "%(levelname)s:%(name)s:%(message)s"


def get_logger(name: str = PACKAGE_LOGGER, level: int | str = logging.INFO, fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """Return ``name``'s logger with exactly one stream handler attached.

    Repeated calls reuse the handler, so the CLI callback can run once per
    invocation without duplicating lines; the level and format are
    refreshed every time.
    """

    logger = logging.getLogger(name)
    handlers = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
    if not handlers:
        handlers = [logging.StreamHandler()]
        logger.addHandler(handlers[0])
    for handler in handlers:
        handler.setFormatter(logging.Formatter(fmt))
    logger.setLevel(level)
    return logger


def configure_logging(section: Optional["LoggingSettings"] = None) -> logging.Logger:
    """Configure the package logger from a ``logging`` settings section."""

    if section is None:
        return get_logger()
    return get_logger(PACKAGE_LOGGER, level=section.level, fmt=section.format)


__all__ = ["PACKAGE_LOGGER", "DEFAULT_FORMAT", "get_logger", "configure_logging"]
