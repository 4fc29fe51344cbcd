"""Logging helpers."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FILENAME = "dawndream.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
CONSOLE_FORMAT = "%(asctime)s %(name)s: %(message)s"


def _console_handlers(logger: logging.Logger) -> list:
    return [
        h
        for h in logger.handlers
        if type(h) is logging.StreamHandler and getattr(h, "stream", None) is sys.stderr
    ]


def setup_logging(
    log_dir: str = "logs",
    level: int = logging.INFO,
    console: bool = False,
) -> tuple[logging.Logger, str]:
    """Route the ``dawndream`` loggers to a rotating file under ``log_dir``.

    With ``console`` set, records are echoed to stderr as well so a foreground
    ``record --debug`` session shows state transitions as they happen. Calling
    this again only adjusts levels and the console echo; the file handler is
    added once.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, LOG_FILENAME)

    logger = logging.getLogger("dawndream")
    logger.setLevel(level)

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    existing = _console_handlers(logger)
    if console and not existing:
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(level)
        stream.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(stream)
    elif not console:
        for handler in existing:
            logger.removeHandler(handler)

    return logger, log_path
