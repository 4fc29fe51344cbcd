import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import pytest

from dawndream.logging_utils import setup_logging


@pytest.fixture
def clean_logger():
    logger = logging.getLogger("dawndream")
    saved = list(logger.handlers), logger.level
    logger.handlers = []
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers, level = saved
    logger.setLevel(level)


def _console(logger):
    return [
        h
        for h in logger.handlers
        if type(h) is logging.StreamHandler and h.stream is sys.stderr
    ]


def test_file_handler_added_once(tmp_path, clean_logger):
    logger, path = setup_logging(str(tmp_path / "logs"), level=logging.DEBUG)
    setup_logging(str(tmp_path / "logs"))
    assert path == os.path.join(str(tmp_path / "logs"), "dawndream.log")
    assert len([h for h in logger.handlers if isinstance(h, RotatingFileHandler)]) == 1
    assert _console(logger) == []
    assert logger.level == logging.INFO

    logging.getLogger("dawndream.recorder").info("Dream recorder idle -> waiting")
    for handler in logger.handlers:
        handler.flush()
    with open(path, encoding="utf-8") as handle:
        assert "idle -> waiting" in handle.read()


def test_console_echo_toggles(tmp_path, clean_logger):
    logger, _ = setup_logging(str(tmp_path), level=logging.DEBUG, console=True)
    setup_logging(str(tmp_path), level=logging.DEBUG, console=True)
    assert len(_console(logger)) == 1
    assert _console(logger)[0].level == logging.DEBUG

    setup_logging(str(tmp_path), console=False)
    assert _console(logger) == []
