# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

import pytest
from rich.logging import RichHandler

from lxdinit import log


@pytest.fixture(autouse=True)
def root_handlers():
    logger = logging.getLogger()
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if isinstance(handler, (RichHandler, logging.FileHandler)):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def test_log_file_path(tmp_path):
    path = log.log_file_path(tmp_path)
    assert path.parent == tmp_path / ".local/share/lxdinit/logs"
    assert path.name.startswith("lxdinit-")
    assert path.suffix == ".log"


def test_setup_logging(tmp_path):
    logfile = tmp_path / "logs" / "lxdinit.log"
    log.setup_logging(logfile)
    logging.getLogger("lxdinit.test").debug("planning")

    handlers = logging.getLogger().handlers
    assert len(handlers) == 2
    assert isinstance(handlers[0], RichHandler)
    assert handlers[0].level == logging.WARNING
    assert "planning" in logfile.read_text()


def test_setup_logging_verbose():
    log.setup_logging(verbose=True)
    (handler,) = logging.getLogger().handlers
    assert handler.level == logging.DEBUG
