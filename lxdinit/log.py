# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
from datetime import datetime
from pathlib import Path

from rich.logging import RichHandler

LOG = logging.getLogger(__name__)
LOG_PATH = Path(".local/share/lxdinit/logs")
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def log_file_path(base: Path | None = None) -> Path:
    """Return a timestamped log file path under the user's share directory."""
    base = base or Path.home()
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S.%f")
    return base / LOG_PATH / f"lxdinit-{timestamp}.log"


def setup_logging(logfile: Path | None = None, verbose: bool = False) -> None:
    """Configure the root logger.

    Console output goes through rich and only shows warnings unless verbose
    output was requested. Everything is written to the log file when one is
    given.

    :param logfile: the file to log to, or None to skip file logging
    :param verbose: whether debug messages should reach the console
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)
    # Avoid stacking handlers when the CLI is invoked more than once in-process
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = RichHandler(show_path=False, rich_tracebacks=verbose)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.addHandler(console_handler)

    if logfile is None:
        return

    try:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(logfile)
    except OSError as e:
        LOG.warning(f"Cannot write log file {logfile}: {e}")
        return
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)
    LOG.debug(f"Logging to {logfile}")
