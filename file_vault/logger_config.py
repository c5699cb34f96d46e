import logging
import os
import sys
from pathlib import Path

from file_vault import config

LOGGER_NAME = "file_vault"
LOG_FILE_NAME = "file_vault.log"

FILE_FORMAT = '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logger():
    """Return the vault logger, attaching the stdout handler on first use.

    Importing modules call this, so it must not touch the filesystem; the
    log file is added by enable_file_logging() when the server starts.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    return logger


def enable_file_logging(log_dir=config.LOG_DIR):
    """Also write DEBUG-level detail to ``<log_dir>/file_vault.log``."""
    logger = setup_logger()
    log_path = os.path.abspath(Path(log_dir) / LOG_FILE_NAME)

    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == log_path:
            return logger

    Path(log_dir).mkdir(exist_ok=True, parents=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)

    return logger
