"""
Logging setup for the receptionist server.

Everything logs through the ``receptionist`` logger: a stdout handler for the
console the server runs in, plus a rotating file under LOG_DIR so a finished
call can be inspected afterwards. The file is optional; if the directory is
not writable the console handler alone is kept.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from receptionist.config.constants import (
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    LOG_BACKUP_COUNT,
    LOG_FILE_NAME,
    LOG_FORMAT,
    LOG_MAX_BYTES,
    LOGGER_NAME,
    QUIET_LOGGERS,
)

LOG_LEVEL = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
LOG_DIR = Path(os.getenv("LOG_DIR", DEFAULT_LOG_DIR))


def _file_handler(log_dir: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Configure the receptionist logger. Safe to call more than once.

    Args:
        level: Log level name; defaults to the LOG_LEVEL env var
        log_dir: Directory for the rotating log file; defaults to the LOG_DIR env var

    Returns:
        logging.Logger: The configured logger instance
    """
    level_name = (level or LOG_LEVEL).upper()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    target = Path(log_dir) if log_dir is not None else LOG_DIR
    try:
        logger.addHandler(_file_handler(target, formatter))
    except OSError as e:
        logger.warning(f"Could not set up file logging in {target}: {e}")

    logger.propagate = False

    # Frame-level chatter from the socket and HTTP clients drowns out call events
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logger.level, logging.WARNING))

    logger.debug(f"Logging configured at {level_name}")
    return logger
