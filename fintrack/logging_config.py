"""
Logging for the fintrack API.

Everything the application logs goes through the ``fintrack`` logger tree;
``get_logger(__name__)`` in each module returns a child of it. Levels and the
optional log file come from ``fintrack.config.Settings``.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from fintrack.config import get_settings

APP_LOGGER = "fintrack"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Libraries whose INFO output drowns the request log
NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "uvicorn.access",
    "httpx",
    "multipart",
)


def _level(name: str, fallback: int) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else fallback


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(log_file: str, level: int, formatter: logging.Formatter) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(app_log_level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach handlers to the ``fintrack`` logger and quiet third-party loggers.

    Arguments override the matching settings. Calling it again replaces the
    handlers instead of stacking them.
    """
    settings = get_settings()
    level = _level(app_log_level or settings.app_log_level, logging.INFO)
    log_file = log_file or settings.log_file

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(level)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    app_logger.addHandler(_console_handler(level, formatter))
    if log_file:
        app_logger.addHandler(_file_handler(log_file, level, formatter))
    app_logger.propagate = False

    third_party_level = _level(settings.third_party_log_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return app_logger


def get_logger(name: str = APP_LOGGER) -> logging.Logger:
    """Logger under the ``fintrack`` tree; module names are nested below it"""
    if name == APP_LOGGER or name.startswith(APP_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER}.{name}")
