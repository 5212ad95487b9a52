"""
Centralized Logging Configuration
=================================

Application-wide logging set up once through dictConfig: a console handler,
an optional rotating file handler, and one readable line format.
"""

import logging
import logging.config
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("passlib", "httpx", "httpcore", "aiosqlite")


def configure_logging(
    log_level: str = "INFO",
    log_file: str = "skillweave.log",
    enable_file: bool = True,
) -> None:
    """
    Configure Python logging for the application.

    Args:
        log_level: Minimum level for handlers (DEBUG/INFO/WARNING/ERROR)
        log_file: Path to log file
        enable_file: Whether to enable file handler
    """
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "standard",
        },
    }
    if enable_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
        }

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": LOG_FORMAT,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            }
        },
        "handlers": handlers,
        "loggers": {
            name: {"level": "WARNING"} for name in QUIET_LOGGERS
        },
        "root": {
            "level": log_level,
            "handlers": list(handlers),
        },
    }

    logging.config.dictConfig(logging_config)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a named logger (or the root logger)."""
    return logging.getLogger(name)
