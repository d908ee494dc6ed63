# -*- coding: utf-8 -*-
"""
Logging configuration.

All modules log through children of the ``academic_admin`` logger:

    logger = get_logger(__name__)

Payloads sent to the directory API may carry account passwords; pass them
through ``redact()`` before logging.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

ROOT_LOGGER_NAME = "academic_admin"

# Keys whose values never reach a log file
SENSITIVE_KEYS = ("password", "password_confirm", "confirm_password", "token")

# Will be set by setup_logger
_logger: Optional[logging.Logger] = None


def setup_logger(log_path: Optional[Path] = None,
                 console_level: int = logging.INFO) -> logging.Logger:
    """
    Setup application logger with a rotating file handler and a console handler.

    Args:
        log_path: Override for the log file (defaults to Config.LOG_PATH)
        console_level: Minimum level echoed to stdout
    """
    global _logger

    # Import here to avoid circular imports
    from app.config import Config

    log_path = Path(log_path) if log_path else Config.LOG_PATH
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=Config.LOG_MAX_BYTES,
        backupCount=Config.LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt=Config.DATETIME_FORMAT
    ))
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)-8s | %(message)s"))
    logger.addHandler(console_handler)

    _logger = logger
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for a module."""
    global _logger

    if _logger is None:
        _logger = setup_logger()

    return _logger.getChild(name)


def redact(payload: Any) -> Any:
    """Return a copy of ``payload`` with sensitive values masked."""
    if isinstance(payload, dict):
        return {
            key: ("***" if key in SENSITIVE_KEYS and value else redact(value))
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple)):
        return [redact(item) for item in payload]
    return payload
