"""
Logger utility for DeltaNEAR.

Console output goes to stderr (warnings and errors only). When
DELTANEAR_LOG_DIR is set, rotating file logs are written there as well:
- deltanear.log: Main log with 5MB rotation, keeps 3 backups
- deltanear.errors.log: Errors only, 2MB rotation, keeps 2 backups
- deltanear.json: Structured JSON, 5MB rotation, keeps 2 backups

Lifecycle events (EVENT_JSON lines) are INFO records on the
``deltanear.events`` logger, so they land in the main and JSON logs.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_DIR_ENV = "DELTANEAR_LOG_DIR"

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def get_log_dir() -> Optional[Path]:
    """Log directory from DELTANEAR_LOG_DIR, created on demand. None if unset."""
    configured = os.environ.get(LOG_DIR_ENV)
    if not configured:
        return None
    log_dir = Path(configured).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_logger(name: str = "deltanear", level: Optional[int] = None) -> logging.Logger:
    """
    Get or create a logger with console and optional rotating file handlers.

    Args:
        name: Logger name
        level: Optional logging level (defaults to INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        text_formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(text_formatter)
        logger.addHandler(console_handler)

        log_dir = get_log_dir()
        if log_dir is not None:
            main_handler = RotatingFileHandler(
                log_dir / "deltanear.log", maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
            main_handler.setLevel(logging.DEBUG)
            main_handler.setFormatter(text_formatter)
            logger.addHandler(main_handler)

            error_handler = RotatingFileHandler(
                log_dir / "deltanear.errors.log", maxBytes=2 * 1024 * 1024, backupCount=2,
                encoding="utf-8",
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(text_formatter)
            logger.addHandler(error_handler)

            json_handler = RotatingFileHandler(
                log_dir / "deltanear.json", maxBytes=5 * 1024 * 1024, backupCount=2, encoding="utf-8"
            )
            json_handler.setLevel(logging.INFO)
            json_handler.setFormatter(JsonFormatter())
            logger.addHandler(json_handler)

    if level is not None:
        logger.setLevel(level)
    elif not logger.level:
        logger.setLevel(logging.INFO)

    return logger
