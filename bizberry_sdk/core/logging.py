"""Logging setup for applications embedding the SDK.

The SDK itself only ever calls ``logging.getLogger(__name__)``; handlers are
the host application's business. ``configure_logging`` is a convenience for
scripts and tests that want the same console/file layout the backend uses.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from bizberry_sdk.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Attach console (and optionally rotating file) handlers to the SDK logger.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
        log_file: Path of a rotating log file (defaults to settings.LOG_FILE)

    Returns:
        The ``bizberry_sdk`` package logger
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_file = log_file or settings.LOG_FILE

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    sdk_logger = logging.getLogger("bizberry_sdk")
    sdk_logger.setLevel(level)

    # Reconfiguring replaces our own handlers instead of stacking them
    for handler in list(sdk_logger.handlers):
        if getattr(handler, "_bizberry_handler", False):
            sdk_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler._bizberry_handler = True
    sdk_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler._bizberry_handler = True
        sdk_logger.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return sdk_logger


def mask_token(token: Optional[str]) -> str:
    """Shorten a bearer token for log output."""
    if not token:
        return "<none>"
    if len(token) <= 12:
        return "***"
    return f"{token[:6]}...{token[-4:]}"
