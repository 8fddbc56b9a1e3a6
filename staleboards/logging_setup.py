"""
Configure logging for the application.

Log records go to stderr so that stdout carries only the progress markers and
the report. A rotating log file is added when one is configured.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

# Define log format
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"

DEFAULT_LOG_LEVEL = "WARNING"


def resolve_log_level(log_level: Optional[str], debug_mode: bool = False) -> int:
    """Map a configured level name to a logging level; debug_mode forces DEBUG."""
    if debug_mode:
        return logging.DEBUG
    level = logging.getLevelName((log_level or DEFAULT_LOG_LEVEL).upper())
    return level if isinstance(level, int) else logging.WARNING


def setup_logging(
    log_level: Optional[str] = DEFAULT_LOG_LEVEL,
    log_file: Optional[str] = None,
    debug_mode: bool = False,
) -> None:
    """
    Configure the root logger with a stderr handler and an optional rotating file.

    Args:
        log_level: Level name such as "INFO" or "DEBUG"
        log_file: Path of a log file, or None to log to stderr only
        debug_mode: Force DEBUG regardless of log_level
    """
    level = resolve_log_level(log_level, debug_mode)
    log_formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(log_formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            try:
                os.makedirs(log_dir)
            except OSError as e:
                root_logger.error(
                    f"Could not create log directory {log_dir}: {e}. Using current directory for logs."
                )
                log_file = os.path.basename(log_file)

        # Rotates at 5MB, keeps 5 backups
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
            )
            file_handler.setFormatter(log_formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.error(f"Could not open log file {log_file}: {e}")

    logging.debug(
        f"Logging setup complete. Level: {logging.getLevelName(level)}, File: {log_file or 'none'}"
    )
