"""
Logging setup

Shared logging configuration for the web process and the operator scripts.
- Console: INFO
- File: INFO (TimedRotatingFileHandler, daily)

Usage:
    from core.logging import setup_logging
    setup_logging("web")      # FastAPI process
    setup_logging("scripts")  # operator tools
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 30  # keep 30 days of files

# Loggers that are lowered to WARNING
NOISY_LOGGERS = [
    "aiosqlite",       # executing/completed per query
    "httpcore",
    "httpx",
    "asyncio",
    "uvicorn.access",
]


def _log_dir_for(process_name: str) -> Path:
    if process_name == "web":
        return Paths.WEB_LOGS_DIR
    if process_name == "scripts":
        return Paths.SCRIPTS_LOGS_DIR
    return Paths.LOGS_DIR


def setup_logging(
    process_name: str,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """Initialise logging

    Writes to a per-process log directory, rolled over at midnight.

    Args:
        process_name: "web", "scripts" or any other name
        console_level: console level (default INFO)
        file_level: file level (default INFO)
        log_dir: override for the log directory

    Returns:
        the configured root logger
    """
    if log_dir is None:
        log_dir = _log_dir_for(process_name)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{process_name}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers do the filtering

    # Drop existing handlers so repeated setup does not duplicate output
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        interval=1,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.suffix = "%Y-%m-%d"  # web.log.2026-02-21
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialised: {process_name}")
    root_logger.info(f"  - console: {logging.getLevelName(console_level)}")
    root_logger.info(f"  - file: {log_file} ({logging.getLevelName(file_level)}, daily rotation)")

    return root_logger


def get_log_file_path(process_name: str) -> Path:
    """Log file path for a process name"""
    return _log_dir_for(process_name) / f"{process_name}.log"
