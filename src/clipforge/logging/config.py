"""Logging configuration.

Provides configure_logging() to set up logging based on LoggingConfig.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from clipforge.logging.context import JobContextFilter
from clipforge.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from clipforge.config.models import LoggingConfig

# job_tag is "[Jab12cd34:concat] " inside an export job, empty otherwise
TEXT_FORMAT = "%(asctime)s - %(job_tag)s%(name)s - %(levelname)s - %(message)s"

_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _install(handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(JobContextFilter())
    logging.getLogger().addHandler(handler)


def _open_log_file(config: LoggingConfig) -> RotatingFileHandler | None:
    """Open the rotating log file, or return None with a stderr warning."""
    log_path = Path(config.file).expanduser()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            log_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Could not open log file {log_path}: {e}\n")
        return None


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger from a LoggingConfig.

    Installs a rotating file handler when a file is configured, and a
    stderr handler when requested or when the file cannot be opened.
    Every handler tags records with the current export job.

    Args:
        config: Logging configuration.
    """
    level = _LEVEL_MAP.get(config.level.casefold(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter: logging.Formatter
    if config.format.casefold() == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    file_handler = _open_log_file(config) if config.file else None
    if file_handler is not None:
        _install(file_handler, level, formatter)

    if config.include_stderr or file_handler is None:
        _install(logging.StreamHandler(sys.stderr), level, formatter)
