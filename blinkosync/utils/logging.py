"""Logging setup for the CLI and watch mode."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from rich.logging import RichHandler

from blinkosync.core.config import AppConfig

FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty below WARNING; only let them through with --debug
QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler", "aiosqlite")


def log_file_path(config: AppConfig) -> Path:
    return config.general.data_dir / "logs" / config.general.log_file_name


def resolve_level(config: AppConfig, override: str | None = None) -> int:
    """Debug mode wins over an explicit override, which wins over the config."""
    if config.general.debug:
        return logging.DEBUG

    name = (override or config.general.log_level).upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unsupported log level: {override or config.general.log_level}")
    return level


def _console_handler(level: int) -> logging.Handler:
    handler = RichHandler(rich_tracebacks=True, show_time=False, show_path=False)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _file_handler(config: AppConfig) -> logging.Handler:
    path = log_file_path(config)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=config.general.log_file_max_bytes,
        backupCount=config.general.log_file_backup_count,
        encoding="utf-8",
    )
    # The file always keeps the full picture
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(config: AppConfig, *, level_name: str | None = None) -> Path:
    """Install the Rich console handler and the rotating file handler on the root logger.

    Calling it again replaces the handlers of the previous call, so the CLI
    can run it once per invocation.

    Returns:
        Path of the log file
    """
    level = resolve_level(config, level_name)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG)

    root.addHandler(_console_handler(level))
    root.addHandler(_file_handler(config))
    logging.captureWarnings(True)

    third_party_level = logging.DEBUG if config.general.debug else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return log_file_path(config)
