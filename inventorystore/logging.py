#!/usr/bin/env python3
"""
Logging configuration for the inventory store.

Features:
- Rich console formatting for readable development logs
- Rotating file handlers for persistent logs
- Quick debug mode activation via --debug or DEBUG=1
- Integration with the application's configuration system

Nothing is configured at import time; the CLI calls configure_logging()
once the configuration is known.
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from inventorystore.config import InventoryConfig, LogLevel


# Constants
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
RICH_LOG_FORMAT = "%(message)s"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5
APP_NAME = "inventorystore"


# Map between LogLevel enum and logging module levels
LOG_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


def get_environment_log_level() -> Optional[int]:
    """
    Check for debug flags in environment variables.

    Supports:
    - DEBUG=1
    - INVENTORY_DEBUG=1
    - LOGLEVEL=DEBUG (or other level names)

    Returns:
        Optional[int]: Logging level or None if not specified in environment
    """
    if os.environ.get("DEBUG") == "1" or os.environ.get("INVENTORY_DEBUG") == "1":
        return logging.DEBUG

    log_level_str = os.environ.get("LOGLEVEL")
    if log_level_str:
        numeric_level = getattr(logging, log_level_str.upper(), None)
        if isinstance(numeric_level, int):
            return numeric_level

    return None


def get_console_handler(rich: bool = True) -> logging.Handler:
    """
    Get a stderr console handler for logging.

    Args:
        rich: Whether to use Rich formatting
    """
    if rich:
        console = Console(stderr=True, color_system="auto", highlight=True)
        handler = RichHandler(
            console=console,
            show_time=False,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_extra_lines=3,
        )
        handler.setFormatter(logging.Formatter(RICH_LOG_FORMAT))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    return handler


def get_file_handler(log_file: Path, max_bytes: int = MAX_LOG_SIZE, backup_count: int = LOG_BACKUP_COUNT) -> logging.Handler:
    """
    Get a rotating file handler for logging.

    Args:
        log_file: Path to the log file
        max_bytes: Maximum size of log file before rotating
        backup_count: Number of backup files to keep
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))

    return handler


def get_effective_log_level(config: Optional[InventoryConfig] = None, debug: bool = False) -> int:
    """
    Determine the effective log level with priority:
    1. --debug flag
    2. Environment variables (DEBUG, INVENTORY_DEBUG, LOGLEVEL)
    3. Configuration setting
    """
    if debug:
        return logging.DEBUG

    env_level = get_environment_log_level()
    if env_level is not None:
        return env_level

    if config is not None:
        return LOG_LEVEL_MAP.get(config.log_level, logging.INFO)

    return logging.INFO


def configure_logging(
    config: Optional[InventoryConfig] = None,
    log_level: Optional[Union[int, str, LogLevel]] = None,
    log_file: Optional[Path] = None,
    debug: bool = False,
) -> None:
    """
    Configure application logging.

    Args:
        config: Application configuration (optional)
        log_level: Level given on the command line; beats the environment and the config
        log_file: Override log file path
        debug: Force debug level, whatever ``log_level`` says
    """
    config = config or InventoryConfig()

    if debug or log_level is None:
        effective_level = get_effective_log_level(config, debug)
    elif isinstance(log_level, LogLevel):
        effective_level = LOG_LEVEL_MAP[log_level]
    elif isinstance(log_level, str):
        numeric_level = getattr(logging, log_level.upper(), None)
        effective_level = numeric_level if isinstance(numeric_level, int) else logging.INFO
    else:
        effective_level = log_level

    effective_log_file = log_file or config.log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(effective_level)

    # Replace only the handlers a previous call installed
    for handler in list(root_logger.handlers):
        if getattr(handler, "_inventorystore", False):
            root_logger.removeHandler(handler)
            handler.close()

    handlers = [get_console_handler(rich=config.color_output)]
    if effective_log_file:
        handlers.append(get_file_handler(Path(effective_log_file)))
    for handler in handlers:
        handler._inventorystore = True
        root_logger.addHandler(handler)

    app_logger = logging.getLogger(APP_NAME)
    app_logger.debug(f"Logging configured at level {logging.getLevelName(effective_level)}")
    if effective_log_file:
        app_logger.debug(f"Logging to file: {effective_log_file}")


# Module-level logger for convenience
logger = logging.getLogger(APP_NAME)
