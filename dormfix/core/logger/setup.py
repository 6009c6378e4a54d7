"""
Logger setup: attach the console and rotating JSON file handlers from config.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from dormfix.core.logger.config import LoggerConfig
from dormfix.core.logger.formatters import JsonFormatter, PlainConsoleFormatter

_default_config: Optional[LoggerConfig] = None


def configure(config: Optional[LoggerConfig] = None) -> logging.Logger:
    """
    Configure the package root logger. Uses LoggerConfig.from_env() when no
    config is given. Safe to call more than once (handlers are replaced).
    """
    global _default_config
    if config is None:
        config = LoggerConfig.from_env()
    _default_config = config

    level = getattr(logging, config.level.upper(), logging.INFO)
    root = logging.getLogger(config.root_name)
    root.setLevel(level)
    root.handlers.clear()

    if config.console:
        root.addHandler(build_console_handler(config.level))

    if config.file_rotating and config.log_dir:
        try:
            root.addHandler(
                build_rotating_file_handler(
                    config.log_dir,
                    basename=config.log_file_basename,
                    max_bytes=config.max_bytes,
                    backup_count=config.backup_count,
                    level=config.level,
                )
            )
        except OSError:
            root.warning("Could not create log dir %s, skipping file handler", config.log_dir)

    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger, configuring the package root from env on first use."""
    if _default_config is None:
        configure()
    return logging.getLogger(name)


def build_rotating_file_handler(
    log_dir: str,
    basename: str = "dormfix",
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
    level: str = "INFO",
) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, f"{basename}.log"),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(JsonFormatter())
    return handler


def build_console_handler(level: str = "INFO", fmt: Optional[str] = None) -> logging.StreamHandler:
    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler.setFormatter(PlainConsoleFormatter(fmt=fmt))
    return handler
