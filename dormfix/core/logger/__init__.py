"""
DormFix logger: rotating JSON file + console.

Usage:
    from dormfix.core.logger import configure, LoggerConfig

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/dormfix"))
    # or from LOG_* env vars
    configure()

Modules log through ``logging.getLogger(__name__)``; names under ``dormfix``
inherit the configured handlers. Triage context can be attached with
``extra={"conversation_id": ...}`` and is lifted into the JSON record.
"""
from dormfix.core.logger.config import LoggerConfig
from dormfix.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from dormfix.core.logger.setup import (
    build_console_handler,
    build_rotating_file_handler,
    configure,
    get_logger,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
    "build_rotating_file_handler",
    "build_console_handler",
]
