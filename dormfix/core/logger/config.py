"""
Logger configuration. Build it in code or from LOG_* environment variables.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_TRUTHY = ("1", "true", "yes")
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LoggerConfig:
    """
    Configuration for the DormFix logger.

    Use LoggerConfig.from_env() for env-based config, or build explicitly.
    """

    level: str = "INFO"
    # Rotating JSON file is skipped when log_dir is None
    log_dir: Optional[str] = None
    log_file_basename: str = "dormfix"
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    # Handlers are attached to this logger; children inherit
    root_name: str = "dormfix"
    console: bool = True
    file_rotating: bool = True

    def __post_init__(self) -> None:
        if self.level.upper() not in _LEVELS:
            raise ValueError(f"level must be one of {_LEVELS}, got {self.level!r}")
        if self.max_bytes < 1024:
            raise ValueError("max_bytes must be at least 1024")
        if self.backup_count < 0:
            raise ValueError("backup_count must be non-negative")

    @classmethod
    def from_env(cls) -> "LoggerConfig":
        """Build config from LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, LOG_MAX_BYTES,
        LOG_BACKUP_COUNT, LOG_ROOT_NAME, LOG_CONSOLE and LOG_FILE_ROTATING."""
        return cls(
            level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_dir=os.environ.get("LOG_DIR") or None,
            log_file_basename=os.environ.get("LOG_FILE_BASENAME", "dormfix"),
            max_bytes=int(os.environ.get("LOG_MAX_BYTES", str(5 * 1024 * 1024))),
            backup_count=int(os.environ.get("LOG_BACKUP_COUNT", "5")),
            root_name=os.environ.get("LOG_ROOT_NAME", "dormfix"),
            console=os.environ.get("LOG_CONSOLE", "true").lower() in _TRUTHY,
            file_rotating=os.environ.get("LOG_FILE_ROTATING", "true").lower() in _TRUTHY,
        )
