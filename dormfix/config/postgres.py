"""
dormfix.config.postgres – PostgreSQL connection config (dataclass + validators).

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE,
DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from dormfix.config._validators import env_bool, positive_int


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("DATABASE_URL is required and must be non-empty")
    if not url.startswith(("postgresql://", "postgres://", "postgresql+asyncpg://")):
        raise ValueError(
            "DATABASE_URL must start with postgresql://, postgres:// or postgresql+asyncpg://"
        )
    return url


@dataclass(frozen=True)
class PostgresConfig:
    """Connection and pool settings; validated on construction."""

    url: str
    """DSN. Converted to postgresql+asyncpg in the engine."""

    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "dormfix"

    def __post_init__(self) -> None:
        _validate_url(self.url)
        positive_int(self.pool_size, "pool_size")
        positive_int(self.max_overflow, "max_overflow", min_val=0)
        positive_int(self.pool_timeout, "pool_timeout")
        positive_int(self.pool_recycle, "pool_recycle")
        if not self.application_name.strip():
            raise ValueError("application_name must be a non-empty string")

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """Build config from environment; keyword overrides take precedence."""

        def _pick(attr: str, var: str, default: object) -> object:
            value = overrides.get(attr)
            return value if value is not None else os.environ.get(var, default)

        return cls(
            url=_validate_url(str(_pick("url", "DATABASE_URL", "postgresql://localhost/dormfix"))),
            pool_size=int(_pick("pool_size", "DB_POOL_SIZE", 10)),
            max_overflow=int(_pick("max_overflow", "DB_MAX_OVERFLOW", 20)),
            pool_timeout=int(_pick("pool_timeout", "DB_POOL_TIMEOUT", 30)),
            pool_recycle=int(_pick("pool_recycle", "DB_POOL_RECYCLE", 1800)),
            echo=env_bool(_pick("echo", "DB_ECHO", False)),
            application_name=str(_pick("application_name", "DB_APPLICATION_NAME", "dormfix")),
        )


def load_postgres_config(**overrides: object) -> PostgresConfig:
    """Load and validate PostgreSQL config. Raises ValueError on invalid values."""
    return PostgresConfig.from_env(**overrides)
