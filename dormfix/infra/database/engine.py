"""
dormfix.infra.database.engine – Async SQLAlchemy 2.0 engine, session factory, schema bootstrap.

Accepts PostgresConfig; if not provided, loads from env via load_postgres_config().

On first run, ensure_database_exists() creates the target database when it is
missing (connects to "postgres", then CREATE DATABASE).
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse, urlunparse

import asyncpg
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Registers every ORM model with Base.metadata before create_all()
import dormfix.infra.database.models  # noqa: F401
from dormfix.infra.database.models.base import Base

if TYPE_CHECKING:
    from dormfix.config import PostgresConfig

logger = logging.getLogger(__name__)

_DBNAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _make_async_url(url: str) -> str:
    """Convert postgresql:// or postgres:// to postgresql+asyncpg://."""
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix) and "+asyncpg" not in url:
            return url.replace(prefix, "postgresql+asyncpg://", 1)
    return url


def _split_db_url(url: str) -> tuple[str, str]:
    """Return (target database name, URL of the maintenance 'postgres' database)."""
    parsed = urlparse(url.replace("+asyncpg", ""))
    dbname = (parsed.path or "/postgres").strip("/").split("?")[0].strip() or "postgres"
    postgres_url = urlunparse((parsed.scheme, parsed.netloc, "/postgres", parsed.params, parsed.query, parsed.fragment))
    return dbname, postgres_url


def _load_config(config: Optional["PostgresConfig"]) -> "PostgresConfig":
    if config is not None:
        return config
    from dormfix.config import load_postgres_config
    return load_postgres_config()


async def ensure_database_exists(config: Optional["PostgresConfig"] = None) -> None:
    """Create the target database if it does not exist yet.

    Only names matching [a-zA-Z_][a-zA-Z0-9_]* are created.
    """
    config = _load_config(config)
    dbname, postgres_url = _split_db_url(config.url)
    if dbname == "postgres":
        return
    if not _DBNAME_PATTERN.match(dbname):
        logger.warning("ensure_database_exists: skipping unsafe database name %r", dbname)
        return
    try:
        conn = await asyncpg.connect(postgres_url)
    except (OSError, asyncpg.PostgresError) as exc:
        logger.debug("ensure_database_exists: cannot reach postgres (%s), skipping", exc)
        return
    try:
        row = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname)
        if row is None:
            await conn.execute(f'CREATE DATABASE "{dbname}"')
            logger.info("Database created: %s", dbname)
    finally:
        await conn.close()


def build_engine(
    config: Optional["PostgresConfig"] = None,
    *,
    echo: Optional[bool] = None,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """
    Create and cache the async SQLAlchemy engine.

    Args:
        config: PostgresConfig (url, pool_size, etc.). If None, loaded from env.
        echo: Override SQL echo (default: use config.echo).
        use_null_pool: Use NullPool (e.g. for tests).
    """
    global _engine
    if _engine is not None:
        return _engine

    config = _load_config(config)
    url = _make_async_url(config.url)
    connect_args: dict = {
        "server_settings": {
            "application_name": config.application_name,
            "jit": "off",
        }
    }
    do_echo = echo if echo is not None else config.echo

    if use_null_pool:
        _engine = create_async_engine(url, echo=do_echo, poolclass=NullPool, connect_args=connect_args)
        logger.info("AsyncEngine created with NullPool (test mode)")
    else:
        _engine = create_async_engine(
            url,
            echo=do_echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        logger.info(
            "AsyncEngine created: pool_size=%d max_overflow=%d",
            config.pool_size, config.max_overflow,
        )
    return _engine


def build_session_factory(
    engine: Optional[AsyncEngine] = None,
) -> async_sessionmaker[AsyncSession]:
    """Create async session factory bound to engine."""
    global _session_factory
    if _session_factory is not None:
        return _session_factory
    if engine is None:
        engine = build_engine()
    _session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    logger.debug("AsyncSessionFactory created")
    return _session_factory


async def init_db(
    config: Optional["PostgresConfig"] = None,
    *,
    drop_all: bool = False,
) -> None:
    """Create all ORM tables. For dev/test only; use Alembic in production."""
    engine = build_engine(_load_config(config))
    async with engine.begin() as conn:
        if drop_all:
            logger.warning("Dropping all ORM tables (drop_all=True)")
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Creating ORM tables")
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialised successfully")


async def close_engine() -> None:
    """Dispose the connection pool. Call on app shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("AsyncEngine disposed")
        _engine = None
        _session_factory = None
