"""Async engine and request-scoped sessions.

The engine is built on first use from the ``database`` section of the
configuration, with the ``DATABASE_*`` environment variables taking
precedence. Routes get a session via the ``get_db`` dependency; the CLI and
jobs open ``async_session_factory()`` themselves.
"""

import dataclasses
import ssl
from typing import AsyncGenerator, Optional

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storefront.config import DatabaseConfig, get_config, load_config_from_env
from storefront.logging_config import get_logger

logger = get_logger(__name__)

# sslmode values that ask for an encrypted connection
_SSL_MODES = ("require", "verify-ca", "verify-full")

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker] = None


def resolve_database_url(raw: str) -> tuple[URL, dict]:
    """Turn a libpq-style URL into an asyncpg URL plus connect_args.

    Hosting providers hand out ``postgres://`` / ``postgresql://`` URLs with
    ``?sslmode=...``; asyncpg needs its own driver name and an SSL context
    instead of the query parameter. Other backends (SQLite in tests) pass
    through unchanged.

    Returns:
        Tuple of (url, connect_args)
    """
    url = make_url(raw)
    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+asyncpg")
    if not url.drivername.startswith("postgresql"):
        return url, {}

    sslmode = url.query.get("sslmode")
    if sslmode is None:
        return url, {}
    url = url.difference_update_query(["sslmode"])

    connect_args: dict = {}
    if sslmode in _SSL_MODES:
        context = ssl.create_default_context()
        if sslmode == "require":
            # Encrypted, certificate not checked
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = context
    return url, connect_args


def database_settings() -> DatabaseConfig:
    """The configured ``database`` section with env overrides applied."""
    overrides = load_config_from_env().get("database", {})
    return dataclasses.replace(get_config().database, **overrides)


def _engine_options(url: URL, settings: DatabaseConfig) -> dict:
    options: dict = {"echo": settings.echo, "pool_pre_ping": True}
    if url.get_backend_name() != "sqlite":
        options["pool_size"] = settings.pool_size
        options["max_overflow"] = settings.max_overflow
    return options


def get_engine() -> AsyncEngine:
    """The process-wide engine, created on first use or after ``close_db``."""
    global _engine
    if _engine is None:
        settings = database_settings()
        url, connect_args = resolve_database_url(settings.url)
        _engine = create_async_engine(
            url,
            connect_args=connect_args,
            **_engine_options(url, settings),
        )
        logger.debug(f"Created database engine for {url.render_as_string(hide_password=True)}")
    return _engine


def async_session_factory() -> AsyncSession:
    """A new session on the shared engine; use it as an async context manager."""
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _sessionmaker()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for one request.

    Everything the handler does is a single transaction, committed after it
    returns and rolled back if it raises, so checkout's stock changes, order
    rows and cart clearing land together or not at all.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_all() -> None:
    """Create missing tables (``storefront db init``); deployments use Alembic."""
    from storefront.db.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def close_db() -> None:
    global _engine, _sessionmaker
    engine, _engine, _sessionmaker = _engine, None, None
    if engine is not None:
        await engine.dispose()
        logger.info("Database connections closed")
