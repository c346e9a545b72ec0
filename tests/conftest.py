"""Global pytest configuration and fixtures.

This module provides shared fixtures and configuration for all tests.
Tests run against an in-memory SQLite database through aiosqlite, so no
PostgreSQL server is needed.
"""

import os
import sys
from pathlib import Path
from typing import Any, Optional

# Takes precedence over the configured database wherever the app opens one
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

import httpx
import pytest
from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from starlette.middleware.sessions import SessionMiddleware


# =============================================================================
# Path Setup
# =============================================================================

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from storefront.api.shared.auth import get_optional_user  # noqa: E402
from storefront.api.shared.helpers.errors import storefront_error_handler  # noqa: E402
from storefront.api.shared.middleware import limiter, rate_limit_exceeded_handler  # noqa: E402
from storefront.config import StorefrontConfig, set_config  # noqa: E402
from storefront.db.models import Base  # noqa: E402
from storefront.db.session import get_db  # noqa: E402
from storefront.exceptions import StorefrontError  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SESSION_SECRET = "test-session-secret"


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (may require external services)"
    )


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture(autouse=True)
def storefront_config() -> StorefrontConfig:
    """Use built-in defaults so local config files and env vars never leak in."""
    config = StorefrontConfig()
    set_config(config)
    limiter.reset()
    return config


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def db_engine():
    """Fresh in-memory database with every table created.

    pysqlite's implicit transaction handling breaks SAVEPOINTs, so the driver
    is put in autocommit mode and SQLAlchemy emits BEGIN itself.
    """
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncSession:
    """Session bound to the test database, rolled back afterwards."""
    factory = async_sessionmaker(db_engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# API Fixtures
# =============================================================================


class AuthState:
    """Who the test app treats as logged in (None for a guest)."""

    def __init__(self) -> None:
        self.user: Optional[Any] = None


@pytest.fixture
def auth_state() -> AuthState:
    return AuthState()


@pytest.fixture
def make_client(db_session, auth_state):
    """Build an httpx client for a minimal app mounting ``routers`` under /api.

    The app shares ``db_session`` with the test. Unless ``real_auth`` is set,
    the current user is whatever ``auth_state.user`` holds.

    Usage:
        async with make_client(cart.router) as client:
            response = await client.get("/api/cart")
    """

    def factory(*routers, real_auth: bool = False, overrides: Optional[dict] = None) -> httpx.AsyncClient:
        app = FastAPI()
        app.state.limiter = limiter
        app.add_middleware(SessionMiddleware, secret_key=TEST_SESSION_SECRET)
        app.add_exception_handler(StorefrontError, storefront_error_handler)
        app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
        for router in routers:
            app.include_router(router, prefix="/api")

        async def override_get_db():
            yield db_session

        async def override_user():
            return auth_state.user

        app.dependency_overrides[get_db] = override_get_db
        if not real_auth:
            app.dependency_overrides[get_optional_user] = override_user
        app.dependency_overrides.update(overrides or {})

        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://test",
        )

    return factory
