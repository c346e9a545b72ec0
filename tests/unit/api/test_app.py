"""Tests for the assembled application: health checks and middleware."""

from unittest.mock import patch

import httpx
import pytest

from storefront.api.app import create_app, lifespan
from storefront.db.session import get_db


@pytest.fixture
def app(storefront_config, db_session):
    application = create_app(storefront_config)

    async def override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    return application


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestHealth:
    async def test_liveness(self, app):
        async with _client(app) as client:
            response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_readiness(self, app):
        async with _client(app) as client:
            response = await client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] is True


class TestCorrelationId:
    async def test_echoes_request_id(self, app):
        async with _client(app) as client:
            response = await client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    async def test_generates_request_id(self, app):
        async with _client(app) as client:
            response = await client.get("/health")
        assert response.headers["X-Request-ID"]

    async def test_error_body_carries_request_id(self, app):
        async with _client(app) as client:
            response = await client.get("/api/products/999999", headers={"X-Request-ID": "req-404"})
        assert response.status_code == 404
        assert response.json()["detail"]["correlation_id"] == "req-404"


class TestRoutesMounted:
    async def test_public_catalog(self, app):
        async with _client(app) as client:
            products = await client.get("/api/products")
            categories = await client.get("/api/categories")
        assert products.status_code == 200
        assert products.headers["X-Total-Count"] == "0"
        assert categories.json() == []

    async def test_guest_cart_sets_session_cookie(self, app, storefront_config):
        async with _client(app) as client:
            response = await client.get("/api/cart")
        assert response.status_code == 200
        assert storefront_config.session.cookie_name in response.cookies

    async def test_user_requires_session(self, app):
        async with _client(app) as client:
            response = await client.get("/api/user")
        assert response.status_code == 401


class TestLifespan:
    async def test_configures_logging_from_config(self, storefront_config):
        storefront_config.logging.level = "WARNING"
        storefront_config.logging.format = "json"
        application = create_app(storefront_config)

        with patch("storefront.api.app.configure_logging") as configure:
            async with lifespan(application):
                pass

        configure.assert_called_once_with(level="WARNING", json_output=True, log_file=None)
