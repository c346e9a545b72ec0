"""FastAPI application for the storefront API."""

import os
from contextlib import asynccontextmanager
from typing import Any, Optional

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.middleware.sessions import SessionMiddleware

from storefront import __version__
from storefront.api.routes import (
    addresses,
    admin,
    auth,
    cart,
    categories,
    chatbot,
    orders,
    products,
    referrals,
    webhooks,
)
from storefront.api.shared.helpers.errors import (
    ErrorCode,
    create_error_response,
    storefront_error_handler,
)
from storefront.api.shared.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from storefront.config import StorefrontConfig, get_config
from storefront.db.session import close_db, get_engine
from storefront.exceptions import StorefrontError
from storefront.http_client import close_clients
from storefront.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

HEALTH_PATHS = ("/health", "/health/ready", "GET /health", "GET /health/ready")


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """Probes are polled constantly; never trace them."""
    transaction_name = sampling_context.get("transaction_context", {}).get("name", "")
    if transaction_name in HEALTH_PATHS:
        return 0.0
    return float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))


def _init_sentry(environment: str) -> None:
    """Report errors and traces to Sentry when SENTRY_DSN is set."""
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.info("Error reporting off (no SENTRY_DSN)")
        return

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,
        release=os.getenv("RELEASE_VERSION", __version__),
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        send_default_pii=False,
        traces_sampler=_traces_sampler,
    )
    logger.info("Sentry SDK initialized", extra={"environment": environment})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Set up logging and warn about missing integrations; release pools on shutdown."""
    config: StorefrontConfig = app.state.config
    # Servers started by uvicorn directly or by a reloader never ran the CLI setup
    configure_logging(
        level=config.logging.level,
        json_output=config.logging.format == "json",
        log_file=config.logging.file,
    )
    logger.info("Starting storefront API")
    for name in config.missing_integrations():
        logger.warning(f"{name} is not set; the related feature is disabled or degraded")
    yield
    await close_clients()
    await close_db()
    logger.info("Shutting down storefront API")


OPENAPI_TAGS = [
    {"name": "auth", "description": "Registration, login and the current session user."},
    {"name": "products", "description": "Product catalog browsing and admin product management."},
    {"name": "categories", "description": "Product categories."},
    {"name": "cart", "description": "Shopping cart for logged-in users and guest sessions."},
    {"name": "addresses", "description": "Saved shipping and billing addresses."},
    {"name": "orders", "description": "Checkout, payment intents and order history."},
    {"name": "webhooks", "description": "Stripe payment event delivery."},
    {"name": "admin", "description": "Administrator order management."},
    {"name": "referrals", "description": "Referral codes and redemption."},
    {"name": "chatbot", "description": "Customer support assistant."},
    {"name": "Health", "description": "Liveness and readiness probes."},
]


async def health_check():
    """Liveness: the process is up and serving."""
    return {"status": "healthy"}


async def readiness_check():
    """Readiness check verifying the database is reachable.

    Returns 200 when it is, 503 otherwise.
    """
    checks: dict[str, Any] = {}
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        checks["database"] = False
        checks["database_error"] = str(e)
        logger.warning(f"Database health check failed: {e}")

    healthy = checks["database"] is True
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ready" if healthy else "not_ready", "checks": checks},
    )


def create_app(config: Optional[StorefrontConfig] = None) -> FastAPI:
    """Build the API application.

    Args:
        config: Settings to use; defaults to the process-wide configuration
    """
    config = config or get_config()
    _init_sentry(config.server.environment)

    app = FastAPI(
        title="Storefront API",
        description="Product catalog, cart, checkout and support chat for the storefront.",
        version=__version__,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Total-Count", "X-Request-ID"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session.secret,
        session_cookie=config.session.cookie_name,
        max_age=config.session.max_age,
        https_only=config.session.https_only,
        same_site="lax",
    )
    # Added last so it runs outermost
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    is_production = config.server.environment == "production"

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        """Anything not raised as a StorefrontError becomes a 500 envelope."""
        sentry_sdk.capture_exception(exc)
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)

        # Hide internals from shoppers outside development
        detail = "Something went wrong on our side. Please try again." if is_production else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": create_error_response(ErrorCode.SYS_INTERNAL_ERROR, detail)},
        )

    for module in (
        auth,
        products,
        categories,
        cart,
        addresses,
        orders,
        webhooks,
        admin,
        referrals,
        chatbot,
    ):
        app.include_router(module.router, prefix="/api")

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=get_config().server.host, port=get_config().server.port)
