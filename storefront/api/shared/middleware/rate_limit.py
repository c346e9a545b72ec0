"""Rate limiting for expensive endpoints.

Usage:
    from storefront.api.shared.middleware.rate_limit import limiter

    @router.post("/chatbot")
    @limiter.limit(CHATBOT_RATE_LIMIT)
    async def chat(request: Request, ...):
        ...

The app registers ``limiter`` on ``app.state`` and installs
``rate_limit_exceeded_handler`` for ``RateLimitExceeded``.
"""

import os

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from storefront.api.shared.helpers.errors import ErrorCode, create_error_response
from storefront.logging_config import get_logger

logger = get_logger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the standard error envelope, with a Retry-After hint."""
    logger.warning(
        f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}",
        extra={"limit": str(exc.detail)},
    )
    body = create_error_response(
        ErrorCode.LIMIT_RATE_EXCEEDED,
        f"Rate limit exceeded: {exc.detail}",
    )
    return JSONResponse(
        status_code=429,
        content={"detail": body},
        headers={"Retry-After": "60"},
    )
