"""Request correlation ids for log and error tracing."""

import uuid

import sentry_sdk
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.logging_config import clear_context, set_context

REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with a correlation id.

    The id comes from the ``X-Request-ID`` header when the client (or a
    proxy) sends one, otherwise a new UUID is generated. It is bound into
    the logging context and Sentry scope and echoed in the response.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        set_context(correlation_id=correlation_id)
        sentry_sdk.set_tag("correlation_id", correlation_id)

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = correlation_id
            return response
        finally:
            clear_context()
