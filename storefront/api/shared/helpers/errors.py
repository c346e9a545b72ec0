"""Error handling utilities for API responses.

Provides safe error messages that don't leak internal implementation details
and standardized error codes clients can switch on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from storefront.exceptions import (
    ConflictError,
    InsufficientInventoryError,
    NotFoundError,
    PaymentError,
    PermissionDeniedError,
    ReferralError,
    StorefrontError,
    ValidationError,
)
from storefront.logging_config import get_context, get_logger

logger = get_logger(__name__)


# =============================================================================
# Error Codes - Machine-readable codes for client handling and support
# =============================================================================


class ErrorCode(str, Enum):
    """Standardized error codes for API responses.

    Format: ERR_{CATEGORY}_{NUMBER}
    """

    # Authentication errors
    AUTH_REQUIRED = "ERR_AUTH_001"
    AUTH_INVALID_CREDENTIALS = "ERR_AUTH_002"
    AUTH_FORBIDDEN = "ERR_AUTH_003"
    AUTH_ADMIN_REQUIRED = "ERR_AUTH_004"

    # Validation errors
    VAL_INVALID_INPUT = "ERR_VAL_001"
    VAL_QUANTITY = "ERR_VAL_002"
    VAL_EMPTY_CART = "ERR_VAL_003"

    # Resource errors
    RES_NOT_FOUND = "ERR_RES_001"
    RES_ALREADY_EXISTS = "ERR_RES_002"
    RES_CONFLICT = "ERR_RES_003"

    # Inventory errors
    INV_INSUFFICIENT = "ERR_INV_001"

    # Referral errors
    REF_INVALID = "ERR_REF_001"

    # Payment errors
    PAY_FAILED = "ERR_PAY_001"
    PAY_CARD_DECLINED = "ERR_PAY_002"
    PAY_NOT_CONFIGURED = "ERR_PAY_003"
    PAY_WEBHOOK_INVALID = "ERR_PAY_004"

    # Rate limiting errors
    LIMIT_RATE_EXCEEDED = "ERR_LIMIT_001"

    # System errors
    SYS_INTERNAL_ERROR = "ERR_SYS_001"
    SYS_UPSTREAM_UNAVAILABLE = "ERR_SYS_002"

    UNKNOWN = "ERR_UNKNOWN"


@dataclass
class ErrorInfo:
    """Complete error information for API responses."""

    code: ErrorCode
    message: str
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


def _info(code: ErrorCode, message: str, status_code: int) -> ErrorInfo:
    return ErrorInfo(code=code, message=message, status_code=status_code)


ERROR_REGISTRY: Dict[ErrorCode, ErrorInfo] = {
    info.code: info
    for info in (
        _info(ErrorCode.AUTH_REQUIRED, "Authentication required.", status.HTTP_401_UNAUTHORIZED),
        _info(
            ErrorCode.AUTH_INVALID_CREDENTIALS,
            "Invalid username or password.",
            status.HTTP_401_UNAUTHORIZED,
        ),
        _info(
            ErrorCode.AUTH_FORBIDDEN,
            "You do not have permission to access this resource.",
            status.HTTP_403_FORBIDDEN,
        ),
        _info(ErrorCode.AUTH_ADMIN_REQUIRED, "Administrator role required.", status.HTTP_403_FORBIDDEN),
        _info(ErrorCode.VAL_INVALID_INPUT, "Invalid input.", status.HTTP_400_BAD_REQUEST),
        _info(ErrorCode.VAL_QUANTITY, "Quantity must be at least 1.", status.HTTP_400_BAD_REQUEST),
        _info(ErrorCode.VAL_EMPTY_CART, "Your cart is empty.", status.HTTP_400_BAD_REQUEST),
        _info(
            ErrorCode.RES_NOT_FOUND,
            "The requested resource was not found.",
            status.HTTP_404_NOT_FOUND,
        ),
        _info(
            ErrorCode.RES_ALREADY_EXISTS,
            "A resource with this identifier already exists.",
            status.HTTP_409_CONFLICT,
        ),
        _info(ErrorCode.RES_CONFLICT, "The request conflicts with current state.", status.HTTP_409_CONFLICT),
        _info(ErrorCode.INV_INSUFFICIENT, "Not enough stock available.", status.HTTP_409_CONFLICT),
        _info(ErrorCode.REF_INVALID, "This referral code cannot be used.", status.HTTP_400_BAD_REQUEST),
        _info(
            ErrorCode.PAY_FAILED,
            "Failed to process payment. Please try again.",
            status.HTTP_402_PAYMENT_REQUIRED,
        ),
        _info(ErrorCode.PAY_CARD_DECLINED, "Your card was declined.", status.HTTP_402_PAYMENT_REQUIRED),
        _info(
            ErrorCode.PAY_NOT_CONFIGURED,
            "Payments are not available right now.",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        ),
        _info(ErrorCode.PAY_WEBHOOK_INVALID, "Invalid webhook payload.", status.HTTP_400_BAD_REQUEST),
        _info(
            ErrorCode.LIMIT_RATE_EXCEEDED,
            "Too many requests. Please slow down.",
            status.HTTP_429_TOO_MANY_REQUESTS,
        ),
        _info(
            ErrorCode.SYS_INTERNAL_ERROR,
            "An unexpected error occurred.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ),
        _info(
            ErrorCode.SYS_UPSTREAM_UNAVAILABLE,
            "An upstream service is unavailable. Please try again later.",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        ),
        _info(ErrorCode.UNKNOWN, "An error occurred. Please try again.", status.HTTP_500_INTERNAL_SERVER_ERROR),
    )
}


def get_error_info(error_code: ErrorCode) -> ErrorInfo:
    """Get error information for a given error code."""
    return ERROR_REGISTRY.get(error_code, ERROR_REGISTRY[ErrorCode.UNKNOWN])


def create_error_response(
    error_code: ErrorCode,
    detail: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a standardized error body.

    Returns:
        Dict with error, detail, error_code and correlation_id fields
    """
    error_info = get_error_info(error_code)
    return {
        "error": error_code.name.lower(),
        "detail": detail or error_info.message,
        "error_code": error_code.value,
        "correlation_id": get_context().get("correlation_id"),
    }


class APIError(HTTPException):
    """HTTPException carrying a standardized error code.

    Response body:
    {
        "error": "error_type",
        "detail": "Human-readable message",
        "error_code": "ERR_XXX_NNN",
        "correlation_id": "..."
    }
    """

    def __init__(
        self,
        error_code: ErrorCode,
        detail: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        error_info = get_error_info(error_code)
        self.error_code = error_code
        super().__init__(
            status_code=error_info.status_code,
            detail=create_error_response(error_code, detail),
            headers=headers,
        )


# Most specific classes first
_DOMAIN_ERROR_CODES: tuple[tuple[type[StorefrontError], ErrorCode], ...] = (
    (InsufficientInventoryError, ErrorCode.INV_INSUFFICIENT),
    (ReferralError, ErrorCode.REF_INVALID),
    (NotFoundError, ErrorCode.RES_NOT_FOUND),
    (PermissionDeniedError, ErrorCode.AUTH_FORBIDDEN),
    (ConflictError, ErrorCode.RES_CONFLICT),
    (PaymentError, ErrorCode.PAY_FAILED),
    (ValidationError, ErrorCode.VAL_INVALID_INPUT),
)


def error_code_for(exc: StorefrontError) -> ErrorCode:
    """Map a domain exception to its API error code."""
    for exc_type, code in _DOMAIN_ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return ErrorCode.UNKNOWN


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Exception handler translating domain errors into JSON error responses."""
    code = error_code_for(exc)
    info = get_error_info(code)
    logger.info(
        f"{type(exc).__name__}: {exc.message}",
        extra={"path": request.url.path, "error_code": code.value},
    )
    body = create_error_response(code, exc.message)
    if exc.suggestion:
        body["suggestion"] = exc.suggestion
    # Same envelope as HTTPException responses
    return JSONResponse(status_code=info.status_code, content={"detail": body})
