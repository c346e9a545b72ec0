"""Shared API helper functions."""

from .errors import APIError, ErrorCode, create_error_response

__all__ = [
    "APIError",
    "ErrorCode",
    "create_error_response",
]
