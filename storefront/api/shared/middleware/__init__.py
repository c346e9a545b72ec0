"""Middleware shared by all API routes."""

from .correlation import CorrelationIdMiddleware
from .rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
]
