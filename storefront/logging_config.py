"""Logging configuration for Storefront.

Provides a single ``configure_logging`` entry point used by the API server and
the CLI. Records carry request-scoped context (correlation id, user id) pulled
from context variables, so every log line emitted while handling a request can
be tied back to it.

Usage:
    from storefront.logging_config import get_logger, LogContext

    logger = get_logger(__name__)

    with LogContext(operation="sync", source="rakuten"):
        logger.info("Starting catalog sync")

Batch jobs use structlog, which is configured by the same call so both
styles share the level and output format.
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "storefront_log_context", default={}
)

# Attributes present on every LogRecord; anything else came from ``extra=``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def set_context(**kwargs: Any) -> None:
    """Add key/value pairs to the current logging context."""
    context = dict(_log_context.get())
    context.update(kwargs)
    _log_context.set(context)


def clear_context() -> None:
    """Remove all values from the current logging context."""
    _log_context.set({})


def get_context() -> Dict[str, Any]:
    """Return a copy of the current logging context."""
    return dict(_log_context.get())


class LogContext:
    """Context manager that scopes logging context values to a block."""

    def __init__(self, **kwargs: Any):
        self.values = kwargs
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "LogContext":
        context = dict(_log_context.get())
        context.update(self.values)
        self._token = _log_context.set(context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


class ContextFilter(logging.Filter):
    """Attach context variables to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """Format records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """Readable single-line format with trailing context fields."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        return line


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure root logging and structlog.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines instead of human-readable output
        log_file: Optional file to write logs to in addition to stderr
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter: logging.Formatter = JSONFormatter() if json_output else HumanFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        root.addHandler(handler)
    root.setLevel(numeric_level)

    # Quiet noisy libraries
    for name in ("httpx", "httpcore", "sqlalchemy.engine", "stripe"):
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
            if json_output
            else structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> logging.Logger:
    """Return a standard library logger for ``name``."""
    return logging.getLogger(name)

