"""Pooled HTTP access to supplier APIs.

Rakuten and Wholesale2B calls go through one shared ``httpx.AsyncClient``
so repeated sync runs reuse connections:

    from storefront.http_client import get_async_client, request_with_retry

    client = await get_async_client()
    response = await request_with_retry(client, "GET", url, params={...})

The API lifespan and the CLI call ``close_clients()`` when they finish.
"""

import asyncio
import os
import random
from dataclasses import dataclass
from typing import Optional

import httpx

from storefront.logging_config import get_logger

logger = get_logger(__name__)

POOL_SIZE = int(os.environ.get("SUPPLIER_HTTP_POOL_SIZE", "20"))
CONNECT_TIMEOUT = float(os.environ.get("SUPPLIER_HTTP_CONNECT_TIMEOUT", "10.0"))
READ_TIMEOUT = float(os.environ.get("SUPPLIER_HTTP_READ_TIMEOUT", "30.0"))

USER_AGENT = "storefront-catalog-sync/0.1"

_shared: Optional[httpx.AsyncClient] = None
_shared_lock: Optional[asyncio.Lock] = None


def _lock() -> asyncio.Lock:
    global _shared_lock
    if _shared_lock is None:
        _shared_lock = asyncio.Lock()
    return _shared_lock


def create_async_client(**overrides) -> httpx.AsyncClient:
    """New client with the supplier timeouts, pool limits and User-Agent."""
    options = {
        "timeout": httpx.Timeout(READ_TIMEOUT, connect=CONNECT_TIMEOUT),
        "limits": httpx.Limits(
            max_connections=POOL_SIZE,
            max_keepalive_connections=POOL_SIZE // 2,
        ),
        "http2": True,
        "follow_redirects": True,
        "headers": {"User-Agent": USER_AGENT},
    }
    options.update(overrides)
    return httpx.AsyncClient(**options)


async def get_async_client() -> httpx.AsyncClient:
    """The process-wide client, opened on first use or after ``close_clients``."""
    global _shared
    async with _lock():
        if _shared is None or _shared.is_closed:
            _shared = create_async_client()
            logger.debug(f"Opened supplier HTTP pool (size {POOL_SIZE})")
    return _shared


async def close_clients() -> None:
    global _shared
    client, _shared = _shared, None
    if client is not None and not client.is_closed:
        await client.aclose()
        logger.info("Closed supplier HTTP pool")


# =============================================================================
# Retries
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to wait before repeating a supplier request.

    Only rate limiting (429), upstream 5xx and network errors are retried.
    Waits grow exponentially from ``base_delay`` with a little jitter and
    never exceed ``max_delay``; a numeric ``Retry-After`` header wins.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 30.0
    retry_statuses: frozenset = frozenset({429, 500, 502, 503, 504})

    def backoff_delay(self, retry: int) -> float:
        delay = self.base_delay * (self.backoff ** retry)
        return min(delay * random.uniform(1.0, 1.25), self.max_delay)

    def delay_for(self, retry: int, response: httpx.Response) -> float:
        header = response.headers.get("Retry-After")
        if header:
            try:
                return min(float(header), self.max_delay)
            except ValueError:
                logger.debug(f"Ignoring non-numeric Retry-After {header!r}")
        return self.backoff_delay(retry)


DEFAULT_RETRY_POLICY = RetryPolicy()


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    **kwargs,
) -> httpx.Response:
    """Send a request, repeating it on transient failures.

    Args:
        client: Client to send with
        method: HTTP method
        url: Absolute URL
        policy: Retry limits and delays
        **kwargs: Forwarded to ``client.request``

    Returns:
        The first response with a status below 400

    Raises:
        httpx.HTTPStatusError: For a non-retryable status, or a retryable one
            on the last attempt
        httpx.RequestError: For a network failure on the last attempt
    """
    attempts = policy.max_retries + 1
    for retry in range(attempts):
        last_attempt = retry == attempts - 1
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            if last_attempt:
                raise
            wait = policy.backoff_delay(retry)
            logger.warning(
                f"{method} {url} failed ({type(e).__name__}: {e}); "
                f"retry {retry + 1}/{policy.max_retries} in {wait:.1f}s"
            )
            await asyncio.sleep(wait)
            continue

        if response.status_code < 400:
            return response
        if last_attempt or response.status_code not in policy.retry_statuses:
            response.raise_for_status()

        wait = policy.delay_for(retry, response)
        logger.warning(
            f"{method} {url} answered {response.status_code}; "
            f"retry {retry + 1}/{policy.max_retries} in {wait:.1f}s"
        )
        await asyncio.sleep(wait)

    # Unreachable: the last attempt either returns or raises
    raise AssertionError("retry loop exited without a result")
