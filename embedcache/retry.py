"""Retry logic with exponential backoff for HTTP encoder calls."""

from __future__ import annotations

import logging
import time

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_HTTP_CODES = {429, 500, 502, 503, 504}
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
)


def retry_call(
    fn,
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    **kwargs,
):
    """Call a function with exponential backoff on transient failures.

    Retries on:
    - httpx timeout/connection errors
    - HTTP 429 (rate limit) and 5xx (server errors)
    """
    last_exc = None
    for attempt in range(max_retries + 1):
        try:
            return fn(*args, **kwargs)
        except RETRYABLE_EXCEPTIONS as exc:
            last_exc = exc
            if attempt == max_retries:
                break
            delay = min(base_delay * (2**attempt), max_delay)
            logger.warning(
                "Retry %d/%d after %s: %s (waiting %.1fs)",
                attempt + 1, max_retries, type(exc).__name__, exc, delay,
            )
            time.sleep(delay)
        except httpx.HTTPStatusError as exc:
            last_exc = exc
            if exc.response.status_code not in RETRYABLE_HTTP_CODES:
                raise
            if attempt == max_retries:
                break
            # Use Retry-After header if present (rate limiting)
            retry_after = exc.response.headers.get("retry-after")
            delay = min(base_delay * (2**attempt), max_delay)
            if retry_after:
                try:
                    delay = min(float(retry_after), max_delay)
                except ValueError:
                    pass
            logger.warning(
                "Retry %d/%d after HTTP %d (waiting %.1fs)",
                attempt + 1, max_retries,
                exc.response.status_code, delay,
            )
            time.sleep(delay)

    raise last_exc  # type: ignore[misc]
