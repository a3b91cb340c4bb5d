"""Retry policy: exponential backoff around async API calls."""

from __future__ import annotations

import asyncio
import logging
import math
import socket
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from embedres.errors.exceptions import (
    CorruptPayloadError,
    InvalidIdentifierError,
    PermanentRemoteError,
    ResourceNotFoundError,
    TransientNetworkError,
)
from embedres.types import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TERMINAL_EXCEPTIONS = (
    InvalidIdentifierError,
    ResourceNotFoundError,
    PermanentRemoteError,
    CorruptPayloadError,
)

_RETRYABLE_TRANSPORT_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)


def calculate_delay(attempt: int, base_delay: float, max_delay: float | None = None) -> float:
    """Backoff before retry number ``attempt`` (1-based): base * 2^(n-1), capped."""
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    cap = math.inf if max_delay is None else max_delay
    return min(base_delay * (2 ** (attempt - 1)), cap)


def is_retryable_error(exc: BaseException) -> bool:
    """Default classifier: network/timeout failures and HTTP 5xx only."""
    if isinstance(exc, TransientNetworkError):
        return True
    if isinstance(exc, _TERMINAL_EXCEPTIONS):
        return False
    if isinstance(exc, _RETRYABLE_TRANSPORT_EXCEPTIONS):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500

    status = getattr(exc, "http_status", None)
    if status is None:
        status = getattr(exc, "status", None)
    if isinstance(status, int) and not isinstance(status, bool):
        # status 0 is how request layers report "no response at all"
        return status == 0 or status >= 500
    return False


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    *,
    should_retry: Callable[[BaseException], bool] | None = None,
    on_retry: Callable[[BaseException, int], None] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    context: str = "operation",
) -> T:
    """Run ``operation`` with retry + exponential backoff.

    On retryable errors: call ``on_retry(error, retry_number)``, wait
    ``calculate_delay(retry_number, ...)`` and try again, up to
    ``config.max_attempts`` attempts in total.
    On non-retryable errors, or once attempts run out: re-raise the
    original exception.
    """
    config = config or RetryConfig()
    predicate = should_retry or is_retryable_error

    def _wait(retry_state: RetryCallState) -> float:
        return calculate_delay(retry_state.attempt_number, config.base_delay, config.max_delay)

    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.info(
            "%s failed (attempt %d/%d), retrying in %.2fs: %s",
            context,
            retry_state.attempt_number,
            config.max_attempts,
            delay,
            exc,
        )
        if on_retry is not None and exc is not None:
            on_retry(exc, retry_state.attempt_number)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=_wait,
        retry=retry_if_exception(predicate),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )

    try:
        return await retrying(operation)
    except Exception as exc:
        if predicate(exc):
            logger.warning(
                "%s: all %d attempts failed: %s", context, config.max_attempts, exc
            )
        else:
            logger.debug("%s failed with non-retryable error: %s", context, exc)
        raise
