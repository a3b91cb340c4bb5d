"""Token-bucket rate limiter for requests/min against the Joplin API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token-bucket limiter on requests per minute.

    The bucket starts full and refills continuously at ``rpm_limit / 60``
    tokens per second. Each request takes one token.
    """

    def __init__(
        self,
        rpm_limit: int = 600,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rpm_limit < 1:
            raise ValueError(f"rpm_limit must be >= 1, got {rpm_limit}")
        self._rpm_limit = rpm_limit
        self._clock = clock
        self._sleep = sleep

        # Bucket state
        self._tokens = float(rpm_limit)
        self._last_refill = clock()

        self._lock = asyncio.Lock()

        # Stats
        self._total_requests = 0
        self._total_wait_seconds = 0.0

    async def acquire(self) -> float:
        """Wait until a token is available, then take it.

        Returns the time spent waiting (seconds).
        """
        wait_total = 0.0

        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    self._total_requests += 1
                    break

                wait_time = max((1 - self._tokens) / (self._rpm_limit / 60.0), 0.01)
                wait_total += wait_time
                logger.debug("Rate limit reached, waiting %.2fs", wait_time)

                # Release lock during sleep so other coroutines aren't blocked
                self._lock.release()
                try:
                    await self._sleep(wait_time)
                finally:
                    await self._lock.acquire()

        self._total_wait_seconds += wait_total
        return wait_total

    @property
    def stats(self) -> dict:
        """Return current rate limiter statistics."""
        self._refill()
        return {
            "available": self._tokens,
            "total_requests": self._total_requests,
            "total_wait_seconds": self._total_wait_seconds,
        }

    def reset(self) -> None:
        """Reset all state (for testing)."""
        self._tokens = float(self._rpm_limit)
        self._last_refill = self._clock()
        self._total_requests = 0
        self._total_wait_seconds = 0.0

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self._last_refill = now
        self._tokens = min(
            float(self._rpm_limit),
            self._tokens + elapsed * (self._rpm_limit / 60.0),
        )
