"""Bounded async worker pool for per-resource fetch tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class WorkerPool:
    """Run one coroutine per work item with at most ``max_workers`` in flight.

    Results come back in input order. A task that raises does not cancel its
    siblings; its exception is returned in its slot instead.
    """

    def __init__(self, max_workers: int = 3) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._max_workers = max_workers
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def peak_in_flight(self) -> int:
        """Highest number of tasks observed running at once."""
        return self._peak_in_flight

    async def map(
        self,
        fn: Callable[[T], Awaitable[R]],
        items: Sequence[T],
    ) -> list[R | BaseException]:
        """Apply ``fn`` to every item under the concurrency bound."""
        semaphore = asyncio.Semaphore(self._max_workers)

        async def worker(item: T) -> R:
            async with semaphore:
                self._in_flight += 1
                self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
                try:
                    return await fn(item)
                finally:
                    self._in_flight -= 1

        results = await asyncio.gather(*(worker(item) for item in items), return_exceptions=True)

        for item, result in zip(items, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Task for %s failed: %s", item, result)

        return list(results)
