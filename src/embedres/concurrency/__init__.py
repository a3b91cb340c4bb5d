"""Concurrency: bounded worker pool and API rate limiting."""

from embedres.concurrency.pool import WorkerPool
from embedres.concurrency.rate_limiter import RateLimiter

__all__ = ["WorkerPool", "RateLimiter"]
