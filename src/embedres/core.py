"""Top-level entry points: resolve_body(), ResourceService."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from embedres.api.client import JoplinResourceClient
from embedres.cache.memory import ResourceCache
from embedres.cache.stats import CacheStats
from embedres.concurrency.rate_limiter import RateLimiter
from embedres.config.schema import ServiceSettings
from embedres.pipeline.engine import ResolutionPipeline
from embedres.types import PipelineResult, ResolutionMode, ResolveOptions, ResolveProgress

logger = logging.getLogger(__name__)


class ResourceService:
    """Owns one cache, one API client and one pipeline for a session.

    The cache outlives individual ``resolve`` calls, so a note previewed
    twice is only downloaded once while the service is alive.
    """

    def __init__(
        self,
        settings: ServiceSettings | None = None,
        client: JoplinResourceClient | None = None,
        cache: ResourceCache | None = None,
    ) -> None:
        self._settings = settings or ServiceSettings()
        s = self._settings

        if client is None:
            limiter = RateLimiter(rpm_limit=s.rpm_limit) if s.rpm_limit > 0 else None
            client = JoplinResourceClient(
                base_url=s.server_url,
                token=s.token,
                retry_config=s.retry,
                rate_limiter=limiter,
                timeout=s.request_timeout,
            )
        self._client = client

        self._cache = cache if cache is not None else ResourceCache(
            max_entries=s.cache_max_entries,
            max_total_size_mb=s.cache_max_size_mb,
            ttl_minutes=s.cache_ttl_minutes,
        )
        self._pipeline = ResolutionPipeline(self._client, self._cache)

    @property
    def settings(self) -> ServiceSettings:
        return self._settings

    @property
    def client(self) -> JoplinResourceClient:
        return self._client

    @property
    def cache(self) -> ResourceCache:
        return self._cache

    async def resolve(
        self,
        body: str,
        mode: ResolutionMode | str = ResolutionMode.INLINE,
        max_concurrency: int | None = None,
        on_progress: Callable[[ResolveProgress], Any] | None = None,
        filename_exists: Callable[[str], bool] | None = None,
    ) -> PipelineResult:
        """Resolve every resource reference in a note body."""
        options = {
            "max_concurrency": (
                self._settings.max_concurrency if max_concurrency is None else max_concurrency
            ),
            "on_progress": on_progress,
            "filename_exists": filename_exists,
        }
        return await self._pipeline.resolve(body, mode, options)

    def cache_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def cache_hit_ratio(self) -> float:
        return self._cache.get_hit_ratio()

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Resource cache cleared")

    def perform_maintenance(self) -> int:
        """Drop expired entries and relieve memory pressure. Returns entries removed."""
        return self._cache.perform_maintenance()

    async def ping(self) -> bool:
        return await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ResourceService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


# ── Module-level convenience functions ──


def resolve_body(
    body: str,
    mode: ResolutionMode | str = ResolutionMode.INLINE,
    server_url: str | None = None,
    token: str | None = None,
    max_concurrency: int | None = None,
) -> PipelineResult:
    """Resolve a note body with settings from the config hierarchy (sync wrapper)."""
    settings = ServiceSettings.load(server_url=server_url, token=token, max_concurrency=max_concurrency)

    async def _run() -> PipelineResult:
        async with ResourceService(settings) as service:
            return await service.resolve(body, mode)

    return asyncio.run(_run())
