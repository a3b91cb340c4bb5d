"""Async client for resource endpoints of the Joplin Data API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from embedres.config.defaults import DEFAULT_REQUEST_TIMEOUT, DEFAULT_SERVER_URL
from embedres.errors.exceptions import (
    CorruptPayloadError,
    EmbedResError,
    InvalidIdentifierError,
    PermanentRemoteError,
    ResourceNotFoundError,
    TransientNetworkError,
)
from embedres.errors.outcomes import outcome_for_error
from embedres.errors.retry import with_retry
from embedres.pipeline.scanner import is_valid_resource_id
from embedres.types import FetchOutcome, ResourceMetadata, RetryConfig, Success

if TYPE_CHECKING:
    from embedres.concurrency.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

USER_AGENT = "embedres/0.1"
_METADATA_FIELDS = "id,title,mime,filename,file_extension,size"
_PING_RESPONSE = "JoplinClipperServer"


class JoplinResourceClient:
    """Fetches resource metadata and file bytes, retrying transient failures.

    The API token travels as the ``token`` query parameter, the way the
    Joplin Web Clipper service expects it.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        token: str = "",
        http_client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        self._retry_config = retry_config or RetryConfig()
        self._rate_limiter = rate_limiter
        self._sleep = sleep

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url and self._token)

    async def get_metadata(self, resource_id: str) -> ResourceMetadata:
        """Fetch ``/resources/{id}``. Raises the embedres exception taxonomy."""
        self._validate_id(resource_id)

        async def operation() -> ResourceMetadata:
            response = await self._request(
                f"/resources/{resource_id}",
                params={"fields": _METADATA_FIELDS},
                resource_id=resource_id,
            )
            return self._parse_metadata(response, resource_id)

        return await with_retry(
            operation,
            self._retry_config,
            sleep=self._sleep,
            context=f"Metadata request for {resource_id}",
        )

    async def get_bytes(self, resource_id: str) -> bytes:
        """Fetch ``/resources/{id}/file``. Empty bodies are corrupt payloads."""
        self._validate_id(resource_id)

        async def operation() -> bytes:
            response = await self._request(
                f"/resources/{resource_id}/file",
                resource_id=resource_id,
            )
            content = response.content
            if not content:
                raise CorruptPayloadError(resource_id=resource_id)
            return content

        return await with_retry(
            operation,
            self._retry_config,
            sleep=self._sleep,
            context=f"File request for {resource_id}",
        )

    async def fetch(self, resource_id: str) -> FetchOutcome:
        """Metadata + bytes in one call, as an outcome instead of an exception."""
        try:
            metadata = await self.get_metadata(resource_id)
            content = await self.get_bytes(resource_id)
        except EmbedResError as exc:
            return outcome_for_error(exc)
        return Success(content=content, mime_type=metadata.mime, metadata=metadata)

    async def ping(self) -> bool:
        """True if the server answers ``/ping`` like a Joplin clipper service."""
        try:
            response = await self._request("/ping")
        except EmbedResError as exc:
            logger.warning("Connection test failed: %s", exc)
            return False
        return response.text.strip() == _PING_RESPONSE

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> JoplinResourceClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        path: str,
        params: dict[str, str] | None = None,
        resource_id: str = "",
    ) -> httpx.Response:
        if not self._token:
            raise PermanentRemoteError("API token is required", http_status=401)

        if self._rate_limiter:
            await self._rate_limiter.acquire()

        query = dict(params or {})
        query["token"] = self._token

        try:
            response = await self._http.get(f"{self._base_url}{path}", params=query)
        except httpx.TimeoutException as exc:
            raise TransientNetworkError(
                f"Request timed out: {path}", error_type="timeout", original=exc
            ) from exc
        except httpx.HTTPError as exc:
            raise TransientNetworkError(
                f"Network error: {exc or exc.__class__.__name__}", original=exc
            ) from exc
        except Exception as exc:
            raise TransientNetworkError(
                f"Unexpected error: {exc or exc.__class__.__name__}", error_type="unknown", original=exc
            ) from exc

        status = response.status_code
        if status == 404:
            raise ResourceNotFoundError(f"Resource not found: {resource_id or path}", resource_id=resource_id)
        if status >= 500:
            raise TransientNetworkError(
                f"HTTP {status}: server error", error_type="server_error", http_status=status
            )
        if status >= 400:
            raise PermanentRemoteError(f"HTTP {status}: {response.text[:200]}", http_status=status)
        return response

    @staticmethod
    def _validate_id(resource_id: str) -> None:
        if not is_valid_resource_id(resource_id):
            raise InvalidIdentifierError(
                f"Invalid resource ID format: {resource_id!r}", resource_id=resource_id
            )

    @staticmethod
    def _parse_metadata(response: httpx.Response, resource_id: str) -> ResourceMetadata:
        try:
            data = response.json()
        except ValueError as exc:
            raise CorruptPayloadError(
                f"Resource metadata is not valid JSON for {resource_id}", resource_id=resource_id
            ) from exc
        if not isinstance(data, dict) or not data.get("mime"):
            raise CorruptPayloadError(
                f"Resource metadata not found for {resource_id}", resource_id=resource_id
            )
        data.setdefault("id", resource_id)
        try:
            return ResourceMetadata.model_validate(data)
        except ValidationError as exc:
            raise CorruptPayloadError(
                f"Unexpected resource metadata for {resource_id}", resource_id=resource_id
            ) from exc
