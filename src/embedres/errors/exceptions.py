"""Custom exception hierarchy for embedres."""

from __future__ import annotations

from typing import Any


class EmbedResError(Exception):
    """Base exception for all embedres errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class InvalidIdentifierError(EmbedResError):
    """Resource id is not a 32-character hex token. Never retried."""

    def __init__(self, message: str = "Invalid resource ID format", resource_id: str = "") -> None:
        super().__init__(message)
        self.resource_id = resource_id


class ResourceNotFoundError(EmbedResError):
    """The API answered 404 for a resource. Never retried."""

    def __init__(self, message: str = "Resource not found", resource_id: str = "") -> None:
        super().__init__(message)
        self.resource_id = resource_id
        self.http_status = 404


class TransientNetworkError(EmbedResError):
    """Transient error: safe to retry with backoff.

    Examples: timeout, connection refused, 500/502/503 server error.
    """

    def __init__(
        self,
        message: str = "",
        error_type: str = "network",
        http_status: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.http_status = http_status
        self.original = original


class PermanentRemoteError(EmbedResError):
    """Non-retryable remote failure (4xx other than 404, missing token)."""

    def __init__(self, message: str = "", http_status: int | None = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class CorruptPayloadError(EmbedResError):
    """A 200 response whose payload is empty or cannot be decoded."""

    def __init__(self, message: str = "Received empty or invalid file data", resource_id: str = "") -> None:
        super().__init__(message)
        self.resource_id = resource_id


class InvalidOptionsError(EmbedResError, ValueError):
    """Caller misuse of a public entry point (bad body, mode or options)."""


class ConfigurationError(EmbedResError):
    """Invalid service configuration, e.g. a malformed server URL.

    Raised at construction time; not something a retry can fix.
    """
