"""Pydantic models for service configuration."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from embedres.config.defaults import (
    DEFAULT_BASE_DELAY,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_MAX_SIZE_MB,
    DEFAULT_CACHE_TTL_MINUTES,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RPM_LIMIT,
    DEFAULT_SERVER_URL,
)
from embedres.config.hierarchy import load_config_hierarchy
from embedres.errors.exceptions import ConfigurationError
from embedres.types import RetryConfig

_JOPLIN_PORT = 41184


class UrlValidation(BaseModel):
    is_valid: bool
    message: str
    suggestions: list[str] = Field(default_factory=list)


def validate_server_url(url: str | None) -> UrlValidation:
    """Check a Joplin server URL and explain what is wrong with it.

    A URL can be valid and still come back with suggestions, e.g. a
    ``localhost`` URL without the clipper port.
    """
    if not url or not url.strip():
        return UrlValidation(
            is_valid=False,
            message="Server URL is required",
            suggestions=[
                f"Enter your Joplin server URL (e.g., {DEFAULT_SERVER_URL})",
                "Make sure Joplin desktop app is running with Web Clipper service enabled",
            ],
        )

    url = url.strip()
    if "://" not in url:
        return UrlValidation(
            is_valid=False,
            message="URL must start with http:// or https://",
            suggestions=[
                f"Try: http://{url}",
                f"Or: https://{url}",
                f"Most local Joplin servers use {DEFAULT_SERVER_URL}",
            ],
        )

    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        parts = None
        port = None
    if parts is None or not parts.hostname:
        return UrlValidation(
            is_valid=False,
            message="Invalid URL format",
            suggestions=[
                "Check for typos in the URL",
                "Ensure the format is: http://hostname:port",
                f"Example: {DEFAULT_SERVER_URL}",
            ],
        )

    if parts.scheme.lower() not in ("http", "https"):
        return UrlValidation(
            is_valid=False,
            message="Only HTTP and HTTPS protocols are supported",
            suggestions=["Change the protocol to http:// or https://", "Most Joplin servers use http://"],
        )

    warnings: list[str] = []
    if parts.hostname.lower() == "localhost" and port is None:
        warnings.append(f"Joplin typically runs on port {_JOPLIN_PORT}. Consider: {DEFAULT_SERVER_URL}")
    if parts.path not in ("", "/"):
        warnings.append("Joplin server URL should typically point to the root (no path)")
    if parts.query:
        warnings.append("Joplin server URL should not include query parameters")

    if warnings:
        return UrlValidation(
            is_valid=True, message="URL is valid, but consider these suggestions:", suggestions=warnings
        )
    return UrlValidation(is_valid=True, message="Valid Joplin server URL")


class ServiceSettings(BaseModel):
    """Everything a ResourceService needs, validated."""

    model_config = ConfigDict(extra="ignore")

    server_url: str = DEFAULT_SERVER_URL
    token: str = ""
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    cache_max_entries: int = Field(default=DEFAULT_CACHE_MAX_ENTRIES, ge=1)
    cache_max_size_mb: float = Field(default=DEFAULT_CACHE_MAX_SIZE_MB, gt=0)
    cache_ttl_minutes: float = Field(default=DEFAULT_CACHE_TTL_MINUTES, gt=0)
    max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1, le=32)
    rpm_limit: int = Field(default=DEFAULT_RPM_LIMIT, ge=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    base_delay: float = Field(default=DEFAULT_BASE_DELAY, ge=0)
    max_delay: float | None = DEFAULT_MAX_DELAY
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("server_url")
    @classmethod
    def _check_server_url(cls, value: str) -> str:
        result = validate_server_url(value)
        if not result.is_valid:
            raise ValueError(result.message)
        return value.strip().rstrip("/")

    @classmethod
    def load(cls, **overrides: Any) -> ServiceSettings:
        """Build settings from the config hierarchy plus runtime overrides."""
        merged = load_config_hierarchy(**overrides)
        try:
            return cls.model_validate(merged)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    @property
    def retry(self) -> RetryConfig:
        return RetryConfig(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
        )
