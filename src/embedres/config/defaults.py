"""Package-level default configuration values."""

from __future__ import annotations

from typing import Any

# Joplin Web Clipper service
DEFAULT_SERVER_URL = "http://localhost:41184"
DEFAULT_REQUEST_TIMEOUT = 30.0

# Default cache settings
DEFAULT_CACHE_MAX_ENTRIES = 100
DEFAULT_CACHE_MAX_SIZE_MB = 50.0
DEFAULT_CACHE_TTL_MINUTES = 30.0

# Default concurrency settings
DEFAULT_MAX_CONCURRENCY = 3
DEFAULT_RPM_LIMIT = 600

# Default retry settings
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "server_url": DEFAULT_SERVER_URL,
        "token": "",
        "request_timeout": DEFAULT_REQUEST_TIMEOUT,
        "cache_max_entries": DEFAULT_CACHE_MAX_ENTRIES,
        "cache_max_size_mb": DEFAULT_CACHE_MAX_SIZE_MB,
        "cache_ttl_minutes": DEFAULT_CACHE_TTL_MINUTES,
        "max_concurrency": DEFAULT_MAX_CONCURRENCY,
        "rpm_limit": DEFAULT_RPM_LIMIT,
        "max_attempts": DEFAULT_MAX_ATTEMPTS,
        "base_delay": DEFAULT_BASE_DELAY,
        "max_delay": DEFAULT_MAX_DELAY,
        "log_level": DEFAULT_LOG_LEVEL,
    }
