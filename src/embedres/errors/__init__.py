"""Error handling: exception taxonomy and retry policy."""

from embedres.errors.exceptions import (
    ConfigurationError,
    CorruptPayloadError,
    EmbedResError,
    InvalidIdentifierError,
    InvalidOptionsError,
    PermanentRemoteError,
    ResourceNotFoundError,
    TransientNetworkError,
)
from embedres.errors.outcomes import outcome_for_error
from embedres.errors.retry import calculate_delay, is_retryable_error, with_retry

__all__ = [
    "EmbedResError",
    "InvalidIdentifierError",
    "ResourceNotFoundError",
    "TransientNetworkError",
    "PermanentRemoteError",
    "CorruptPayloadError",
    "InvalidOptionsError",
    "ConfigurationError",
    "outcome_for_error",
    "calculate_delay",
    "is_retryable_error",
    "with_retry",
]
