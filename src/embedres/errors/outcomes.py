"""Map exceptions from the resource client onto fetch outcomes."""

from __future__ import annotations

from embedres.errors.exceptions import (
    CorruptPayloadError,
    InvalidIdentifierError,
    PermanentRemoteError,
    ResourceNotFoundError,
)
from embedres.types import FetchOutcome, InvalidId, NotFound, PermanentFailure, TransientFailure


def outcome_for_error(exc: BaseException) -> FetchOutcome:
    """Anything not known to be terminal counts as a transient failure."""
    if isinstance(exc, InvalidIdentifierError):
        return InvalidId(message=exc.message or "Invalid resource ID format")
    if isinstance(exc, ResourceNotFoundError):
        return NotFound(message=exc.message or "Resource not found")
    if isinstance(exc, (PermanentRemoteError, CorruptPayloadError)):
        return PermanentFailure(message=exc.message or str(exc) or exc.__class__.__name__)
    return TransientFailure(message=str(exc) or exc.__class__.__name__)
