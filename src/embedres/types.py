"""Shared Pydantic models for embedres."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ── Enums ──


class ReferenceSyntax(StrEnum):
    MARKDOWN = "markdown"
    HTML = "html"


class ResolutionMode(StrEnum):
    INLINE = "inline"
    LOCAL_FILE = "local_file"


class ResolutionState(StrEnum):
    RESOLVED = "resolved"
    SKIPPED = "skipped"
    FAILED = "failed"


# ── Config models ──


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float | None = 30.0


# ── References ──


class HtmlAttribute(BaseModel):
    """One attribute of an ``<img>`` tag, kept exactly as written."""

    name: str
    value: str | None = None
    raw: str


class ResourceReference(BaseModel):
    resource_id: str
    syntax: ReferenceSyntax
    raw_match: str
    start: int
    end: int
    alt_text: str | None = None
    attributes: list[HtmlAttribute] = Field(default_factory=list)
    src_span: tuple[int, int] | None = None

    def attribute(self, name: str) -> HtmlAttribute | None:
        """First attribute with this name (case-insensitive), if any."""
        lowered = name.lower()
        for attr in self.attributes:
            if attr.name.lower() == lowered:
                return attr
        return None


# ── Remote API ──


class ResourceMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    mime: str
    filename: str = ""
    title: str = ""
    file_extension: str = ""
    size: int = 0


# ── Fetch outcomes ──


class Success(BaseModel):
    kind: Literal["success"] = "success"
    content: bytes
    mime_type: str
    metadata: ResourceMetadata | None = None


class NotFound(BaseModel):
    kind: Literal["not_found"] = "not_found"
    message: str = "Resource not found"


class InvalidId(BaseModel):
    kind: Literal["invalid_id"] = "invalid_id"
    message: str = "Invalid resource ID format"


class TransientFailure(BaseModel):
    kind: Literal["transient_failure"] = "transient_failure"
    message: str


class PermanentFailure(BaseModel):
    kind: Literal["permanent_failure"] = "permanent_failure"
    message: str


FetchOutcome = Annotated[
    Success | NotFound | InvalidId | TransientFailure | PermanentFailure,
    Field(discriminator="kind"),
]


# ── Runtime models ──


class ResolveProgress(BaseModel):
    processed: int
    total: int
    resource_id: str
    state: ResolutionState


class ResolveOptions(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_concurrency: int = Field(default=3, ge=1, le=32)
    on_progress: Callable[[ResolveProgress], Any] | None = None
    filename_exists: Callable[[str], bool] | None = None


class Attachment(BaseModel):
    resource_id: str
    filename: str
    content: bytes
    mime_type: str


class ReferenceResult(BaseModel):
    reference: ResourceReference
    state: ResolutionState
    outcome: FetchOutcome | None = None
    target: str | None = None
    mime_type: str | None = None
    reason: str | None = None
    cache_hit: bool = False


class PipelineStats(BaseModel):
    total: int = 0
    distinct: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    cache_hits: int = 0


class PipelineResult(BaseModel):
    processed_body: str
    results: list[ReferenceResult] = Field(default_factory=list)
    stats: PipelineStats = Field(default_factory=PipelineStats)
    attachments: list[Attachment] = Field(default_factory=list)

    @property
    def failed(self) -> list[ReferenceResult]:
        return [r for r in self.results if r.state == ResolutionState.FAILED]
