"""Resolution engine: scan, fetch distinct ids through a bounded pool, substitute."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from embedres.cache.keys import generate_cache_key
from embedres.concurrency.pool import WorkerPool
from embedres.errors.exceptions import EmbedResError, InvalidOptionsError
from embedres.errors.outcomes import outcome_for_error
from embedres.pipeline.filenames import attachment_filename, unique_filename
from embedres.pipeline.scanner import distinct_ids, scan
from embedres.pipeline.substitution import apply_replacements, render_failed, render_resolved, to_data_uri
from embedres.types import (
    Attachment,
    FetchOutcome,
    PipelineResult,
    PipelineStats,
    ReferenceResult,
    ResolutionMode,
    ResolutionState,
    ResolveOptions,
    ResolveProgress,
    ResourceReference,
    Success,
)

if TYPE_CHECKING:
    from embedres.api.client import JoplinResourceClient
    from embedres.cache.memory import ResourceCache
    from embedres.cache.stats import CacheEntry

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})


@dataclass
class IdResolution:
    """Terminal state of one distinct resource id within a run."""

    resource_id: str
    state: ResolutionState
    target: str | None = None
    mime_type: str | None = None
    reason: str | None = None
    outcome: FetchOutcome | None = None
    content: bytes | None = None
    filename: str = ""
    cache_hit: bool = False


@dataclass
class _RunState:
    mode: ResolutionMode
    options: ResolveOptions
    total: int
    processed: int = 0
    taken_filenames: set[str] = field(default_factory=set)


def normalize_mime(mime: str | None) -> str:
    return (mime or "").split(";", 1)[0].strip().lower()


class ResolutionPipeline:
    """Rewrite every embedded resource reference in a note body.

    Each distinct id is fetched at most once per run. Runs that overlap on
    the same pipeline share fetches for the same cache key.
    """

    def __init__(self, client: JoplinResourceClient, cache: ResourceCache) -> None:
        self._client = client
        self._cache = cache
        self._inflight: dict[str, asyncio.Future[IdResolution]] = {}

    async def resolve(
        self,
        body: str,
        mode: ResolutionMode | str = ResolutionMode.INLINE,
        options: ResolveOptions | dict[str, Any] | None = None,
    ) -> PipelineResult:
        """Resolve all references in ``body``.

        Fetch failures never escape; they end up as ``Failed`` results with a
        placeholder in the processed body. Only caller misuse raises
        :class:`InvalidOptionsError`.
        """
        if not isinstance(body, str):
            raise InvalidOptionsError(f"body must be a string, got {type(body).__name__}")
        mode = self._validate_mode(mode)
        options = self._validate_options(options)

        references = scan(body)
        if not references:
            return PipelineResult(processed_body=body)

        ids = distinct_ids(references)
        run = _RunState(mode=mode, options=options, total=len(ids))
        logger.info(
            "Resolving %d references (%d distinct) in %s mode",
            len(references),
            len(ids),
            mode.value,
        )

        resolutions: dict[str, IdResolution] = {}
        pending: list[str] = []
        for resource_id in ids:
            entry = self._cache.get_entry(generate_cache_key(resource_id, mode))
            if entry is None:
                pending.append(resource_id)
                continue
            resolution = self._from_cache(resource_id, entry, run)
            resolutions[resource_id] = resolution
            self._report_progress(run, resolution)

        if pending:
            pool = WorkerPool(max_workers=options.max_concurrency)
            outcomes = await pool.map(lambda rid: self._resolve_id(rid, run), pending)
            for resource_id, outcome in zip(pending, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    outcome = self._failed(resource_id, outcome)
                resolutions[resource_id] = outcome

        return self._assemble(body, references, ids, resolutions, mode)

    # ── Fetching ──

    async def _resolve_id(self, resource_id: str, run: _RunState) -> IdResolution:
        key = generate_cache_key(resource_id, run.mode)
        shared = self._inflight.get(key)
        if shared is not None:
            logger.debug("Joining in-flight fetch for %s", key)
            resolution = await asyncio.shield(shared)
            if resolution.filename:
                run.taken_filenames.add(resolution.filename.lower())
        else:
            future: asyncio.Future[IdResolution] = asyncio.get_running_loop().create_future()
            self._inflight[key] = future
            try:
                resolution = await self._fetch(resource_id, run)
            except BaseException:
                future.cancel()
                raise
            else:
                future.set_result(resolution)
            finally:
                self._inflight.pop(key, None)

        self._report_progress(run, resolution)
        return resolution

    async def _fetch(self, resource_id: str, run: _RunState) -> IdResolution:
        try:
            metadata = await self._client.get_metadata(resource_id)
            mime = normalize_mime(metadata.mime)
            if mime not in IMAGE_MIME_TYPES:
                logger.info("Skipping %s: unsupported mime type %r", resource_id, metadata.mime)
                return IdResolution(
                    resource_id=resource_id,
                    state=ResolutionState.SKIPPED,
                    mime_type=metadata.mime,
                    reason=f"Unsupported mime type: {metadata.mime}",
                )
            content = await self._client.get_bytes(resource_id)
        except Exception as exc:
            return self._failed(resource_id, exc)

        key = generate_cache_key(resource_id, run.mode)
        outcome = Success(content=content, mime_type=mime, metadata=metadata)
        if run.mode == ResolutionMode.INLINE:
            target = to_data_uri(content, mime)
            self._cache.set(key, target, mime)
            return IdResolution(
                resource_id=resource_id,
                state=ResolutionState.RESOLVED,
                target=target,
                mime_type=mime,
                outcome=outcome,
            )

        filename = unique_filename(
            attachment_filename(metadata, resource_id),
            run.taken_filenames,
            run.options.filename_exists,
        )
        run.taken_filenames.add(filename.lower())
        self._cache.set(key, content, mime, filename=filename)
        return IdResolution(
            resource_id=resource_id,
            state=ResolutionState.RESOLVED,
            target=filename,
            mime_type=mime,
            outcome=outcome,
            content=content,
            filename=filename,
        )

    def _from_cache(self, resource_id: str, entry: CacheEntry, run: _RunState) -> IdResolution:
        logger.debug("Cache hit for %s", resource_id)
        if run.mode == ResolutionMode.INLINE:
            target = entry.content if isinstance(entry.content, str) else to_data_uri(entry.content, entry.mime_type)
            return IdResolution(
                resource_id=resource_id,
                state=ResolutionState.RESOLVED,
                target=target,
                mime_type=entry.mime_type,
                cache_hit=True,
            )

        content = entry.content if isinstance(entry.content, bytes) else entry.content.encode("utf-8")
        filename = entry.filename
        # Ids cached by separate runs can share a name
        if filename.lower() in run.taken_filenames:
            filename = unique_filename(filename, run.taken_filenames, run.options.filename_exists)
        run.taken_filenames.add(filename.lower())
        return IdResolution(
            resource_id=resource_id,
            state=ResolutionState.RESOLVED,
            target=filename,
            mime_type=entry.mime_type,
            content=content,
            filename=filename,
            cache_hit=True,
        )

    @staticmethod
    def _failed(resource_id: str, exc: BaseException) -> IdResolution:
        outcome = outcome_for_error(exc)
        if isinstance(exc, EmbedResError):
            logger.warning("Failed to resolve resource %s: %s", resource_id, exc)
        else:
            logger.warning("Unexpected error resolving resource %s: %r", resource_id, exc)
        return IdResolution(
            resource_id=resource_id,
            state=ResolutionState.FAILED,
            reason=outcome.message,
            outcome=outcome,
        )

    # ── Reporting ──

    @staticmethod
    def _report_progress(run: _RunState, resolution: IdResolution) -> None:
        run.processed += 1
        callback = run.options.on_progress
        if callback is None:
            return
        try:
            callback(
                ResolveProgress(
                    processed=run.processed,
                    total=run.total,
                    resource_id=resolution.resource_id,
                    state=resolution.state,
                )
            )
        except Exception:
            logger.warning("Progress callback raised; ignoring", exc_info=True)

    @staticmethod
    def _assemble(
        body: str,
        references: list[ResourceReference],
        ids: list[str],
        resolutions: dict[str, IdResolution],
        mode: ResolutionMode,
    ) -> PipelineResult:
        stats = PipelineStats(total=len(references), distinct=len(ids))
        results: list[ReferenceResult] = []
        replacements: list[tuple[ResourceReference, str | None]] = []

        for reference in references:
            resolution = resolutions[reference.resource_id]
            if resolution.state == ResolutionState.RESOLVED:
                text = render_resolved(reference, resolution.target or "")
                stats.succeeded += 1
            elif resolution.state == ResolutionState.FAILED:
                text = render_failed(reference, resolution.reason or "unknown error")
                stats.failed += 1
            else:
                text = None
                stats.skipped += 1
            replacements.append((reference, text))
            results.append(
                ReferenceResult(
                    reference=reference,
                    state=resolution.state,
                    outcome=resolution.outcome,
                    target=resolution.target,
                    mime_type=resolution.mime_type,
                    reason=resolution.reason,
                    cache_hit=resolution.cache_hit,
                )
            )

        stats.cache_hits = sum(1 for r in resolutions.values() if r.cache_hit)

        attachments: list[Attachment] = []
        if mode == ResolutionMode.LOCAL_FILE:
            for resource_id in ids:
                resolution = resolutions[resource_id]
                if resolution.state == ResolutionState.RESOLVED and resolution.content is not None:
                    attachments.append(
                        Attachment(
                            resource_id=resource_id,
                            filename=resolution.filename,
                            content=resolution.content,
                            mime_type=resolution.mime_type or "",
                        )
                    )

        logger.info(
            "Resolved %d/%d references (%d failed, %d skipped, %d cache hits)",
            stats.succeeded,
            stats.total,
            stats.failed,
            stats.skipped,
            stats.cache_hits,
        )
        return PipelineResult(
            processed_body=apply_replacements(body, replacements),
            results=results,
            stats=stats,
            attachments=attachments,
        )

    # ── Validation ──

    @staticmethod
    def _validate_mode(mode: ResolutionMode | str) -> ResolutionMode:
        try:
            return ResolutionMode(mode)
        except ValueError as exc:
            valid = ", ".join(m.value for m in ResolutionMode)
            raise InvalidOptionsError(f"Unknown resolution mode {mode!r}; expected one of: {valid}") from exc

    @staticmethod
    def _validate_options(options: ResolveOptions | dict[str, Any] | None) -> ResolveOptions:
        if options is None:
            return ResolveOptions()
        if isinstance(options, ResolveOptions):
            return options
        if isinstance(options, dict):
            try:
                return ResolveOptions.model_validate(options)
            except ValidationError as exc:
                raise InvalidOptionsError(f"Invalid resolve options: {exc}") from exc
        raise InvalidOptionsError(f"options must be ResolveOptions or a dict, got {type(options).__name__}")
