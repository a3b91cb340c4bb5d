"""Substitution: rewrite references in place, keeping surrounding markup intact."""

from __future__ import annotations

import base64
import re
from html import escape

from embedres.types import ReferenceSyntax, ResourceReference

_MAX_REASON_LEN = 200

_PLACEHOLDER_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="200" height="120" viewBox="0 0 200 120">'
    '<rect x="1" y="1" width="198" height="118" fill="#f4f4f4" stroke="#c8c8c8" stroke-dasharray="4"/>'
    '<text x="100" y="64" font-family="sans-serif" font-size="13" fill="#777" '
    'text-anchor="middle">{label}</text>'
    "</svg>"
)


def to_data_uri(content: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URI."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def placeholder_uri(label: str = "Image unavailable") -> str:
    """A small SVG box used in place of an image that could not be loaded."""
    svg = _PLACEHOLDER_SVG.format(label=escape(label))
    return to_data_uri(svg.encode("utf-8"), "image/svg+xml")


def failure_comment(resource_id: str, reason: str) -> str:
    return (
        f"<!-- embedres: failed to load image resource {resource_id}: "
        f"{sanitize_reason(reason)} -->"
    )


def sanitize_reason(reason: str) -> str:
    """Flatten a failure reason so it is safe inside an HTML comment."""
    text = re.sub(r"\s+", " ", reason or "unknown error").strip()
    while "--" in text:
        text = text.replace("--", "-")
    text = text.replace("joplin-id:", "")
    if len(text) > _MAX_REASON_LEN:
        text = text[: _MAX_REASON_LEN - 3] + "..."
    return text or "unknown error"


def replace_src(reference: ResourceReference, new_src: str) -> str:
    """Return the original tag with only the ``src`` value swapped."""
    if reference.src_span is None:
        raise ValueError(f"Reference to {reference.resource_id} has no src span")
    start, end = reference.src_span
    raw = reference.raw_match
    return raw[:start] + new_src + raw[end:]


def render_resolved(reference: ResourceReference, target: str) -> str:
    if reference.syntax == ReferenceSyntax.MARKDOWN:
        return f"![{reference.alt_text or ''}]({target})"
    return replace_src(reference, target)


def render_failed(reference: ResourceReference, reason: str) -> str:
    """Placeholder that keeps alt text and layout attributes and records why."""
    comment = failure_comment(reference.resource_id, reason)
    uri = placeholder_uri()
    if reference.syntax == ReferenceSyntax.MARKDOWN:
        return f"![{reference.alt_text or ''}]({uri}){comment}"
    return f"{comment}{replace_src(reference, uri)}"


def apply_replacements(
    body: str,
    replacements: list[tuple[ResourceReference, str | None]],
) -> str:
    """Splice replacement text into ``body``.

    ``replacements`` must be ordered by position and non-overlapping; a None
    replacement keeps the original reference text.
    """
    parts: list[str] = []
    cursor = 0
    for reference, text in replacements:
        parts.append(body[cursor : reference.start])
        parts.append(reference.raw_match if text is None else text)
        cursor = reference.end
    parts.append(body[cursor:])
    return "".join(parts)
