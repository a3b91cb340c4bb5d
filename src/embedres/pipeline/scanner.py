"""Reference scanning: find embedded Joplin resources in a note body."""

from __future__ import annotations

import re

from embedres.types import HtmlAttribute, ReferenceSyntax, ResourceReference

RESOURCE_ID_PATTERN = r"[0-9a-fA-F]{32}"
RESOURCE_ID_RE = re.compile(rf"^{RESOURCE_ID_PATTERN}$")

# ![alt](:/<id>)
MARKDOWN_IMAGE_RE = re.compile(rf"!\[(?P<alt>[^\]]*)\]\(:/(?P<id>{RESOURCE_ID_PATTERN})\)")

# A whole <img ...> tag; quoted values may contain '>'
HTML_IMG_RE = re.compile(r"""<img\b(?:[^>"']|"[^"]*"|'[^']*')*>""", re.IGNORECASE)

# One attribute inside a tag: name, name=value, name="value", name='value'
HTML_ATTR_RE = re.compile(
    r"""(?P<name>[^\s"'<>/=]+)"""
    r"""(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<uq>[^\s"'=<>`]+)))?"""
)

# src values that point at a Joplin resource
RESOURCE_SRC_RE = re.compile(rf"^(?:joplin-id:|:/)(?P<id>{RESOURCE_ID_PATTERN})$")

_TAG_PREFIX_LEN = len("<img")


def is_valid_resource_id(resource_id: str) -> bool:
    return bool(RESOURCE_ID_RE.match(resource_id or ""))


def scan(body: str) -> list[ResourceReference]:
    """Return every resource reference in ``body``, ordered by position.

    Each textual occurrence yields its own entry; nothing is deduplicated.
    """
    if not body:
        return []

    found = _scan_markdown(body) + _scan_html(body)
    found.sort(key=lambda ref: ref.start)

    # Drop anything nested inside an earlier match
    references: list[ResourceReference] = []
    last_end = -1
    for ref in found:
        if ref.start < last_end:
            continue
        references.append(ref)
        last_end = ref.end
    return references


def distinct_ids(references: list[ResourceReference]) -> list[str]:
    """Resource ids in first-occurrence order."""
    return list(dict.fromkeys(ref.resource_id for ref in references))


def parse_attributes(tag: str) -> list[tuple[HtmlAttribute, tuple[int, int] | None]]:
    """Split an ``<img>`` tag into attributes, keeping the raw text of each.

    The second element of every pair is the span of the attribute value
    inside ``tag`` (None for valueless attributes).
    """
    inner = tag[_TAG_PREFIX_LEN:]
    parsed: list[tuple[HtmlAttribute, tuple[int, int] | None]] = []
    for m in HTML_ATTR_RE.finditer(inner):
        group = next((g for g in ("dq", "sq", "uq") if m.group(g) is not None), None)
        span = None
        value = None
        if group is not None:
            value = m.group(group)
            span = (m.start(group) + _TAG_PREFIX_LEN, m.end(group) + _TAG_PREFIX_LEN)
        parsed.append((HtmlAttribute(name=m.group("name"), value=value, raw=m.group(0)), span))
    return parsed


def _scan_markdown(body: str) -> list[ResourceReference]:
    return [
        ResourceReference(
            resource_id=m.group("id").lower(),
            syntax=ReferenceSyntax.MARKDOWN,
            raw_match=m.group(0),
            start=m.start(),
            end=m.end(),
            alt_text=m.group("alt"),
        )
        for m in MARKDOWN_IMAGE_RE.finditer(body)
    ]


def _scan_html(body: str) -> list[ResourceReference]:
    references: list[ResourceReference] = []
    for m in HTML_IMG_RE.finditer(body):
        tag = m.group(0)
        attributes = parse_attributes(tag)

        src = next(
            ((attr, span) for attr, span in attributes if attr.name.lower() == "src"),
            None,
        )
        if src is None or src[1] is None:
            continue
        src_match = RESOURCE_SRC_RE.match(src[0].value or "")
        if not src_match:
            continue

        references.append(
            ResourceReference(
                resource_id=src_match.group("id").lower(),
                syntax=ReferenceSyntax.HTML,
                raw_match=tag,
                start=m.start(),
                end=m.end(),
                attributes=[attr for attr, _ in attributes],
                src_span=src[1],
            )
        )
    return references
