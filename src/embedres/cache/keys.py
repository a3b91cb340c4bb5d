"""Cache key generation: one key space per resolution mode."""

from __future__ import annotations

from embedres.types import ResolutionMode


def generate_cache_key(resource_id: str, mode: ResolutionMode | str) -> str:
    """Key for a resource as resolved in ``mode``.

    Inline entries hold a data URI while local-file entries hold raw bytes,
    so the two must never share a key.
    """
    return f"{ResolutionMode(mode).value}:{resource_id.lower()}"
