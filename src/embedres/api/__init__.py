"""Joplin Data API access."""

from embedres.api.client import JoplinResourceClient

__all__ = ["JoplinResourceClient"]
