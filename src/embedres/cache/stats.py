"""Cache entry and statistics models."""

from __future__ import annotations

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """A resolved resource held in memory."""

    resource_id: str
    content: str | bytes
    mime_type: str
    created_at: float
    last_accessed_at: float
    filename: str = ""

    @property
    def size_bytes(self) -> int:
        if isinstance(self.content, bytes):
            return len(self.content)
        return len(self.content.encode("utf-8"))

    def age(self, now: float) -> float:
        return now - self.created_at


class CacheStats(BaseModel):
    """Aggregate cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0
    total_size_bytes: int = 0

    @property
    def hit_ratio(self) -> float:
        """Hit ratio as a percentage, 0 when nothing was looked up yet."""
        total = self.hits + self.misses
        return self.hits / total * 100 if total > 0 else 0.0

    @property
    def size_mb(self) -> float:
        return self.total_size_bytes / (1024 * 1024)
