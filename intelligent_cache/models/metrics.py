from typing import Any

from pydantic import BaseModel, ConfigDict

from intelligent_cache.models.enums import CacheEvent


class CacheMetrics(BaseModel):
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    expirations: int = 0
    entries: int = 0
    size_bytes: int = 0
    hit_rate: float = 0.0


class KeyStats(BaseModel):
    key: str
    access_count: int
    age_seconds: float


class CacheStats(BaseModel):
    entries: int
    size_bytes: int
    max_size_bytes: int
    hit_rate: float
    average_age_seconds: float
    top_keys: list[KeyStats] = []


class CacheEventRecord(BaseModel):
    """A single lifecycle notification delivered to observers."""

    model_config = ConfigDict(frozen=True)

    event: CacheEvent
    key: str | None = None
    details: dict[str, Any] = {}
    timestamp: float
