from typing import Any

from pydantic import BaseModel, Field, model_validator

from intelligent_cache.models.enums import Expiry, PatternType


class CacheEntry(BaseModel):
    """A stored value plus the metadata used for eviction and expiry.

    Timestamps are readings of the owning cache's clock (monotonic seconds
    by default), not wall-clock datetimes.
    """

    key: str
    value: Any = None
    created_at: float
    expires_at: float | None = None
    access_count: int = 0
    last_accessed_at: float
    size_bytes: int = Field(default=0, ge=0)
    tags: set[str] = set()

    @model_validator(mode="after")
    def _expiry_after_creation(self) -> "CacheEntry":
        if self.expires_at is not None and self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        return self

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def age(self, now: float) -> float:
        return now - self.created_at


class CacheItem(BaseModel):
    """Input record for batch writes and cache warm-up."""

    key: str
    value: Any = None
    ttl_seconds: float | Expiry | None = None
    tags: list[str] = []
    size_bytes: int | None = Field(default=None, ge=0)


class CachePattern(BaseModel):
    """Key-match specification for pattern invalidation."""

    pattern: str
    type: PatternType = PatternType.GLOB
