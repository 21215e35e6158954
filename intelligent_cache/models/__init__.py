from intelligent_cache.models.entry import CacheEntry, CacheItem, CachePattern
from intelligent_cache.models.enums import (
    NO_EXPIRY,
    CacheEvent,
    Expiry,
    PatternType,
    RemovalReason,
)
from intelligent_cache.models.metrics import (
    CacheEventRecord,
    CacheMetrics,
    CacheStats,
    KeyStats,
)

__all__ = [
    "NO_EXPIRY",
    "CacheEntry",
    "CacheEvent",
    "CacheEventRecord",
    "CacheItem",
    "CacheMetrics",
    "CachePattern",
    "CacheStats",
    "Expiry",
    "KeyStats",
    "PatternType",
    "RemovalReason",
]
