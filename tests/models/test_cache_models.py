import pytest
from pydantic import ValidationError

from intelligent_cache.models import (
    CacheEvent,
    CacheEventRecord,
    CacheMetrics,
    CacheStats,
    KeyStats,
    RemovalReason,
)


class TestEnums:
    def test_event_values(self):
        assert CacheEvent.SET == "set"
        assert CacheEvent.TAGS_INVALIDATED == "tags_invalidated"
        assert str(CacheEvent.EVICT) == "evict"

    def test_removal_reasons(self):
        assert {r.value for r in RemovalReason} == {
            "deleted",
            "invalidated",
            "evicted",
            "expired",
            "replaced",
        }


class TestCacheMetrics:
    def test_all_zero_by_default(self):
        metrics = CacheMetrics()
        assert metrics.hits == 0
        assert metrics.hit_rate == 0.0
        assert metrics.size_bytes == 0


class TestCacheStats:
    def test_top_keys(self):
        stats = CacheStats(
            entries=1,
            size_bytes=10,
            max_size_bytes=100,
            hit_rate=50.0,
            average_age_seconds=2.0,
            top_keys=[KeyStats(key="a", access_count=3, age_seconds=2.0)],
        )
        assert stats.top_keys[0].key == "a"
        assert CacheStats(
            entries=0, size_bytes=0, max_size_bytes=1, hit_rate=0.0, average_age_seconds=0.0
        ).top_keys == []


class TestCacheEventRecord:
    def test_is_frozen(self):
        record = CacheEventRecord(event=CacheEvent.HIT, key="a", timestamp=1.0)
        with pytest.raises(ValidationError):
            record.key = "b"

    def test_event_from_string(self):
        record = CacheEventRecord(event="miss", timestamp=2.0)
        assert record.event is CacheEvent.MISS
        assert record.key is None
        assert record.details == {}
