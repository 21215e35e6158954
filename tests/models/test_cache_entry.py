import pytest
from pydantic import ValidationError

from intelligent_cache.models import NO_EXPIRY, CacheItem, CachePattern, Expiry, PatternType
from tests.factories import make_entry, make_item


class TestCacheEntry:
    def test_defaults(self):
        entry = make_entry()
        assert entry.expires_at is None
        assert entry.access_count == 0
        assert entry.tags == set()

    def test_never_expires_without_deadline(self):
        assert make_entry().is_expired(1e12) is False

    def test_expired_only_after_deadline(self):
        entry = make_entry(created_at=1000.0, expires_at=1010.0)
        assert entry.is_expired(1010.0) is False
        assert entry.is_expired(1010.5) is True

    def test_deadline_must_follow_creation(self):
        with pytest.raises(ValidationError):
            make_entry(created_at=1000.0, expires_at=1000.0)

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            make_entry(size_bytes=-1)

    def test_age(self):
        assert make_entry(created_at=1000.0).age(1025.0) == 25.0

    def test_tags_coerced_to_set(self):
        assert make_entry(tags=["a", "a", "b"]).tags == {"a", "b"}


class TestCacheItem:
    def test_defaults(self):
        item = CacheItem(key="k")
        assert item.value is None
        assert item.ttl_seconds is None
        assert item.tags == []
        assert item.size_bytes is None

    def test_accepts_no_expiry_sentinel(self):
        assert make_item(ttl_seconds=NO_EXPIRY).ttl_seconds is Expiry.NEVER

    def test_from_mapping(self):
        item = CacheItem.model_validate({"key": "k", "value": [1], "ttl_seconds": 5})
        assert item.ttl_seconds == 5

    def test_negative_size_rejected(self):
        with pytest.raises(ValidationError):
            make_item(size_bytes=-3)


class TestCachePattern:
    def test_defaults_to_glob(self):
        assert CachePattern(pattern="user:*").type == PatternType.GLOB

    def test_type_from_string(self):
        assert CachePattern(pattern="^a", type="regex").type == PatternType.REGEX

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            CachePattern(pattern="x", type="fuzzy")
