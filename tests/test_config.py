from pathlib import Path

import pytest
from pydantic import ValidationError

from intelligent_cache.config import CacheSettings, get_settings, reset_settings


class TestCacheSettings:
    """Test CacheSettings field defaults, env overrides, and validation."""

    def test_defaults(self):
        s = CacheSettings(_env_file=None)
        assert s.max_size_bytes == 100 * 1024 * 1024
        assert s.default_ttl_seconds == 3600
        assert s.cleanup_interval_seconds == 300
        assert s.enable_metrics is True
        assert s.compression_threshold_bytes == 1024
        assert s.strict_capacity is False
        assert s.single_flight is False
        assert s.log_level == "INFO"
        assert s.log_dir is None
        assert s.log_file_name == "cache.log"
        assert s.log_max_bytes == 5 * 1024 * 1024
        assert s.log_backup_count == 3

    def test_values_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("INTELLIGENT_CACHE_MAX_SIZE_BYTES", "2048")
        monkeypatch.setenv("INTELLIGENT_CACHE_ENABLE_METRICS", "false")
        monkeypatch.setenv("INTELLIGENT_CACHE_LOG_DIR", "/tmp/cache-logs")
        s = CacheSettings(_env_file=None)
        assert s.max_size_bytes == 2048
        assert s.enable_metrics is False
        assert s.log_dir == Path("/tmp/cache-logs")

    def test_unprefixed_env_is_ignored(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MAX_SIZE_BYTES", "7")
        s = CacheSettings(_env_file=None)
        assert s.max_size_bytes == 100 * 1024 * 1024

    def test_env_file(self, tmp_path: Path):
        env_file = tmp_path / "cache.env"
        env_file.write_text("INTELLIGENT_CACHE_DEFAULT_TTL_SECONDS=60\n")
        s = CacheSettings(_env_file=env_file)
        assert s.default_ttl_seconds == 60

    def test_kwargs_override(self):
        s = CacheSettings(_env_file=None, single_flight=True, default_ttl_seconds=None)
        assert s.single_flight is True
        assert s.default_ttl_seconds is None

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_size_bytes", 0),
            ("default_ttl_seconds", -1),
            ("cleanup_interval_seconds", -5),
            ("compression_threshold_bytes", -1),
            ("log_max_bytes", 0),
            ("log_backup_count", -1),
        ],
    )
    def test_rejects_out_of_range(self, field: str, value: int):
        with pytest.raises(ValidationError):
            CacheSettings(_env_file=None, **{field: value})

    def test_sweeper_enabled(self):
        assert CacheSettings(_env_file=None).sweeper_enabled is True
        assert CacheSettings(_env_file=None, cleanup_interval_seconds=0).sweeper_enabled is False


class TestGetSettings:
    """Test the lazy singleton get_settings / reset_settings."""

    def setup_method(self):
        reset_settings()

    def teardown_method(self):
        reset_settings()

    def test_get_settings_returns_settings(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("INTELLIGENT_CACHE_MAX_SIZE_BYTES", "4096")
        s = get_settings()
        assert isinstance(s, CacheSettings)
        assert s.max_size_bytes == 4096

    def test_get_settings_is_singleton(self):
        assert get_settings() is get_settings()

    def test_reset_settings_clears_cache(self):
        s1 = get_settings()
        reset_settings()
        assert get_settings() is not s1
