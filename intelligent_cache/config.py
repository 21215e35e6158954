from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Cache configuration.

    Every field has a working default, so nothing has to be set in the
    environment. Callers that want to source values from their own
    configuration can either pass them as keyword arguments or export
    ``INTELLIGENT_CACHE_<FIELD>`` variables (a ``.env`` file is read too).
    """

    model_config = SettingsConfigDict(
        env_prefix="INTELLIGENT_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Capacity bound in bytes (100 MB)
    max_size_bytes: int = Field(default=100 * 1024 * 1024, gt=0)

    # Applied when a caller omits the TTL or passes 0; None/0 here means
    # entries without an explicit TTL never expire
    default_ttl_seconds: float | None = Field(default=3600, ge=0)

    # Background sweep cadence; 0 disables the sweeper thread
    cleanup_interval_seconds: float = Field(default=300, ge=0)

    enable_metrics: bool = True

    # Entries above this size are flagged for compression (no transform)
    compression_threshold_bytes: int = Field(default=1024, ge=0)

    # Reject values that cannot fit even in an empty cache
    strict_capacity: bool = False

    # Deduplicate concurrent get_or_set misses on the same key
    single_flight: bool = False

    log_level: str = "INFO"
    log_format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    # File logging is off unless a directory is given
    log_dir: Path | None = None
    log_file_name: str = "cache.log"
    log_max_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=3, ge=0)

    @property
    def sweeper_enabled(self) -> bool:
        """Return True when a background sweep interval is configured."""
        return self.cleanup_interval_seconds > 0


_settings: CacheSettings | None = None


def get_settings() -> CacheSettings:
    """Return the cached CacheSettings. Created on first call."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = CacheSettings()
    return _settings


def reset_settings() -> None:
    """Clear the cached settings. Used in tests."""
    global _settings  # noqa: PLW0603
    _settings = None
