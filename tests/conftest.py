import os

import pytest

from intelligent_cache.core.cache import IntelligentCache
from tests.factories import FakeClock, make_settings


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep host environment variables and .env files out of the settings."""
    for name in list(os.environ):
        if name.startswith("INTELLIGENT_CACHE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock):
    """Cache on a fake clock with the background sweeper disabled."""
    c = IntelligentCache(make_settings(), clock=clock)
    yield c
    c.shutdown()


@pytest.fixture
def sized_cache(clock: FakeClock):
    """Build a cache whose capacity holds exactly *slots* entries of *slot_size* bytes."""

    def _factory(slots: int, slot_size: int = 10, **overrides: object) -> IntelligentCache:
        settings = make_settings(max_size_bytes=slots * slot_size, **overrides)
        return IntelligentCache(settings, clock=clock)

    return _factory
