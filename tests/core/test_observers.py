import logging

from intelligent_cache.core.observers import (
    CacheObserver,
    CallbackObserver,
    LoggingObserver,
    notify,
)
from intelligent_cache.models.enums import CacheEvent
from intelligent_cache.models.metrics import CacheEventRecord


def record(event: CacheEvent = CacheEvent.SET, key: str | None = "k1") -> CacheEventRecord:
    return CacheEventRecord(event=event, key=key, details={"size_bytes": 3}, timestamp=1.0)


class TestObserverProtocol:
    def test_builtin_observers_satisfy_protocol(self):
        assert isinstance(LoggingObserver(), CacheObserver)
        assert isinstance(CallbackObserver(print), CacheObserver)

    def test_plain_callable_is_not_an_observer(self):
        assert not isinstance(print, CacheObserver)


class TestNotify:
    def test_delivers_in_order(self):
        seen = []
        observer = CallbackObserver(seen.append)
        first, second = record(CacheEvent.SET), record(CacheEvent.HIT)
        notify([observer], [first, second])
        assert seen == [first, second]

    def test_failing_observer_is_isolated(self, caplog):
        seen = []

        def broken(_record):
            raise RuntimeError("bug")

        with caplog.at_level(logging.ERROR):
            notify([CallbackObserver(broken), CallbackObserver(seen.append)], [record()])
        assert len(seen) == 1
        assert "failed on cache:set" in caplog.text


class TestLoggingObserver:
    def test_logs_at_configured_level(self, caplog):
        observer = LoggingObserver(level=logging.WARNING)
        with caplog.at_level(logging.WARNING, logger="intelligent_cache.events"):
            observer.on_event(record(CacheEvent.EVICT, "old"))
        assert "cache:evict key=old" in caplog.text

    def test_event_filter(self, caplog):
        observer = LoggingObserver(level=logging.INFO, events=[CacheEvent.MISS])
        with caplog.at_level(logging.INFO, logger="intelligent_cache.events"):
            observer.on_event(record(CacheEvent.HIT))
        assert caplog.text == ""
