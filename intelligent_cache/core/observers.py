"""Pluggable lifecycle notifications (set, hit, miss, evict, ...)."""

import logging
from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable

from intelligent_cache.models.enums import CacheEvent
from intelligent_cache.models.metrics import CacheEventRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheObserver(Protocol):
    def on_event(self, record: CacheEventRecord) -> None: ...


class LoggingObserver:
    """Writes every event to a logger at a fixed level.

    Args:
        level: Logging level for emitted records.
        events: Restrict logging to these events. All events when omitted.
    """

    def __init__(
        self,
        level: int = logging.DEBUG,
        events: Iterable[CacheEvent] | None = None,
        logger_name: str = "intelligent_cache.events",
    ) -> None:
        self.level = level
        self.events = frozenset(events) if events is not None else None
        self._logger = logging.getLogger(logger_name)

    def on_event(self, record: CacheEventRecord) -> None:
        if self.events is not None and record.event not in self.events:
            return
        self._logger.log(
            self.level, "cache:%s key=%s %s", record.event, record.key, record.details
        )


class CallbackObserver:
    """Adapts a plain callable to the observer interface."""

    def __init__(self, callback: Callable[[CacheEventRecord], None]) -> None:
        self._callback = callback

    def on_event(self, record: CacheEventRecord) -> None:
        self._callback(record)


def notify(observers: Iterable[CacheObserver], records: Iterable[CacheEventRecord]) -> None:
    """Deliver *records* in order. A failing observer does not stop the others."""
    for record in records:
        for observer in observers:
            try:
                observer.on_event(record)
            except Exception:
                logger.exception(
                    "Observer %r failed on cache:%s", observer, record.event
                )
