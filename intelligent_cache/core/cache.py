"""In-memory cache with size-bounded LRU eviction, TTL expiry, tag and
pattern invalidation, and hit-rate metrics."""

import logging
import math
import threading
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from tenacity.wait import wait_base

from intelligent_cache.config import CacheSettings, get_settings
from intelligent_cache.core.errors import (
    CapacityExceededError,
    InvalidTTLError,
    KeyNotFoundError,
)
from intelligent_cache.core.expiration import ExpirationManager, ExpirationSweeper
from intelligent_cache.core.metrics import MetricsRecorder
from intelligent_cache.core.observers import CacheObserver, CallbackObserver, notify
from intelligent_cache.core.patterns import PatternSpec, as_pattern, compile_pattern
from intelligent_cache.core.recency import RecencyTracker
from intelligent_cache.core.single_flight import AsyncSingleFlight, SingleFlight
from intelligent_cache.core.sizing import estimate_size
from intelligent_cache.core.tags import TagIndex
from intelligent_cache.core.warmup import WarmupSource, aload_with_retry, load_with_retry
from intelligent_cache.models.entry import CacheEntry, CacheItem
from intelligent_cache.models.enums import CacheEvent, Expiry, RemovalReason
from intelligent_cache.models.metrics import (
    CacheEventRecord,
    CacheMetrics,
    CacheStats,
    KeyStats,
)

logger = logging.getLogger(__name__)

TTLValue = float | Expiry | None

_MISSING = object()


class IntelligentCache:
    """Thread-safe in-process cache.

    One re-entrant lock covers the entry map, recency order, tag index,
    expiration heap and counters, so every public operation is applied
    atomically. Suppliers passed to :meth:`get_or_set` and observers run
    outside the lock.

    When ``cleanup_interval_seconds`` is positive a background sweeper starts
    with the cache and runs until :meth:`shutdown`.

    TTL convention: ``None`` or ``0`` uses ``settings.default_ttl_seconds``
    (no expiry if that is unset too); :data:`NO_EXPIRY` disables expiry.

    Args:
        settings: Cache configuration. A fresh ``CacheSettings()`` when omitted.
        clock: Monotonic time source in seconds. Injected by tests.
        observers: Initial lifecycle observers.
        size_estimator: Fallback sizing for values stored without a hint.
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        observers: Iterable[CacheObserver] = (),
        size_estimator: Callable[[Any], int] = estimate_size,
    ) -> None:
        self.settings = settings if settings is not None else CacheSettings()
        self._clock = clock
        self._estimate_size = size_estimator

        self._lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = {}
        self._recency = RecencyTracker()
        self._tags = TagIndex()
        self._expiry = ExpirationManager()
        self._metrics = MetricsRecorder(enabled=self.settings.enable_metrics)
        self._observers: tuple[CacheObserver, ...] = tuple(observers)

        self._flights = SingleFlight() if self.settings.single_flight else None
        self._async_flights = AsyncSingleFlight() if self.settings.single_flight else None

        self._sweeper: ExpirationSweeper | None = None
        if self.settings.sweeper_enabled:
            self._sweeper = ExpirationSweeper(
                self.cleanup, self.settings.cleanup_interval_seconds
            )
            self._sweeper.start()

        logger.info(
            "Cache initialized (max_size_bytes=%d, default_ttl=%s, cleanup_interval=%s)",
            self.settings.max_size_bytes,
            self.settings.default_ttl_seconds,
            self.settings.cleanup_interval_seconds,
        )

    @classmethod
    def from_settings(
        cls, settings: CacheSettings | None = None, **kwargs: Any
    ) -> "IntelligentCache":
        """Build a cache from *settings*, falling back to :func:`get_settings`."""
        return cls(settings if settings is not None else get_settings(), **kwargs)

    # ── Single-key operations ────────────────────────────────────────────

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: TTLValue = None,
        tags: Iterable[str] | None = None,
        *,
        size_bytes: int | None = None,
    ) -> None:
        """Store *value*, replacing any existing entry for *key*.

        Least-recently-used entries are evicted until the new entry fits. An
        entry larger than the whole cache is still accepted unless
        ``strict_capacity`` is set.

        Raises:
            InvalidTTLError: *ttl_seconds* is negative or not finite.
            CapacityExceededError: Strict policy and value exceeds
                ``max_size_bytes``.
        """
        size = self._measure(value, size_bytes)
        tag_set = _as_tag_set(tags)
        events: list[CacheEventRecord] = []

        with self._lock:
            now = self._clock()
            expires_at = self._resolve_expiry(ttl_seconds, now)
            max_size = self.settings.max_size_bytes
            if self.settings.strict_capacity and size > max_size:
                raise CapacityExceededError(
                    f"Entry '{key}' needs {size} bytes but the cache holds at most {max_size}"
                )

            entry = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                expires_at=expires_at,
                last_accessed_at=now,
                size_bytes=size,
                tags=tag_set,
            )

            if key in self._entries:
                self._remove_locked(key, RemovalReason.REPLACED, events)
            self._make_room_locked(size, now, events)

            self._entries[key] = entry
            self._recency.add(key)
            self._tags.add(key, tag_set)
            if expires_at is not None:
                self._expiry.schedule(key, expires_at)
            self._metrics.entry_added(size)
            self._metrics.record_set()
            self._emit(
                events,
                CacheEvent.SET,
                key,
                size_bytes=size,
                expires_at=expires_at,
                tags=sorted(tag_set),
            )

        threshold = self.settings.compression_threshold_bytes
        if threshold and size > threshold:
            logger.debug(
                "Would compress entry %s (%d bytes > %d), stored as-is", key, size, threshold
            )
        logger.debug("Cache set: %s (%d bytes, expires_at=%s)", key, size, expires_at)
        self._dispatch(events)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or *default* if absent or expired."""
        events: list[CacheEventRecord] = []
        with self._lock:
            now = self._clock()
            stored = key in self._entries
            entry = self._lookup_locked(key, now, events)
            if entry is None:
                self._metrics.record_miss()
                self._emit(events, CacheEvent.MISS, key, reason="expired" if stored else "absent")
                result = default
            else:
                entry.access_count += 1
                entry.last_accessed_at = now
                self._recency.touch(key)
                self._metrics.record_hit()
                self._emit(events, CacheEvent.HIT, key, access_count=entry.access_count)
                result = entry.value
        self._dispatch(events)
        return result

    def has(self, key: str) -> bool:
        """Existence check that prunes expired entries but leaves LRU order alone."""
        events: list[CacheEventRecord] = []
        with self._lock:
            found = self._lookup_locked(key, self._clock(), events) is not None
        self._dispatch(events)
        return found

    def delete(self, key: str) -> bool:
        """Remove *key*. Returns True if it existed, False otherwise."""
        events: list[CacheEventRecord] = []
        with self._lock:
            removed = self._remove_locked(key, RemovalReason.DELETED, events) is not None
        self._dispatch(events)
        return removed

    def clear(self, reset_metrics: bool = False) -> None:
        """Drop every entry. Cumulative counters survive unless *reset_metrics*."""
        events: list[CacheEventRecord] = []
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._recency.clear()
            self._tags.clear()
            self._expiry.clear()
            self._metrics.reset_live()
            if reset_metrics:
                self._metrics.reset_counters()
            self._emit(events, CacheEvent.CLEAR, None, entries=count)
        logger.info("Cache cleared (%d entries)", count)
        self._dispatch(events)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise KeyNotFoundError(key)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── Expiration ───────────────────────────────────────────────────────

    def update_ttl(self, key: str, ttl_seconds: TTLValue) -> bool:
        """Recompute the deadline of *key* from now. Returns False if absent."""
        events: list[CacheEventRecord] = []
        with self._lock:
            now = self._clock()
            expires_at = self._resolve_expiry(ttl_seconds, now)
            entry = self._lookup_locked(key, now, events)
            if entry is not None:
                entry.expires_at = expires_at
                if expires_at is None:
                    self._expiry.cancel(key)
                else:
                    self._expiry.schedule(key, expires_at)
        self._dispatch(events)
        if entry is None:
            return False
        logger.debug("TTL updated for %s: expires_at=%s", key, expires_at)
        return True

    def get_ttl(self, key: str) -> float | None:
        """Seconds until *key* expires, or None if it never does.

        Raises:
            KeyNotFoundError: *key* is absent or already expired.
        """
        events: list[CacheEventRecord] = []
        with self._lock:
            now = self._clock()
            entry = self._lookup_locked(key, now, events)
            remaining = None
            if entry is not None and entry.expires_at is not None:
                remaining = max(0.0, entry.expires_at - now)
        self._dispatch(events)
        if entry is None:
            raise KeyNotFoundError(key)
        return remaining

    def cleanup(self) -> int:
        """Remove every entry whose deadline has passed. Returns the count."""
        events: list[CacheEventRecord] = []
        with self._lock:
            removed = self._expire_due_locked(self._clock(), events)
        if removed:
            logger.debug("Cache cleanup removed %d expired entries", removed)
        self._dispatch(events)
        return removed

    def start(self) -> None:
        """Restart the background sweeper after :meth:`shutdown`. No-op if running."""
        if self._sweeper is not None:
            self._sweeper.start()

    def shutdown(self) -> None:
        """Stop the sweeper and drop all entries. Call before discarding the cache."""
        if self._sweeper is not None:
            self._sweeper.stop()
        self.clear()
        logger.info("Cache shutdown completed")

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.running

    def __enter__(self) -> "IntelligentCache":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # ── Bulk invalidation ────────────────────────────────────────────────

    def invalidate_by_tags(self, tags: Iterable[str]) -> list[str]:
        """Remove every entry carrying any of *tags*. Returns the removed keys."""
        tag_list = [tags] if isinstance(tags, str) else list(tags)
        events: list[CacheEventRecord] = []
        with self._lock:
            keys = self._tags.keys_for(tag_list)
            for key in keys:
                self._remove_locked(key, RemovalReason.INVALIDATED, events)
            self._emit(events, CacheEvent.TAGS_INVALIDATED, None, tags=tag_list, count=len(keys))
        logger.info("Tag invalidation: [%s] (%d entries)", ", ".join(tag_list), len(keys))
        self._dispatch(events)
        return keys

    def invalidate_pattern(self, pattern: PatternSpec) -> list[str]:
        """Remove every entry whose key matches *pattern*. Returns the removed keys.

        Plain strings are treated as globs; mappings are validated as
        ``CachePattern``.

        Raises:
            InvalidPatternError: The pattern does not compile. Nothing is removed.
        """
        spec = as_pattern(pattern)
        matches = compile_pattern(spec)
        label = spec.pattern
        events: list[CacheEventRecord] = []
        with self._lock:
            keys = [key for key in self._entries if matches(key)]
            for key in keys:
                self._remove_locked(key, RemovalReason.INVALIDATED, events)
            self._emit(
                events, CacheEvent.PATTERN_INVALIDATED, None, pattern=label, count=len(keys)
            )
        logger.info("Pattern invalidation: %s (%d entries)", label, len(keys))
        self._dispatch(events)
        return keys

    def get_keys_by_tag(self, tag: str) -> list[str]:
        with self._lock:
            return self._tags.keys(tag)

    # ── Convenience ──────────────────────────────────────────────────────

    def get_or_set(
        self,
        key: str,
        supplier: Callable[[], Any],
        ttl_seconds: TTLValue = None,
        tags: Iterable[str] | None = None,
    ) -> Any:
        """Return the cached value or compute it with *supplier* and store it.

        *supplier* runs outside the cache lock. Its exceptions propagate and
        leave the cache untouched. With ``single_flight`` enabled, concurrent
        misses on the same key share one supplier call.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        if self._flights is None:
            return self._load(key, supplier, ttl_seconds, tags)
        return self._flights.do(
            key, lambda: self._load(key, supplier, ttl_seconds, tags, recheck=True)
        )

    async def aget_or_set(
        self,
        key: str,
        supplier: Callable[[], Awaitable[Any]],
        ttl_seconds: TTLValue = None,
        tags: Iterable[str] | None = None,
    ) -> Any:
        """Async variant of :meth:`get_or_set` for coroutine suppliers."""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value
        if self._async_flights is None:
            return await self._aload(key, supplier, ttl_seconds, tags)
        return await self._async_flights.do(
            key, lambda: self._aload(key, supplier, ttl_seconds, tags, recheck=True)
        )

    def mget(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the found subset of *keys*. Each lookup counts as a read."""
        found: dict[str, Any] = {}
        for key in keys:
            value = self.get(key, _MISSING)
            if value is not _MISSING:
                found[key] = value
        return found

    def mset(self, items: Iterable[CacheItem | Mapping[str, Any]]) -> None:
        """Store each item in order. Items written before a failure stay written."""
        for raw in items:
            item = raw if isinstance(raw, CacheItem) else CacheItem.model_validate(raw)
            self.set(
                item.key,
                item.value,
                item.ttl_seconds,
                item.tags,
                size_bytes=item.size_bytes,
            )

    def warm_cache(
        self,
        loader: Callable[[], WarmupSource],
        *,
        attempts: int = 3,
        wait: wait_base | None = None,
    ) -> int:
        """Preload entries produced by *loader*, retrying failed loads.

        Returns:
            Number of entries stored.

        Raises:
            CacheWarmupError: *loader* failed on every attempt.
        """
        logger.info("Starting cache warm-up")
        items = load_with_retry(loader, attempts=attempts, wait=wait)
        self.mset(items)
        logger.info("Cache warm-up completed (%d items)", len(items))
        return len(items)

    async def awarm_cache(
        self,
        loader: Callable[[], Awaitable[WarmupSource]],
        *,
        attempts: int = 3,
        wait: wait_base | None = None,
    ) -> int:
        """Async variant of :meth:`warm_cache`."""
        logger.info("Starting cache warm-up")
        items = await aload_with_retry(loader, attempts=attempts, wait=wait)
        self.mset(items)
        logger.info("Cache warm-up completed (%d items)", len(items))
        return len(items)

    # ── Introspection ────────────────────────────────────────────────────

    def get_metrics(self) -> CacheMetrics:
        with self._lock:
            return self._metrics.snapshot()

    def get_stats(self, top: int = 10) -> CacheStats:
        """Size, hit rate, average entry age and the most accessed keys."""
        with self._lock:
            now = self._clock()
            entries = list(self._entries.values())
            ages = [entry.age(now) for entry in entries]
            ranked = sorted(entries, key=lambda e: e.access_count, reverse=True)[:top]
            return CacheStats(
                entries=len(entries),
                size_bytes=self._metrics.size_bytes,
                max_size_bytes=self.settings.max_size_bytes,
                hit_rate=self._metrics.hit_rate,
                average_age_seconds=sum(ages) / len(ages) if ages else 0.0,
                top_keys=[
                    KeyStats(key=e.key, access_count=e.access_count, age_seconds=e.age(now))
                    for e in ranked
                ],
            )

    def get_entries(self) -> list[CacheEntry]:
        """Copies of every stored entry, oldest access first."""
        with self._lock:
            return [
                self._entries[key].model_copy(update={"tags": set(self._entries[key].tags)})
                for key in self._recency
            ]

    # ── Observers ────────────────────────────────────────────────────────

    def subscribe(
        self, observer: CacheObserver | Callable[[CacheEventRecord], None]
    ) -> CacheObserver:
        """Register *observer* (or a plain callable). Returns the registered observer."""
        if not isinstance(observer, CacheObserver):
            observer = CallbackObserver(observer)
        with self._lock:
            self._observers = (*self._observers, observer)
        return observer

    def unsubscribe(self, observer: CacheObserver) -> bool:
        with self._lock:
            if observer not in self._observers:
                return False
            self._observers = tuple(o for o in self._observers if o is not observer)
        return True

    # ── Internals ────────────────────────────────────────────────────────

    def _measure(self, value: Any, size_bytes: int | None) -> int:
        if size_bytes is None:
            return self._estimate_size(value)
        if size_bytes < 0:
            raise ValueError("size_bytes must be non-negative")
        return int(size_bytes)

    def _resolve_expiry(self, ttl_seconds: TTLValue, now: float) -> float | None:
        if ttl_seconds is Expiry.NEVER:
            return None
        if isinstance(ttl_seconds, bool):
            raise InvalidTTLError(f"TTL must be a number of seconds, got {ttl_seconds!r}")
        if ttl_seconds is None or ttl_seconds == 0:
            ttl_seconds = self.settings.default_ttl_seconds
            if not ttl_seconds:
                return None
        if (
            not isinstance(ttl_seconds, (int, float))
            or not math.isfinite(ttl_seconds)
            or ttl_seconds < 0
        ):
            raise InvalidTTLError(
                f"TTL must be a non-negative finite number of seconds, got {ttl_seconds!r}"
            )
        expires_at = now + ttl_seconds
        # Sub-resolution TTLs still have to land strictly after now
        return expires_at if expires_at > now else math.nextafter(now, math.inf)

    def _lookup_locked(
        self, key: str, now: float, events: list[CacheEventRecord]
    ) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            self._remove_locked(key, RemovalReason.EXPIRED, events)
            return None
        return entry

    def _peek(self, key: str) -> Any:
        events: list[CacheEventRecord] = []
        with self._lock:
            entry = self._lookup_locked(key, self._clock(), events)
        self._dispatch(events)
        return _MISSING if entry is None else entry.value

    def _make_room_locked(self, size: int, now: float, events: list[CacheEventRecord]) -> None:
        max_size = self.settings.max_size_bytes
        if self._metrics.size_bytes + size <= max_size:
            return

        self._expire_due_locked(now, events)
        evicted = 0
        while self._metrics.size_bytes + size > max_size:
            victim = self._recency.oldest()
            if victim is None:
                break
            self._remove_locked(victim, RemovalReason.EVICTED, events)
            evicted += 1

        if evicted:
            logger.info("Evicted %d entries to fit %d bytes", evicted, size)
        if self._metrics.size_bytes + size > max_size:
            logger.warning(
                "Entry of %d bytes exceeds max_size_bytes=%d; storing anyway", size, max_size
            )

    def _expire_due_locked(self, now: float, events: list[CacheEventRecord]) -> int:
        removed = 0
        for key in self._expiry.pop_due(now):
            if self._remove_locked(key, RemovalReason.EXPIRED, events) is not None:
                removed += 1
        return removed

    def _remove_locked(
        self, key: str, reason: RemovalReason, events: list[CacheEventRecord]
    ) -> CacheEntry | None:
        """The single removal path: entry map, schedule, tags, recency, size."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return None

        self._expiry.cancel(key)
        self._tags.remove(key, entry.tags)
        self._recency.discard(key)
        self._metrics.entry_removed(entry.size_bytes)

        if reason == RemovalReason.EVICTED:
            self._metrics.record_eviction()
            self._emit(events, CacheEvent.EVICT, key, size_bytes=entry.size_bytes)
        elif reason == RemovalReason.EXPIRED:
            self._metrics.record_expiration()
            self._emit(events, CacheEvent.EXPIRE, key, size_bytes=entry.size_bytes)
        else:
            self._metrics.record_delete()
            # A replacement is announced by the SET that follows it
            if reason != RemovalReason.REPLACED:
                self._emit(
                    events,
                    CacheEvent.DELETE,
                    key,
                    size_bytes=entry.size_bytes,
                    reason=str(reason),
                )

        logger.debug("Cache %s: %s (%d bytes)", reason, key, entry.size_bytes)
        return entry

    def _load(
        self,
        key: str,
        supplier: Callable[[], Any],
        ttl_seconds: TTLValue,
        tags: Iterable[str] | None,
        recheck: bool = False,
    ) -> Any:
        if recheck:
            cached = self._peek(key)
            if cached is not _MISSING:
                return cached
        try:
            value = supplier()
        except Exception as exc:
            logger.error("Failed to fetch data for cache key %s: %s", key, exc)
            raise
        self.set(key, value, ttl_seconds, tags)
        return value

    async def _aload(
        self,
        key: str,
        supplier: Callable[[], Awaitable[Any]],
        ttl_seconds: TTLValue,
        tags: Iterable[str] | None,
        recheck: bool = False,
    ) -> Any:
        if recheck:
            cached = self._peek(key)
            if cached is not _MISSING:
                return cached
        try:
            value = await supplier()
        except Exception as exc:
            logger.error("Failed to fetch data for cache key %s: %s", key, exc)
            raise
        self.set(key, value, ttl_seconds, tags)
        return value

    def _emit(
        self,
        events: list[CacheEventRecord],
        event: CacheEvent,
        key: str | None,
        **details: Any,
    ) -> None:
        if not self._observers:
            return
        events.append(
            CacheEventRecord(event=event, key=key, details=details, timestamp=self._clock())
        )

    def _dispatch(self, events: list[CacheEventRecord]) -> None:
        if events:
            notify(self._observers, events)


def _as_tag_set(tags: Iterable[str] | None) -> set[str]:
    if not tags:
        return set()
    if isinstance(tags, str):
        return {tags}
    return set(tags)
