"""Hit/miss and capacity bookkeeping."""

from intelligent_cache.models.metrics import CacheMetrics


class MetricsRecorder:
    """Tracks cumulative cache counters and live size.

    Args:
        enabled: When False the cumulative counters (hits, misses, sets,
            deletes, evictions, expirations) stay at zero. ``entries`` and
            ``size_bytes`` are always maintained since capacity checks
            depend on them.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.evictions = 0
        self.expirations = 0
        self.entries = 0
        self.size_bytes = 0

    @property
    def hit_rate(self) -> float:
        """Percentage of reads that returned a value (0-100)."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total * 100

    def record_hit(self) -> None:
        if self.enabled:
            self.hits += 1

    def record_miss(self) -> None:
        if self.enabled:
            self.misses += 1

    def record_set(self) -> None:
        if self.enabled:
            self.sets += 1

    def record_delete(self) -> None:
        if self.enabled:
            self.deletes += 1

    def record_eviction(self) -> None:
        if self.enabled:
            self.evictions += 1

    def record_expiration(self) -> None:
        if self.enabled:
            self.expirations += 1

    def entry_added(self, size_bytes: int) -> None:
        self.entries += 1
        self.size_bytes += size_bytes

    def entry_removed(self, size_bytes: int) -> None:
        self.entries -= 1
        self.size_bytes -= size_bytes

    def reset_live(self) -> None:
        self.entries = 0
        self.size_bytes = 0

    def reset_counters(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.evictions = 0
        self.expirations = 0

    def snapshot(self) -> CacheMetrics:
        return CacheMetrics(
            hits=self.hits,
            misses=self.misses,
            sets=self.sets,
            deletes=self.deletes,
            evictions=self.evictions,
            expirations=self.expirations,
            entries=self.entries,
            size_bytes=self.size_bytes,
            hit_rate=self.hit_rate,
        )
