"""TTL scheduling: a single min-heap of deadlines plus a background sweeper."""

import heapq
import itertools
import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

# Rebuild the heap once stale items outnumber live ones by this factor
_COMPACT_RATIO = 2
_COMPACT_MIN_SIZE = 64


class ExpirationManager:
    """Tracks when each key expires.

    Rescheduling or cancelling a key does not search the heap. Each schedule
    carries a generation number and only the latest generation per key is
    live, so stale heap items are skipped when they surface and dropped in
    bulk by :meth:`_maybe_compact`.

    Not thread-safe on its own; the owning cache serialises access.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, str]] = []
        self._live: dict[str, tuple[float, int]] = {}
        self._sequence = itertools.count()

    def schedule(self, key: str, expires_at: float) -> None:
        """Arm (or re-arm) expiration for *key*, replacing any prior schedule."""
        generation = next(self._sequence)
        self._live[key] = (expires_at, generation)
        heapq.heappush(self._heap, (expires_at, generation, key))
        self._maybe_compact()

    def cancel(self, key: str) -> bool:
        """Drop the live schedule for *key*. Returns True if one existed."""
        if self._live.pop(key, None) is None:
            return False
        self._maybe_compact()
        return True

    def deadline(self, key: str) -> float | None:
        scheduled = self._live.get(key)
        return scheduled[0] if scheduled else None

    def pop_due(self, now: float) -> list[str]:
        """Remove and return keys whose deadline is strictly before *now*."""
        due: list[str] = []
        while self._heap and self._heap[0][0] < now:
            expires_at, generation, key = heapq.heappop(self._heap)
            if self._live.get(key) == (expires_at, generation):
                del self._live[key]
                due.append(key)
        return due

    def next_deadline(self) -> float | None:
        """Earliest live deadline, or None when nothing is scheduled."""
        while self._heap:
            expires_at, generation, key = self._heap[0]
            if self._live.get(key) == (expires_at, generation):
                return expires_at
            heapq.heappop(self._heap)
        return None

    def clear(self) -> None:
        self._heap.clear()
        self._live.clear()

    def __len__(self) -> int:
        return len(self._live)

    def _maybe_compact(self) -> None:
        if len(self._heap) < _COMPACT_MIN_SIZE:
            return
        if len(self._heap) <= _COMPACT_RATIO * len(self._live):
            return
        self._heap = [
            (expires_at, generation, key)
            for key, (expires_at, generation) in self._live.items()
        ]
        heapq.heapify(self._heap)


class ExpirationSweeper:
    """Daemon thread that calls *sweep* every *interval_seconds*.

    Args:
        sweep: Callable that removes expired entries and returns how many.
        interval_seconds: Pause between sweeps.
        name: Thread name, useful in thread dumps.
    """

    def __init__(
        self,
        sweep: Callable[[], int],
        interval_seconds: float,
        name: str = "intelligent-cache-sweeper",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._sweep = sweep
        self.interval_seconds = interval_seconds
        self.name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        # Each run owns its stop event, so a thread that outlived a timed-out
        # stop() still exits once its current sweep returns
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop,), daemon=True, name=self.name
        )
        self._thread.start()
        logger.debug("Sweeper '%s' started (every %.1fs)", self.name, self.interval_seconds)

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(
                    "Sweeper '%s' did not stop within %.1fs", self.name, timeout
                )
        self._thread = None
        logger.debug("Sweeper '%s' stopped", self.name)

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.interval_seconds):
            try:
                removed = self._sweep()
            except Exception:
                # Keep the thread alive; the next tick retries
                logger.exception("Sweeper '%s' failed", self.name)
                continue
            if removed:
                logger.debug("Sweeper '%s' removed %d expired entries", self.name, removed)
