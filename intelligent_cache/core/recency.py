"""Access-order tracking for LRU eviction."""

from collections import OrderedDict
from collections.abc import Iterator


class RecencyTracker:
    """Keys ordered from least to most recently used.

    Backed by an ``OrderedDict`` so every operation is O(1). Keys that were
    never touched after insertion keep their insertion order, which makes
    eviction deterministic when access times tie.
    """

    def __init__(self) -> None:
        self._order: OrderedDict[str, None] = OrderedDict()

    def add(self, key: str) -> None:
        """Insert *key* as most recently used (moves it if already tracked)."""
        self._order[key] = None
        self._order.move_to_end(key)

    def touch(self, key: str) -> None:
        if key in self._order:
            self._order.move_to_end(key)

    def discard(self, key: str) -> None:
        self._order.pop(key, None)

    def oldest(self) -> str | None:
        """Return the least recently used key, or None when empty."""
        return next(iter(self._order), None)

    def clear(self) -> None:
        self._order.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._order

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)
