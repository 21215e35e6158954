"""Secondary index from tag to the keys carrying it."""

from collections.abc import Iterable


class TagIndex:
    """Maps each tag to the keys currently labelled with it.

    The index only holds keys, never entries. Buckets are insertion-ordered
    so bulk invalidation returns keys in a stable order, and empty buckets
    are pruned as soon as their last key leaves.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, dict[str, None]] = {}

    def add(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            self._buckets.setdefault(tag, {})[key] = None

    def remove(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            bucket = self._buckets.get(tag)
            if bucket is None:
                continue
            bucket.pop(key, None)
            if not bucket:
                del self._buckets[tag]

    def keys(self, tag: str) -> list[str]:
        return list(self._buckets.get(tag, ()))

    def keys_for(self, tags: Iterable[str]) -> list[str]:
        """Union of keys across *tags*, each key listed once."""
        seen: dict[str, None] = {}
        for tag in tags:
            for key in self._buckets.get(tag, ()):
                seen[key] = None
        return list(seen)

    def tags(self) -> list[str]:
        return list(self._buckets)

    def clear(self) -> None:
        self._buckets.clear()

    def __contains__(self, tag: object) -> bool:
        return tag in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)
