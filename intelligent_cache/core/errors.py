"""Exception hierarchy for cache operations.

Cache misses are normal outcomes and never raise from ``get``, ``has`` or
``delete``. The errors below are reserved for caller mistakes and for the
opt-in strict policies.
"""


class CacheError(Exception):
    """Base class for all cache errors."""


class KeyNotFoundError(CacheError, KeyError):
    """Key is absent or expired (raised only by ``cache[key]`` and ``get_ttl``)."""


class InvalidPatternError(CacheError, ValueError):
    """Invalidation pattern could not be compiled."""


class CapacityExceededError(CacheError):
    """Value is larger than the whole cache under the strict capacity policy."""


class InvalidTTLError(CacheError, ValueError):
    """TTL is negative or not a finite number."""


class CacheWarmupError(CacheError):
    """Warm-up loader failed on every attempt."""
