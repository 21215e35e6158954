"""Payload size estimation for capacity accounting.

Values are measured structurally rather than by serializing them. Objects
that know their own footprint can implement :class:`SupportsCacheSize`;
callers can also bypass estimation entirely with ``size_bytes=`` on
``set``.
"""

import sys
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

# Flat cost for scalars, roughly their JSON width
SCALAR_SIZE = 8


@runtime_checkable
class SupportsCacheSize(Protocol):
    def cache_size_bytes(self) -> int: ...


def estimate_size(value: Any) -> int:
    """Return an approximate size of *value* in bytes."""
    return _estimate(value, set())


def _estimate(value: Any, seen: set[int]) -> int:
    if value is None or isinstance(value, (bool, int, float)):
        return SCALAR_SIZE
    if isinstance(value, str):
        return len(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray)):
        return len(value)
    if isinstance(value, memoryview):
        return value.nbytes
    if isinstance(value, SupportsCacheSize):
        return max(0, int(value.cache_size_bytes()))

    # Containers can be self-referential
    marker = id(value)
    if marker in seen:
        return 0
    seen.add(marker)

    if isinstance(value, BaseModel):
        return sum(
            _estimate(name, seen) + _estimate(getattr(value, name), seen)
            for name in type(value).model_fields
        )
    if isinstance(value, Mapping):
        return sum(_estimate(k, seen) + _estimate(v, seen) for k, v in value.items())
    if isinstance(value, (list, tuple, set, frozenset)):
        return sum(_estimate(item, seen) for item in value)
    return sys.getsizeof(value)
