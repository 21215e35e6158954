from enum import Enum, StrEnum


class PatternType(StrEnum):
    GLOB = "glob"
    REGEX = "regex"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    CONTAINS = "contains"


class CacheEvent(StrEnum):
    SET = "set"
    HIT = "hit"
    MISS = "miss"
    DELETE = "delete"
    EVICT = "evict"
    EXPIRE = "expire"
    CLEAR = "clear"
    TAGS_INVALIDATED = "tags_invalidated"
    PATTERN_INVALIDATED = "pattern_invalidated"


class RemovalReason(StrEnum):
    DELETED = "deleted"
    INVALIDATED = "invalidated"
    EVICTED = "evicted"
    EXPIRED = "expired"
    REPLACED = "replaced"


class Expiry(Enum):
    """Explicit TTL sentinel. ``Expiry.NEVER`` disables expiration."""

    NEVER = "never"


NO_EXPIRY = Expiry.NEVER
