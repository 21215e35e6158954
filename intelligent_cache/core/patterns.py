"""Key matching for pattern-based invalidation."""

import re
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from intelligent_cache.core.errors import InvalidPatternError
from intelligent_cache.models.entry import CachePattern
from intelligent_cache.models.enums import PatternType

KeyPredicate = Callable[[str], bool]
PatternSpec = CachePattern | str | Mapping[str, Any]


def glob_to_regex(glob: str) -> str:
    """Translate a glob to an anchored regex.

    Only ``*`` (any run of characters) and ``?`` (one character) are
    special; everything else, brackets included, matches literally.
    """
    parts = []
    for char in glob:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + r"\Z"


def as_pattern(pattern: PatternSpec) -> CachePattern:
    """Normalise *pattern* to a ``CachePattern``. Plain strings are globs.

    Raises:
        InvalidPatternError: A mapping is missing fields or names an unknown type.
    """
    if isinstance(pattern, CachePattern):
        return pattern
    if isinstance(pattern, str):
        return CachePattern(pattern=pattern)
    try:
        return CachePattern.model_validate(pattern)
    except ValidationError as exc:
        raise InvalidPatternError(f"Invalid pattern specification: {exc}") from exc


def compile_pattern(pattern: PatternSpec) -> KeyPredicate:
    """Build a predicate for *pattern*. Plain strings are treated as globs.

    Raises:
        InvalidPatternError: If a regex (or translated glob) fails to compile
            or the pattern type is unknown.
    """
    pattern = as_pattern(pattern)

    text = pattern.pattern
    kind = pattern.type

    if kind == PatternType.PREFIX:
        return lambda key: key.startswith(text)
    if kind == PatternType.SUFFIX:
        return lambda key: key.endswith(text)
    if kind == PatternType.CONTAINS:
        return lambda key: text in key

    if kind == PatternType.GLOB:
        source = glob_to_regex(text)
    elif kind == PatternType.REGEX:
        source = text
    else:
        raise InvalidPatternError(f"Unsupported pattern type: {kind!r}")

    try:
        compiled = re.compile(source, re.DOTALL if kind == PatternType.GLOB else 0)
    except re.error as exc:
        raise InvalidPatternError(f"Invalid {kind} pattern {text!r}: {exc}") from exc

    if kind == PatternType.GLOB:
        return lambda key: compiled.match(key) is not None
    return lambda key: compiled.search(key) is not None


def matches_pattern(key: str, pattern: PatternSpec) -> bool:
    """Return True if *key* matches *pattern*."""
    return compile_pattern(pattern)(key)
