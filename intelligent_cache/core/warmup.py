"""Retry helpers for cache warm-up loaders."""

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    Retrying,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from intelligent_cache.core.errors import CacheWarmupError
from intelligent_cache.models.entry import CacheItem

logger = logging.getLogger(__name__)

WarmupSource = Iterable[CacheItem | Mapping[str, Any]]


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """Tenacity ``before_sleep`` callback that logs each retry."""
    attempt = retry_state.attempt_number
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("Warm-up attempt %d failed: %s", attempt, exc)


def _retry_kwargs(attempts: int, wait: wait_base | None) -> dict[str, Any]:
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    return {
        "stop": stop_after_attempt(attempts),
        "wait": wait if wait is not None else wait_exponential(multiplier=1, min=1, max=10),
        "before_sleep": log_retry_attempt,
        "reraise": True,
    }


def coerce_items(raw: WarmupSource) -> list[CacheItem]:
    """Validate loader output into ``CacheItem`` records."""
    return [
        item if isinstance(item, CacheItem) else CacheItem.model_validate(item)
        for item in raw
    ]


def load_with_retry(
    loader: Callable[[], WarmupSource],
    attempts: int = 3,
    wait: wait_base | None = None,
) -> list[CacheItem]:
    """Call *loader* until it succeeds or *attempts* is exhausted.

    Raises:
        CacheWarmupError: The loader raised on every attempt.
    """
    retrying = Retrying(**_retry_kwargs(attempts, wait))
    try:
        return retrying(lambda: coerce_items(loader()))
    except Exception as exc:
        logger.error("Cache warm-up failed after %d attempt(s): %s", attempts, exc)
        raise CacheWarmupError(f"Warm-up loader failed: {exc}") from exc


async def aload_with_retry(
    loader: Callable[[], Awaitable[WarmupSource]],
    attempts: int = 3,
    wait: wait_base | None = None,
) -> list[CacheItem]:
    """Async variant of :func:`load_with_retry`."""
    retrying = AsyncRetrying(**_retry_kwargs(attempts, wait))

    async def _load() -> list[CacheItem]:
        return coerce_items(await loader())

    try:
        return await retrying(_load)
    except Exception as exc:
        logger.error("Cache warm-up failed after %d attempt(s): %s", attempts, exc)
        raise CacheWarmupError(f"Warm-up loader failed: {exc}") from exc
