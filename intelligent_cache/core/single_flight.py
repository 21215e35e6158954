"""Deduplication of concurrent loads for the same key."""

import asyncio
import threading
from collections.abc import Awaitable, Callable
from typing import Any


class _Call:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: BaseException | None = None


class SingleFlight:
    """Runs at most one *fn* per key at a time across threads.

    Callers arriving while a load is in flight block until it finishes and
    then share its result, or its exception. Nothing is remembered after
    the call completes; caching the result is the caller's job.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, _Call] = {}

    def do(self, key: str, fn: Callable[[], Any]) -> Any:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if call is None:
                call = _Call()
                self._calls[key] = call

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()
        return call.result

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls


class AsyncSingleFlight:
    """Coroutine counterpart of :class:`SingleFlight` for one event loop.

    If the leading task is cancelled, its waiters are not: the next one in
    line starts a fresh load and the rest wait on that.
    """

    def __init__(self) -> None:
        self._calls: dict[str, asyncio.Future[Any]] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        while True:
            pending = self._calls.get(key)
            if pending is None:
                return await self._lead(key, fn)
            try:
                # Shield so a cancelled waiter does not cancel the shared load
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                task = asyncio.current_task()
                # Retry only when the leader, not this task, was cancelled
                if not pending.cancelled() or (task is not None and task.cancelling()):
                    raise

    async def _lead(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._calls[key] = future
        try:
            result = await fn()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except BaseException as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited future does not warn on GC
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            if self._calls.get(key) is future:
                del self._calls[key]

    def in_flight(self, key: str) -> bool:
        return key in self._calls
