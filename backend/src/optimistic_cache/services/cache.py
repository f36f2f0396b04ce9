"""Client cache protocol and a small in-process query cache implementing it."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Hashable, Protocol

from optimistic_cache.logging_config import get_logger

logger = get_logger(__name__)

CacheKey = tuple[Hashable, ...]
Fetcher = Callable[[], Awaitable[Any]]
Subscriber = Callable[[CacheKey, Any], None]


class ClientCache(Protocol):
    """Key-addressed client cache the engine mutates and invalidates."""

    def get(self, key: CacheKey) -> Any: ...

    def set(self, key: CacheKey, value: Any | Callable[[Any], Any]) -> None: ...

    async def invalidate(self, key: CacheKey) -> None: ...  # mark stale, refetch if possible

    async def cancel_inflight(self, key: CacheKey) -> None: ...


class QueryCache:
    """Dict-backed ClientCache with per-key fetchers, stale flags and subscribers.

    A key registered with a fetcher is refetched on invalidate; a key without
    one is only marked stale.
    """

    def __init__(self) -> None:
        self._values: dict[CacheKey, Any] = {}
        self._stale: set[CacheKey] = set()
        self._fetchers: dict[CacheKey, Fetcher] = {}
        self._inflight: dict[CacheKey, asyncio.Task[Any]] = {}
        self._subscribers: dict[CacheKey, list[Subscriber]] = {}

    def register(self, key: CacheKey, fetcher: Fetcher | None = None) -> None:
        """Attach (or detach, with None) the fetcher used to refresh ``key``."""
        if fetcher is None:
            self._fetchers.pop(key, None)
        else:
            self._fetchers[key] = fetcher

    def subscribe(self, key: CacheKey, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback(key, value)`` after every write to ``key``. Returns an unsubscribe function."""
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def get(self, key: CacheKey) -> Any:
        return self._values.get(key)

    def set(self, key: CacheKey, value: Any | Callable[[Any], Any]) -> None:
        if callable(value):
            value = value(self._values.get(key))
        self._values[key] = value
        for callback in list(self._subscribers.get(key, [])):
            callback(key, value)

    def is_stale(self, key: CacheKey) -> bool:
        return key in self._stale

    def is_fetching(self, key: CacheKey) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    def refetch(self, key: CacheKey) -> asyncio.Task[Any] | None:
        """Start a background refetch of ``key``; returns the task, or None without a fetcher."""
        fetcher = self._fetchers.get(key)
        if fetcher is None:
            return None
        existing = self._inflight.get(key)
        if existing is not None and not existing.done():
            return existing
        task = asyncio.ensure_future(self._run_fetch(key, fetcher))
        self._inflight[key] = task
        return task

    async def _run_fetch(self, key: CacheKey, fetcher: Fetcher) -> Any:
        try:
            value = await fetcher()
            self.set(key, value)
            self._stale.discard(key)
            return value
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    async def invalidate(self, key: CacheKey) -> None:
        self._stale.add(key)
        await self.cancel_inflight(key)
        task = self.refetch(key)
        if task is None:
            return
        # a refetch cancelled by a later cancel_inflight leaves the key stale
        await asyncio.wait([task])
        if not task.cancelled():
            task.result()

    async def cancel_inflight(self, key: CacheKey) -> None:
        task = self._inflight.pop(key, None)
        if task is None or task.done():
            return
        task.cancel()
        # asyncio.wait does not re-raise the task's CancelledError
        await asyncio.wait([task])
        logger.debug("cache_fetch_cancelled", key=repr(key))
