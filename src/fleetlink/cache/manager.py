"""
Stale-while-revalidate caching.

``RevalidatingCache`` holds one entry per key. Fresh entries are served with no
network call; stale entries are served immediately while exactly one
background refresh runs; missing entries are loaded in the foreground.
A failed load never evicts a previously cached value.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchFn = Callable[[], Awaitable[T]]


@dataclass
class CacheEntry(Generic[T]):
    """Cached value plus load bookkeeping for a single key."""

    value: T | None = None
    derived: Any = None
    fetched_at: float | None = None
    is_loading: bool = False
    is_refreshing: bool = False
    error: Exception | None = None
    has_value: bool = False
    task: "asyncio.Future[T] | None" = field(default=None, repr=False)

    def is_fresh(self, now: float, ttl: float) -> bool:
        return self.fetched_at is not None and now - self.fetched_at < ttl


@dataclass(frozen=True)
class CacheState(Generic[T]):
    """Immutable snapshot of an entry, handed to callers and subscribers."""

    value: T | None = None
    derived: Any = None
    fetched_at: float | None = None
    is_loading: bool = False
    is_refreshing: bool = False
    error: Exception | None = None

    @classmethod
    def of(cls, entry: "CacheEntry[T] | None") -> "CacheState[T]":
        if entry is None:
            return cls()
        return cls(
            value=entry.value,
            derived=entry.derived,
            fetched_at=entry.fetched_at,
            is_loading=entry.is_loading,
            is_refreshing=entry.is_refreshing,
            error=entry.error,
        )


Listener = Callable[[str, CacheState[Any]], None]


class RevalidatingCache(Generic[T]):
    """
    Generic stale-while-revalidate cache.

    Args:
        name: Used in log messages.
        default_ttl: Freshness window in seconds when ``fetch`` gets no ttl.
        derive: Optional function computing a derived value from each freshly
            fetched value (for example "days until the nearest expiry").
        clock: Time source returning epoch seconds.
    """

    def __init__(
        self,
        name: str = "cache",
        default_ttl: float = 300.0,
        derive: Callable[[T], Any] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.default_ttl = default_ttl
        self.derive = derive
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._listeners: list[tuple[str | None, Listener]] = []
        self._stats = {"hits": 0, "misses": 0, "stale_hits": 0, "refreshes": 0, "failures": 0}

    def state(self, key: str) -> CacheState[T]:
        """Current snapshot for ``key`` (empty when nothing is cached)."""
        return CacheState.of(self._entries.get(key))

    def keys(self) -> list[str]:
        return list(self._entries)

    def subscribe(self, listener: Listener, key: str | None = None) -> Callable[[], None]:
        """Call ``listener(key, state)`` on every change of ``key`` (or of any key)."""
        subscription = (key, listener)
        self._listeners.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._listeners:
                self._listeners.remove(subscription)

        return unsubscribe

    def _notify(self, key: str) -> None:
        snapshot = self.state(key)
        for wanted, listener in list(self._listeners):
            if wanted is None or wanted == key:
                try:
                    listener(key, snapshot)
                except Exception:
                    logger.exception("%s: subscriber failed for %s", self.name, key)

    async def fetch(
        self,
        key: str,
        fetch_fn: FetchFn[T],
        ttl: float | None = None,
        force_refresh: bool = False,
    ) -> CacheState[T]:
        """
        Return the cached state for ``key``, loading or refreshing as needed.

        Missing or forced entries are loaded before returning and any error
        from ``fetch_fn`` is re-raised unchanged (the previous value, if any,
        is kept). Stale entries return immediately while one background
        refresh runs.
        """
        ttl = self.default_ttl if ttl is None else ttl
        entry = self._entries.get(key)

        if entry is None or not entry.has_value or force_refresh:
            self._stats["misses"] += 1
            if entry is not None and entry.task is not None:
                # Join the load already in flight for this key
                await asyncio.shield(entry.task)
                return self.state(key)
            if entry is None:
                entry = CacheEntry()
                self._entries[key] = entry
            await asyncio.shield(self._start(key, entry, fetch_fn, background=False))
            return self.state(key)

        if entry.is_fresh(self._clock(), ttl):
            self._stats["hits"] += 1
            return self.state(key)

        self._stats["stale_hits"] += 1
        if entry.task is None:
            self._start(key, entry, fetch_fn, background=True)
        return self.state(key)

    def _start(
        self, key: str, entry: CacheEntry[T], fetch_fn: FetchFn[T], background: bool
    ) -> "asyncio.Future[T]":
        # Flags go up before the first suspension point
        if entry.has_value:
            entry.is_refreshing = True
        else:
            entry.is_loading = True
        task = asyncio.ensure_future(self._run(key, entry, fetch_fn))
        entry.task = task
        task.add_done_callback(lambda t: self._log_outcome(key, t, background))
        self._notify(key)
        return task

    async def _run(self, key: str, entry: CacheEntry[T], fetch_fn: FetchFn[T]) -> T:
        try:
            value = await fetch_fn()
            derived = self.derive(value) if self.derive else None
        except BaseException as e:
            self._settle(key, entry, error=e if isinstance(e, Exception) else None)
            raise

        if self._entries.get(key) is entry:
            entry.value = value
            entry.derived = derived
            entry.has_value = True
            entry.fetched_at = self._clock()
        self._settle(key, entry, error=None)
        self._stats["refreshes"] += 1
        return value

    def _settle(self, key: str, entry: CacheEntry[T], error: Exception | None) -> None:
        entry.is_loading = False
        entry.is_refreshing = False
        entry.task = None
        entry.error = error
        if self._entries.get(key) is entry:
            self._notify(key)

    def _log_outcome(self, key: str, task: "asyncio.Future[T]", background: bool) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        self._stats["failures"] += 1
        if background:
            logger.warning("%s: background refresh of %s failed: %s", self.name, key, error)
        else:
            logger.error("%s: failed to fetch %s: %s", self.name, key, error)

    def clear_cache(self, key: str | None = None) -> None:
        """Drop one entry, or all entries when ``key`` is None."""
        keys = [key] if key is not None else list(self._entries)
        for k in keys:
            if self._entries.pop(k, None) is not None:
                self._notify(k)

    def get_stats(self) -> dict[str, Any]:
        total = self._stats["hits"] + self._stats["stale_hits"] + self._stats["misses"]
        served = self._stats["hits"] + self._stats["stale_hits"]
        return {
            **self._stats,
            "total_requests": total,
            "hit_rate": served / total if total else 0.0,
            "cache_size": len(self._entries),
        }
