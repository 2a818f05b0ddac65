"""TTL cache for external lookups (geocoding, routing, places).

One ``APICache`` instance is created by the caller and injected into the
search service; there is no module-level singleton. Entries expire lazily on
read, and ``cleanup()`` (or ``run_periodic_cleanup``) sweeps the rest.
"""
from __future__ import annotations

import asyncio
import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from route_search import config
from route_search.logging_setup import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry:
    data: Any
    stored_at: float
    expires_at: float


def _canonical(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(_canonical(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    return value


def cache_key(prefix: str, params: Dict[str, Any]) -> str:
    """Stable key: the same params in any order map to the same string."""
    encoded = json.dumps(_canonical(params), sort_keys=True, default=str, separators=(",", ":"))
    return f"{prefix}:{encoded}"


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    waiters: int = 0


class APICache:
    def __init__(
        self,
        default_ttl: float = config.CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[str, _KeyLock] = {}

    def get(self, prefix: str, params: Dict[str, Any]) -> Optional[Any]:
        key = cache_key(prefix, params)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._store[key]
                logger.debug("Cache expired %s", key)
                return None
        logger.debug("Cache hit %s", key)
        return entry.data

    def set(self, prefix: str, params: Dict[str, Any], data: Any, ttl: float | None = None) -> None:
        key = cache_key(prefix, params)
        now = self._clock()
        with self._lock:
            self._store[key] = CacheEntry(data=data, stored_at=now, expires_at=now + (ttl or self.default_ttl))
        logger.debug("Cache set %s", key)

    def clear(self, prefix: str | None = None) -> int:
        with self._lock:
            if prefix is None:
                removed = len(self._store)
                self._store.clear()
            else:
                doomed = [key for key in self._store if key.startswith(f"{prefix}:")]
                for key in doomed:
                    del self._store[key]
                removed = len(doomed)
        logger.info("Cache cleared %s (%d entries)", f"{prefix}*" if prefix else "all", removed)
        return removed

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._store.items() if now >= entry.expires_at]
            for key in expired:
                del self._store[key]
        if expired:
            logger.info("Cache cleanup removed %d expired entries", len(expired))
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            keys: List[str] = list(self._store.keys())
        return {"size": len(keys), "keys": keys}

    async def with_cache(
        self,
        prefix: str,
        params: Dict[str, Any],
        fetcher: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """Return the cached value or await ``fetcher`` once per key.

        Concurrent callers for the same key wait on a per-key lock, so only
        one of them reaches the external service. ``None`` results are not
        stored, letting a later call retry. A key's lock is dropped once its
        last waiter is done.
        """
        cached = self.get(prefix, params)
        if cached is not None:
            return cached

        key = cache_key(prefix, params)
        with self._lock:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = self._key_locks[key] = _KeyLock()
            key_lock.waiters += 1
        try:
            async with key_lock.lock:
                cached = self.get(prefix, params)
                if cached is not None:
                    return cached
                data = await fetcher()
                if data is not None:
                    self.set(prefix, params, data, ttl)
                return data
        finally:
            with self._lock:
                key_lock.waiters -= 1
                if key_lock.waiters == 0:
                    del self._key_locks[key]

    async def run_periodic_cleanup(self, interval: float = config.CACHE_SWEEP_SECONDS) -> None:
        """Sweep expired entries forever; cancel the task to stop it."""
        while True:
            await asyncio.sleep(interval)
            self.cleanup()
