"""Resource Cache — in-memory key/value store with per-entry TTL.

Holds rendered feed documents and "absent" markers for failed lookups.
Entries past their expiry are treated as missing on read and swept out
periodically on write.

``get_or_fill`` adds single-flight miss handling: one generation per key is
in flight at a time; concurrent callers for the same key wait on a per-key
``asyncio.Lock`` and re-read the entry once the first caller has stored it.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from src.utils.logging_config import get_logger

logger = get_logger(__name__)


class CacheMarker(Enum):
    MISS = "miss"
    ABSENT = "absent"


MISS = CacheMarker.MISS
ABSENT = CacheMarker.ABSENT

CachedValue = Union[str, CacheMarker]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: CachedValue
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResourceCache:
    """Per-key TTL cache safe for concurrent ``get``/``set``."""

    def __init__(
        self,
        ttl_seconds: float = 60,
        negative_ttl_seconds: Optional[float] = None,
        check_period_seconds: float = 120,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.negative_ttl_seconds = ttl_seconds if negative_ttl_seconds is None else negative_ttl_seconds
        self.check_period_seconds = check_period_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._fill_locks: dict[str, asyncio.Lock] = {}
        self._last_purge = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> CachedValue:
        """Return the stored value (possibly ``ABSENT``) or ``MISS``."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS
            if entry.is_expired(now):
                del self._entries[key]
                return MISS
            return entry.value

    def set(self, key: str, value: CachedValue, ttl_seconds: Optional[float] = None) -> None:
        if value is MISS:
            raise ValueError("MISS cannot be stored in the cache")

        if ttl_seconds is None:
            ttl_seconds = self.negative_ttl_seconds if value is ABSENT else self.ttl_seconds

        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=now + ttl_seconds)
            if now - self._last_purge >= self.check_period_seconds:
                self._purge_locked(now)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry; return how many were removed."""
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._last_purge = now
        if expired:
            logger.debug("Purged expired cache entries", count=len(expired))
        return len(expired)

    async def get_or_fill(
        self,
        key: str,
        fill: Callable[[], Awaitable[CachedValue]],
    ) -> CachedValue:
        """Return the cached value for *key*, generating it on a miss.

        Fast path: return a live entry without locking.
        Slow path: take the key's fill lock, double-check, then await
        *fill* and store its result (documents and ``ABSENT`` alike).
        """
        value = self.get(key)
        if value is not MISS:
            return value

        lock = self._fill_locks.setdefault(key, asyncio.Lock())
        try:
            async with lock:
                value = self.get(key)
                if value is not MISS:
                    return value

                value = await fill()
                self.set(key, value)
                return value
        finally:
            if not lock.locked() and self._fill_locks.get(key) is lock:
                del self._fill_locks[key]
