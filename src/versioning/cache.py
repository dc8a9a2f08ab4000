"""In-process TTL cache for short-lived registry lookups."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)


class TTLCache:
    """Bounded in-memory cache with per-entry expiry.

    Args:
        default_ttl: Seconds an entry stays fresh when ``set`` is given no TTL.
        max_entries: Oldest entries are evicted beyond this size.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        default_ttl: float = 300,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock
        self._cache: Dict[str, CacheEntry[Any]] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        entry = self._cache.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._cache[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Cache ``value`` for ``ttl`` seconds (default TTL when None)."""
        now = self._clock()
        effective_ttl = self._default_ttl if ttl is None else ttl
        self._cache[key] = CacheEntry(value=value, expires_at=now + effective_ttl, created_at=now)
        if len(self._cache) > self._max_entries:
            self._evict_oldest(len(self._cache) - self._max_entries)

    def _evict_oldest(self, count: int) -> None:
        """Evict the oldest entries."""
        sorted_keys = sorted(self._cache, key=lambda k: self._cache[k].created_at)
        for key in sorted_keys[:count]:
            del self._cache[key]
