"""
Fast in-process cache tier

Bounded-capacity LRU with a per-entry time-to-live. Recency is refreshed on
get() and on has(), so an entry that callers keep checking is never the
first to be evicted. Expired entries are dropped lazily when touched.

The clock is injectable so tests can move time forward without sleeping:

    now = [0.0]
    cache = MemoryCache(capacity=2, ttl=10, clock=lambda: now[0])
    cache.set('a', 1)
    now[0] = 11
    assert cache.get('a') is None
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    """One cached value and its lifetime"""
    key: str
    value: Any
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl


class MemoryCache:
    """
    Thread-safe LRU cache with TTL

    Attributes:
        capacity: Maximum number of entries
        ttl: Default time-to-live in seconds
    """

    def __init__(self, capacity: int = 200, ttl: float = 600, clock: Optional[Callable[[], float]] = None):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1: {capacity}")

        self.capacity = capacity
        self.ttl = ttl
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

        self.stats_data = {
            'hits': 0,
            'misses': 0,
            'sets': 0,
            'evictions': 0,
            'expirations': 0,
        }

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the entry if present and fresh, refreshing its recency"""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.stats_data['expirations'] += 1
            return None
        self._entries.move_to_end(key)
        return entry

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self.stats_data['misses'] += 1
                return None
            self.stats_data['hits'] += 1
            return entry.value

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]

            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                inserted_at=self._clock(),
                ttl=self.ttl if ttl is None else ttl,
            )
            self.stats_data['sets'] += 1

            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)
                self.stats_data['evictions'] += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self.stats_data['hits'] + self.stats_data['misses']
            return {
                **self.stats_data,
                'size': len(self._entries),
                'capacity': self.capacity,
                'hit_rate': self.stats_data['hits'] / lookups if lookups else 0.0,
            }
