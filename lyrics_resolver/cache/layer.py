"""
Two-tier lyrics cache

    cache = LyricsCache(MemoryCache(200, 600), SQLiteStore(path))
    result = cache.get(query)        # fast tier, then durable tier
    cache.put(query, result)         # both tiers

Keys are Query.cache_key, the same normalization on write and read.

A durable hit is promoted into the fast tier. Durable-tier failures are
logged as warnings and the call carries on with the fast tier alone; the
cache never fails a resolution.
"""

from dataclasses import replace
from typing import Any, Dict, Optional

from ..config.settings import get_settings, Settings
from ..lyrics.models import Query, ResolutionResult
from ..utils.exceptions import CacheUnavailableError
from ..utils.logger import get_logger
from .memory import MemoryCache
from .store import DurableStore, NullStore, SQLiteStore


class LyricsCache:
    """
    Fast tier in front of a durable store

    Attributes:
        memory: In-process LRU/TTL tier
        durable: Durable store (NullStore when persistence is off)
        durable_ttl: Time-to-live for durable rows in seconds
    """

    def __init__(
        self,
        memory: Optional[MemoryCache] = None,
        durable: Optional[DurableStore] = None,
        durable_ttl: float = 2592000
    ):
        self.memory = memory or MemoryCache()
        self.durable = durable or NullStore()
        self.durable_ttl = durable_ttl
        self.logger = get_logger(__name__)

        self.durable_stats = {'hits': 0, 'errors': 0}

    def get(self, query: Query) -> Optional[ResolutionResult]:
        key = query.cache_key

        result = self.memory.get(key)
        if result is not None:
            return replace(result, from_cache=True)

        try:
            data = self.durable.get(key)
        except Exception as e:
            self._durable_failed(f"read for {query}", e)
            return None

        if data is None:
            return None

        try:
            result = ResolutionResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Discarding unreadable durable cache entry for {query}: {e}")
            return None

        self.durable_stats['hits'] += 1
        self.memory.set(key, result)
        return replace(result, from_cache=True)

    def put(self, query: Query, result: ResolutionResult) -> None:
        key = query.cache_key
        stored = replace(result, from_cache=False, verification=None)

        self.memory.set(key, stored)

        try:
            self.durable.put(key, stored.to_dict(), self.durable_ttl)
        except Exception as e:
            self._durable_failed(f"write for {query}", e)

    def invalidate(self, query: Query) -> bool:
        """Drop one song from both tiers; True if the fast tier held it"""
        removed = self.memory.delete(query.cache_key)
        try:
            self.durable.delete(query.cache_key)
        except Exception as e:
            self._durable_failed(f"delete for {query}", e)
        return removed

    def clear(self) -> int:
        """Empty both tiers and return the number of durable rows removed"""
        self.memory.clear()
        try:
            return self.durable.clear()
        except Exception as e:
            self._durable_failed("clear", e)
            return 0

    def purge_expired(self) -> int:
        """Remove expired durable rows and return how many were removed"""
        try:
            return self.durable.purge_expired()
        except Exception as e:
            self._durable_failed("purge", e)
            return 0

    def stats(self) -> Dict[str, Any]:
        try:
            durable_size = self.durable.count()
        except Exception as e:
            self._durable_failed("count", e)
            durable_size = None

        return {
            'memory': self.memory.stats(),
            'durable': {
                'backend': self.durable.name,
                'size': durable_size,
                **self.durable_stats,
            },
        }

    def close(self) -> None:
        try:
            self.durable.close()
        except Exception as e:
            self._durable_failed("close", e)

    def _durable_failed(self, operation: str, error: Exception) -> None:
        # Errors from the durable store never reach callers
        self.durable_stats['errors'] += 1
        self.logger.warning(f"Durable cache {operation} failed: {error}")


def create_cache(settings: Optional[Settings] = None) -> LyricsCache:
    """
    Build the cache layer from settings

    A durable store that cannot be opened is replaced by NullStore with a
    warning, so a read-only home directory never stops resolution.
    """
    settings = settings or get_settings()
    logger = get_logger(__name__)

    memory = MemoryCache(capacity=settings.cache.capacity, ttl=settings.cache.ttl)

    durable: DurableStore = NullStore()
    if settings.cache.durable_backend == 'sqlite':
        try:
            durable = SQLiteStore(settings.get_durable_cache_path())
        except CacheUnavailableError as e:
            logger.warning(f"Durable cache disabled: {e.message}")

    return LyricsCache(memory, durable, durable_ttl=settings.cache.durable_ttl)
