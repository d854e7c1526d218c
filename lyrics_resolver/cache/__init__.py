"""
Cache package
Fast in-process LRU/TTL tier in front of a durable SQLite store
"""

from .memory import MemoryCache, CacheEntry
from .store import DurableStore, NullStore, SQLiteStore
from .layer import LyricsCache, create_cache

__all__ = [
    'MemoryCache',
    'CacheEntry',
    'DurableStore',
    'NullStore',
    'SQLiteStore',
    'LyricsCache',
    'create_cache',
]
