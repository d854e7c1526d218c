# tests/test_cache.py
"""Test the fast tier, the SQLite durable tier and the two-tier layer"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock

import pytest

from lyrics_resolver.cache import LyricsCache, MemoryCache, NullStore, SQLiteStore, create_cache
from lyrics_resolver.lyrics.models import Query, ResolutionResult, VerificationOutcome
from lyrics_resolver.utils.exceptions import CacheUnavailableError


class FakeClock:
    """Manually advanced clock"""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def result():
    return ResolutionResult(
        lyrics="[Verse 1]\nSome lyrics here",
        source="genius",
        confidence=0.9,
        has_timestamps=False,
        completeness_score=42,
        metadata={'url': 'https://genius.com/x'},
    )


class TestMemoryCache:
    """Test LRU eviction and TTL expiry"""

    def test_set_and_get(self):
        cache = MemoryCache(capacity=2, ttl=10)
        cache.set('a', 1)
        assert cache.get('a') == 1
        assert cache.get('missing') is None

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            MemoryCache(capacity=0)

    def test_entry_expires_after_ttl(self, clock):
        cache = MemoryCache(capacity=2, ttl=10, clock=clock)
        cache.set('a', 1)

        clock.advance(9)
        assert cache.get('a') == 1

        clock.advance(1)
        assert cache.get('a') is None
        assert cache.stats()['expirations'] == 1
        assert len(cache) == 0

    def test_per_entry_ttl(self, clock):
        cache = MemoryCache(capacity=2, ttl=10, clock=clock)
        cache.set('short', 1, ttl=1)
        cache.set('long', 2)

        clock.advance(5)
        assert cache.get('short') is None
        assert cache.get('long') == 2

    def test_evicts_least_recently_used(self):
        cache = MemoryCache(capacity=2, ttl=60)
        cache.set('a', 1)
        cache.set('b', 2)
        cache.get('a')
        cache.set('c', 3)

        assert cache.get('b') is None
        assert cache.get('a') == 1
        assert cache.get('c') == 3
        assert cache.stats()['evictions'] == 1

    def test_has_refreshes_recency(self):
        cache = MemoryCache(capacity=2, ttl=60)
        cache.set('a', 1)
        cache.set('b', 2)
        assert cache.has('a')
        cache.set('c', 3)

        assert not cache.has('b')
        assert cache.has('a')

    def test_overwrite_does_not_evict(self):
        cache = MemoryCache(capacity=2, ttl=60)
        cache.set('a', 1)
        cache.set('b', 2)
        cache.set('a', 10)

        assert len(cache) == 2
        assert cache.get('a') == 10
        assert cache.stats()['evictions'] == 0

    def test_delete_and_clear(self):
        cache = MemoryCache(capacity=3, ttl=60)
        cache.set('a', 1)
        cache.set('b', 2)

        assert cache.delete('a')
        assert not cache.delete('a')

        cache.clear()
        assert len(cache) == 0

    def test_stats(self):
        cache = MemoryCache(capacity=3, ttl=60)
        cache.set('a', 1)
        cache.get('a')
        cache.get('b')

        stats = cache.stats()
        assert stats['hits'] == 1
        assert stats['misses'] == 1
        assert stats['sets'] == 1
        assert stats['size'] == 1
        assert stats['capacity'] == 3
        assert stats['hit_rate'] == 0.5

    def test_concurrent_access_keeps_bounds(self):
        """Test mixed set, get and has calls from many threads"""
        cache = MemoryCache(capacity=5, ttl=60)
        workers, operations, keys = 8, 400, 20

        def hammer(worker):
            gets = sets = 0
            for i in range(operations):
                key = f"k{(worker * 7 + i) % keys}"
                if i % 3 == 0:
                    cache.set(key, (worker, i))
                    sets += 1
                elif i % 3 == 1:
                    cache.get(key)
                    gets += 1
                else:
                    cache.has(key)
            return gets, sets

        with ThreadPoolExecutor(max_workers=workers) as executor:
            counts = list(executor.map(hammer, range(workers)))

        stats = cache.stats()
        assert len(cache) <= cache.capacity
        assert stats['size'] == len(cache)
        assert stats['hits'] + stats['misses'] == sum(gets for gets, _ in counts)
        assert stats['sets'] == sum(sets for _, sets in counts)
        assert stats['sets'] - stats['evictions'] - stats['expirations'] >= stats['size']

        # LRU order still works after the contention
        for n in range(cache.capacity):
            cache.set(f"fresh{n}", n)
        assert all(cache.has(f"fresh{n}") for n in range(cache.capacity))
        assert not any(cache.has(f"k{n}") for n in range(keys))


class TestSQLiteStore:
    """Test the durable tier against a real database file"""

    def test_put_and_get(self, temp_dir):
        store = SQLiteStore(temp_dir / "cache.db")
        try:
            store.put('k', {'lyrics': '노래 가사', 'n': 1}, ttl=60)
            assert store.get('k') == {'lyrics': '노래 가사', 'n': 1}
            assert store.get('other') is None
            assert store.count() == 1
        finally:
            store.close()

    def test_persists_across_instances(self, temp_dir):
        path = temp_dir / "cache.db"
        store = SQLiteStore(path)
        store.put('k', {'v': 1}, ttl=60)
        store.close()

        reopened = SQLiteStore(path)
        try:
            assert reopened.get('k') == {'v': 1}
        finally:
            reopened.close()

    def test_expired_rows_are_dropped(self, temp_dir, clock):
        store = SQLiteStore(temp_dir / "cache.db", clock=clock)
        try:
            store.put('k', {'v': 1}, ttl=10)
            store.put('j', {'v': 2}, ttl=100)

            clock.advance(10)
            assert store.get('k') is None
            assert store.count() == 1
            assert store.purge_expired() == 0

            clock.advance(100)
            assert store.purge_expired() == 1
        finally:
            store.close()

    def test_clear_returns_removed_rows(self, temp_dir):
        store = SQLiteStore(temp_dir / "cache.db")
        try:
            store.put('a', {'v': 1}, ttl=60)
            store.put('b', {'v': 2}, ttl=60)
            store.delete('a')
            assert store.clear() == 1
            assert store.count() == 0
        finally:
            store.close()

    def test_unwritable_path_raises(self, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(CacheUnavailableError):
            SQLiteStore(blocker / "cache.db")


class TestLyricsCache:
    """Test the two-tier layer"""

    def test_round_trip_marks_from_cache(self, result):
        cache = LyricsCache(MemoryCache(capacity=10, ttl=60))
        query = Query("IU", "Blueming")

        assert cache.get(query) is None
        cache.put(query, result)

        cached = cache.get(query)
        assert cached.from_cache
        assert cached.lyrics == result.lyrics

    def test_key_ignores_case_and_spacing(self, result):
        cache = LyricsCache(MemoryCache(capacity=10, ttl=60))
        cache.put(Query("IU", "Blueming"), result)

        assert cache.get(Query("  iu ", "BLUEMING")) is not None

    def test_verification_is_not_stored(self, result):
        cache = LyricsCache(MemoryCache(capacity=10, ttl=60))
        query = Query("IU", "Blueming")
        outcome = VerificationOutcome(lyrics_match=True, confidence=90, verifier='gemini')

        cache.put(query, result.with_verification(outcome))

        assert cache.get(query).verification is None

    def test_durable_hit_is_promoted(self, temp_dir, result):
        store = SQLiteStore(temp_dir / "cache.db")
        query = Query("IU", "Blueming")
        LyricsCache(MemoryCache(capacity=10, ttl=60), store).put(query, result)

        fresh = LyricsCache(MemoryCache(capacity=10, ttl=60), store)
        cached = fresh.get(query)

        assert cached.from_cache
        assert cached.completeness_score == 42
        assert cached.metadata == {'url': 'https://genius.com/x'}
        assert fresh.memory.has(query.cache_key)
        assert fresh.stats()['durable']['hits'] == 1
        store.close()

    def test_durable_failures_do_not_fail_calls(self, result):
        durable = Mock()
        durable.name = 'broken'
        durable.get.side_effect = CacheUnavailableError("disk gone")
        durable.put.side_effect = CacheUnavailableError("disk gone")
        durable.count.side_effect = CacheUnavailableError("disk gone")
        cache = LyricsCache(MemoryCache(capacity=10, ttl=60), durable)
        query = Query("IU", "Blueming")

        assert cache.get(query) is None
        cache.put(query, result)
        assert cache.get(query).from_cache

        stats = cache.stats()
        assert stats['durable']['errors'] == 3
        assert stats['durable']['size'] is None

    def test_any_durable_exception_is_absorbed(self, result):
        """Test a store that raises errors outside the cache hierarchy"""
        durable = Mock()
        durable.name = 'remote'
        for method in (durable.get, durable.put, durable.delete, durable.clear,
                       durable.purge_expired, durable.count, durable.close):
            method.side_effect = ConnectionError("durable store down")
        cache = LyricsCache(MemoryCache(capacity=10, ttl=60), durable)
        query = Query("IU", "Blueming")

        assert cache.get(query) is None
        cache.put(query, result)
        assert cache.get(query).from_cache
        cache.invalidate(query)
        assert cache.clear() == 0
        assert cache.purge_expired() == 0
        assert cache.stats()['durable']['size'] is None
        cache.close()

        assert cache.durable_stats['errors'] == 7

    def test_unreadable_durable_entry_is_ignored(self):
        durable = Mock()
        durable.get.return_value = {'unexpected': True}
        cache = LyricsCache(MemoryCache(capacity=10, ttl=60), durable)

        assert cache.get(Query("IU", "Blueming")) is None

    def test_invalidate_and_clear(self, result):
        cache = LyricsCache(MemoryCache(capacity=10, ttl=60), NullStore())
        query = Query("IU", "Blueming")
        cache.put(query, result)

        cache.invalidate(query)
        assert cache.get(query) is None

        cache.put(query, result)
        assert cache.clear() == 0
        assert cache.get(query) is None


class TestCreateCache:
    """Test building the layer from settings"""

    def test_without_durable_backend(self, settings):
        cache = create_cache(settings)
        assert isinstance(cache.durable, NullStore)
        assert cache.memory.capacity == settings.cache.capacity

    def test_sqlite_backend(self, settings, temp_dir):
        settings.cache.durable_backend = 'sqlite'
        settings.cache.durable_path = str(temp_dir / "cache.db")

        cache = create_cache(settings)
        try:
            assert isinstance(cache.durable, SQLiteStore)
        finally:
            cache.close()

    def test_unopenable_store_falls_back(self, settings, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")
        settings.cache.durable_backend = 'sqlite'
        settings.cache.durable_path = str(blocker / "cache.db")

        cache = create_cache(settings)
        assert isinstance(cache.durable, NullStore)
