"""
Unit tests for the per-world cache

Cache guarantees:
- One record per identifier, however many requests race for it
- The slot is reserved before the loader first suspends
- Failed loads stay failed
- Hit/miss statistics
"""

import asyncio

import pytest


class FakeRecord:
    """Stands in for a module record"""

    def __init__(self, identifier):
        self.identifier = identifier


class TestGetOrCreate:
    """Test record creation through the cache"""

    @pytest.mark.asyncio
    async def test_creates_once(self):
        """Should call the factory once and reuse its record"""
        from module_worlds.core.cache import WorldCache

        cache = WorldCache()
        calls = []

        async def factory():
            calls.append('load')
            return FakeRecord('/app/a.py')

        first = await cache.get_or_create('/app/a.py', factory)
        second = await cache.get_or_create('/app/a.py', factory)

        assert first is second
        assert calls == ['load']

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_load(self):
        """Requests arriving while a load is suspended should await that load"""
        from module_worlds.core.cache import WorldCache

        cache = WorldCache()
        calls = []

        async def factory():
            calls.append('load')
            # Suspend mid-load, like a file read
            await asyncio.sleep(0.01)
            return FakeRecord('/app/a.py')

        records = await asyncio.gather(
            cache.get_or_create('/app/a.py', factory),
            cache.get_or_create('/app/a.py', factory),
            cache.get_or_create('/app/a.py', factory),
        )

        assert records[0] is records[1] is records[2]
        assert calls == ['load']

    @pytest.mark.asyncio
    async def test_different_identifiers_separate(self):
        """Should keep one record per identifier"""
        from module_worlds.core.cache import WorldCache

        cache = WorldCache()

        async def make(identifier):
            return FakeRecord(identifier)

        a = await cache.get_or_create('/app/a.py', lambda: make('/app/a.py'))
        b = await cache.get_or_create('/app/b.py', lambda: make('/app/b.py'))

        assert a is not b
        assert cache.identifiers() == ['/app/a.py', '/app/b.py']
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_failed_load_stays_failed(self):
        """Should re-raise the original error without retrying"""
        from module_worlds.core.cache import WorldCache
        from module_worlds.core.errors import NotFoundError

        cache = WorldCache()
        calls = []

        async def factory():
            calls.append('load')
            raise NotFoundError('Module not found: left_pad', identifier='left_pad')

        with pytest.raises(NotFoundError) as first:
            await cache.get_or_create('left_pad', factory)

        with pytest.raises(NotFoundError) as second:
            await cache.get_or_create('left_pad', factory)

        assert first.value is second.value
        assert calls == ['load']


class TestInspection:
    """Test looking into the cache without loading"""

    @pytest.mark.asyncio
    async def test_peek(self):
        """Should return finished records only"""
        from module_worlds.core.cache import WorldCache

        cache = WorldCache()

        async def factory():
            return FakeRecord('/app/a.py')

        assert cache.peek('/app/a.py') is None

        record = await cache.get_or_create('/app/a.py', factory)

        assert cache.peek('/app/a.py') is record
        assert '/app/a.py' in cache
        assert '/app/b.py' not in cache

    @pytest.mark.asyncio
    async def test_peek_failed_entry(self):
        """Should return None for a failed load"""
        from module_worlds.core.cache import WorldCache

        cache = WorldCache()

        async def factory():
            raise ValueError('bad')

        with pytest.raises(ValueError):
            await cache.get_or_create('/app/a.py', factory)

        assert cache.peek('/app/a.py') is None
        assert '/app/a.py' in cache

    @pytest.mark.asyncio
    async def test_stats(self):
        """Should count hits and misses"""
        from module_worlds.core.cache import WorldCache

        cache = WorldCache()

        async def factory():
            return FakeRecord('/app/a.py')

        await cache.get_or_create('/app/a.py', factory)
        await cache.get_or_create('/app/a.py', factory)
        await cache.get_or_create('/app/a.py', factory)

        assert cache.stats() == {'hits': 2, 'misses': 1, 'size': 1}
