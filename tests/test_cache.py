"""
test_cache.py — Unit Tests for the TTL Cache
==============================================
"""

import asyncio

import pytest

from wayfinder.core.cache import SimpleCache


class Producer:
    """Async producer returning successive values or raising on demand."""

    def __init__(self):
        self.calls = 0
        self.fail = False

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise ConnectionError("registry down")
        return f"value-{self.calls}"


class TestSimpleCache:
    """Tests for TTL expiry and stale-on-error reads."""

    @pytest.mark.asyncio
    async def test_first_read_fetches(self, clock):
        producer = Producer()
        cache = SimpleCache(producer, ttl_seconds=60, clock=clock)
        assert await cache.get() == "value-1"
        assert producer.calls == 1

    @pytest.mark.asyncio
    async def test_value_reused_within_ttl(self, clock):
        """At t0 + T - ε the original value is returned without a refresh."""
        producer = Producer()
        cache = SimpleCache(producer, ttl_seconds=60, clock=clock)
        await cache.get()
        clock.advance(59.9)
        assert await cache.get() == "value-1"
        assert producer.calls == 1

    @pytest.mark.asyncio
    async def test_refresh_after_ttl(self, clock):
        """At t0 + T + ε a refresh is attempted."""
        producer = Producer()
        cache = SimpleCache(producer, ttl_seconds=60, clock=clock)
        await cache.get()
        clock.advance(60.1)
        assert await cache.get() == "value-2"
        assert producer.calls == 2

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_stale_value(self, clock):
        """A failed refresh returns the previous value unchanged."""
        producer = Producer()
        cache = SimpleCache(producer, ttl_seconds=60, clock=clock)
        await cache.get()
        clock.advance(60.1)
        producer.fail = True
        assert await cache.get() == "value-1"
        assert producer.calls == 2

    @pytest.mark.asyncio
    async def test_failed_refresh_retried_on_next_read(self, clock):
        """The stale entry keeps its timestamp, so the next read retries."""
        producer = Producer()
        cache = SimpleCache(producer, ttl_seconds=60, clock=clock)
        await cache.get()
        clock.advance(61)
        producer.fail = True
        await cache.get()
        producer.fail = False
        assert await cache.get() == "value-3"

    @pytest.mark.asyncio
    async def test_failure_with_nothing_cached_propagates(self, clock):
        producer = Producer()
        producer.fail = True
        cache = SimpleCache(producer, ttl_seconds=60, clock=clock)
        with pytest.raises(ConnectionError):
            await cache.get()
        assert cache.value is None

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self, clock):
        producer = Producer()
        cache = SimpleCache(producer, ttl_seconds=60, clock=clock)
        await cache.get()
        cache.invalidate()
        assert await cache.get() == "value-2"

    @pytest.mark.asyncio
    async def test_last_updated_tracks_refresh(self, clock):
        cache = SimpleCache(Producer(), ttl_seconds=60, clock=clock)
        assert cache.last_updated is None
        await cache.get()
        assert cache.last_updated == clock.now

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            SimpleCache(Producer(), ttl_seconds=-1)


class TestConcurrentReads:
    """Readers arriving during a refresh do not wait when a value exists."""

    @pytest.mark.asyncio
    async def test_reader_during_refresh_gets_stale_value(self, clock):
        release = asyncio.Event()
        calls = []

        async def slow_producer():
            calls.append(1)
            if len(calls) > 1:
                await release.wait()
            return f"value-{len(calls)}"

        cache = SimpleCache(slow_producer, ttl_seconds=10, clock=clock)
        assert await cache.get() == "value-1"
        clock.advance(11)

        refreshing = asyncio.ensure_future(cache.get())
        await asyncio.sleep(0)  # let the refresh start and block

        assert await cache.get() == "value-1"
        release.set()
        assert await refreshing == "value-2"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_first_reads_share_one_refresh(self, clock):
        release = asyncio.Event()
        calls = []

        async def slow_producer():
            calls.append(1)
            await release.wait()
            return "value"

        cache = SimpleCache(slow_producer, ttl_seconds=10, clock=clock)
        readers = [asyncio.ensure_future(cache.get()) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        assert await asyncio.gather(*readers) == ["value"] * 3
        assert len(calls) == 1
