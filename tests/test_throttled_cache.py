"""Tests for ThrottledCache: freshness, serialization and failure fallbacks."""
import asyncio
import time

import pytest

from crypto_tracker.providers.core import (
    FetchErrorKind,
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    ThrottledCache,
    UpstreamError,
)


class FakeClock:
    """Manually advanced clock for entry freshness."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def returning(value, calls: list | None = None):
    async def fetch():
        if calls is not None:
            calls.append(value)
        return value

    return fetch


def failing(exc: Exception):
    async def fetch():
        raise exc

    return fetch


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def cache(clock):
    throttled = ThrottledCache(ttl=30.0, request_delay=0.0, clock=clock)
    yield throttled
    await throttled.aclose()


class TestFreshness:
    async def test_fresh_entry_served_without_fetch(self, cache):
        calls: list = []
        assert await cache.get_or_fetch("k", returning(1, calls)) == 1
        assert await cache.get_or_fetch("k", returning(2, calls)) == 1
        assert calls == [1]

    async def test_expired_entry_refetched(self, cache, clock):
        await cache.get_or_fetch("k", returning(1))
        clock.advance(30.0)
        assert await cache.get_or_fetch("k", returning(2)) == 2
        assert cache.get_entry("k").data == 2

    async def test_ttl_override(self, cache, clock):
        await cache.get_or_fetch("k", returning(1))
        clock.advance(5.0)
        assert await cache.get_or_fetch("k", returning(2), ttl=10.0) == 1
        assert await cache.get_or_fetch("k", returning(3), ttl=4.0) == 3

    async def test_force_refresh_skips_fresh_entry(self, cache):
        await cache.get_or_fetch("k", returning(1))
        assert await cache.get_or_fetch("k", returning(2), force_refresh=True) == 2

    async def test_entry_records_store_time(self, cache, clock):
        await cache.get_or_fetch("k", returning("v"))
        entry = cache.get_entry("k")
        assert entry.key == "k"
        assert entry.stored_at == clock.now


class TestSerialization:
    async def test_one_fetch_at_a_time_in_fifo_order(self):
        throttled = ThrottledCache(ttl=30.0, request_delay=0.05)
        running = 0
        max_running = 0
        started: list[tuple[str, float]] = []

        def slow(key: str):
            async def fetch():
                nonlocal running, max_running
                running += 1
                max_running = max(max_running, running)
                started.append((key, time.monotonic()))
                await asyncio.sleep(0.01)
                running -= 1
                return key

            return fetch

        try:
            results = await asyncio.gather(
                *(throttled.get_or_fetch(k, slow(k)) for k in ("a", "b", "c"))
            )
        finally:
            await throttled.aclose()

        assert results == ["a", "b", "c"]
        assert max_running == 1
        assert [key for key, _ in started] == ["a", "b", "c"]
        gaps = [later - earlier for (_, earlier), (_, later) in zip(started, started[1:])]
        # Each gap covers the previous fetch plus the inter-request delay.
        assert all(gap >= 0.05 for gap in gaps)

    async def test_no_delay_when_queue_is_empty(self):
        throttled = ThrottledCache(ttl=30.0, request_delay=5.0)
        try:
            start = time.monotonic()
            await asyncio.wait_for(throttled.get_or_fetch("a", returning(1)), timeout=1.0)
            await asyncio.wait_for(throttled.get_or_fetch("b", returning(2)), timeout=1.0)
        finally:
            await throttled.aclose()
        assert time.monotonic() - start < 1.0

    async def test_concurrent_callers_share_one_fetch(self, cache):
        calls: list = []
        results = await asyncio.gather(
            *(cache.get_or_fetch("k", returning("v", calls)) for _ in range(5))
        )
        assert results == ["v"] * 5
        assert calls == ["v"]

    async def test_dedupe_disabled_queues_every_caller(self, clock):
        throttled = ThrottledCache(ttl=30.0, request_delay=0.0, dedupe_in_flight=False, clock=clock)
        calls: list = []
        try:
            await asyncio.gather(
                *(throttled.get_or_fetch("k", returning("v", calls)) for _ in range(3))
            )
        finally:
            await throttled.aclose()
        assert len(calls) == 3

    async def test_cancelled_caller_does_not_cancel_request(self, cache):
        release = asyncio.Event()

        async def fetch():
            await release.wait()
            return "done"

        waiter = asyncio.create_task(cache.get_or_fetch("k", fetch))
        await asyncio.sleep(0)
        waiter.cancel()
        release.set()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert await cache.get_or_fetch("k", returning("other")) == "done"


class TestFailures:
    async def test_rate_limited_with_stale_entry_renews_it(self, cache, clock):
        await cache.get_or_fetch("k", returning("old"))
        clock.advance(60.0)
        rate_limited = UpstreamError(FetchErrorKind.RATE_LIMITED, status_code=429)

        assert await cache.get_or_fetch("k", failing(rate_limited)) == "old"
        assert cache.get_entry("k").stored_at == clock.now
        # Renewed entry is fresh again: no upstream call for another TTL.
        calls: list = []
        assert await cache.get_or_fetch("k", returning("new", calls)) == "old"
        assert calls == []

    async def test_rate_limited_without_entry_raises(self, cache):
        with pytest.raises(RateLimitedError):
            await cache.get_or_fetch("k", failing(UpstreamError(FetchErrorKind.RATE_LIMITED)))
        assert cache.get_entry("k") is None

    async def test_not_found_raises_even_with_stale_entry(self, cache, clock):
        await cache.get_or_fetch("k", returning("old"))
        clock.advance(60.0)
        with pytest.raises(NotFoundError):
            await cache.get_or_fetch("k", failing(UpstreamError(FetchErrorKind.NOT_FOUND)))
        assert cache.get_entry("k").data == "old"

    async def test_other_failure_serves_stale_without_renewing(self, cache, clock):
        await cache.get_or_fetch("k", returning("old"))
        stored_at = cache.get_entry("k").stored_at
        clock.advance(60.0)
        assert await cache.get_or_fetch("k", failing(RuntimeError("boom"))) == "old"
        assert cache.get_entry("k").stored_at == stored_at

    async def test_other_failure_without_entry_raises(self, cache):
        with pytest.raises(ServiceUnavailableError):
            await cache.get_or_fetch("k", failing(ConnectionError("down")))

    async def test_failure_does_not_block_queue(self, cache):
        with pytest.raises(ServiceUnavailableError):
            await cache.get_or_fetch("a", failing(RuntimeError("boom")))
        assert await cache.get_or_fetch("b", returning(2)) == 2

    async def test_fetch_cancelling_itself_does_not_stall_queue(self, cache):
        async def cancelled():
            raise asyncio.CancelledError()

        first, second = await asyncio.wait_for(
            asyncio.gather(
                cache.get_or_fetch("a", cancelled),
                cache.get_or_fetch("b", returning(2)),
                return_exceptions=True,
            ),
            timeout=1.0,
        )

        assert isinstance(first, ServiceUnavailableError)
        assert second == 2
        assert cache.pending == 0

    async def test_closing_cancels_queued_requests(self):
        throttled = ThrottledCache(ttl=30.0, request_delay=5.0)
        running = asyncio.create_task(throttled.get_or_fetch("a", returning(1)))
        queued = asyncio.create_task(throttled.get_or_fetch("b", returning(2)))
        await running
        await asyncio.sleep(0)

        await throttled.aclose()

        with pytest.raises(asyncio.CancelledError):
            await queued
        assert throttled.pending == 0


class TestEviction:
    async def test_size_is_bounded(self, clock):
        throttled = ThrottledCache(ttl=30.0, request_delay=0.0, max_entries=2, clock=clock)
        try:
            for key in ("a", "b", "c"):
                await throttled.get_or_fetch(key, returning(key))
        finally:
            await throttled.aclose()

        assert throttled.size == 2
        assert throttled.get_entry("a") is None
        assert throttled.get_entry("c").data == "c"

    async def test_recently_read_entry_survives(self, clock):
        throttled = ThrottledCache(ttl=30.0, request_delay=0.0, max_entries=2, clock=clock)
        try:
            await throttled.get_or_fetch("a", returning("a"))
            await throttled.get_or_fetch("b", returning("b"))
            assert await throttled.get_or_fetch("a", returning("unused")) == "a"
            await throttled.get_or_fetch("c", returning("c"))
        finally:
            await throttled.aclose()

        assert throttled.get_entry("a").data == "a"
        assert throttled.get_entry("b") is None

    async def test_unbounded_when_disabled(self, clock):
        throttled = ThrottledCache(ttl=30.0, request_delay=0.0, max_entries=None, clock=clock)
        try:
            for n in range(50):
                await throttled.get_or_fetch(f"search:{n}", returning(n))
        finally:
            await throttled.aclose()

        assert throttled.size == 50
