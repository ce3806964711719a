"""Tests for the query cache."""

import asyncio
from dataclasses import dataclass, field

import pytest

from unit_tracker.domain.errors import StoreError
from unit_tracker.services.query_cache import QueryCache, QueryStatus, query_key


@dataclass
class CountingFetcher:
    """Fetch function returning successive values and counting calls."""

    values: list[object] = field(default_factory=lambda: ["v1", "v2", "v3"])
    calls: int = 0
    gate: asyncio.Event | None = None

    async def __call__(self) -> object:
        self.calls += 1
        value = self.values[min(self.calls, len(self.values)) - 1]
        if self.gate is not None:
            await self.gate.wait()
        return value


async def _failing_fetch() -> object:
    raise StoreError("boom")


async def _noop() -> str:
    return "done"


def test_query_fetches_once_and_serves_cache() -> None:
    cache = QueryCache()
    key = query_key("dailyItems", "user-1", "2024-05-15")
    fetcher = CountingFetcher()

    async def scenario() -> None:
        first = await cache.query(key, fetcher)
        second = await cache.query(key, fetcher)
        assert first.data == "v1"
        assert second.data == "v1"
        assert second.status is QueryStatus.SUCCESS

    asyncio.run(scenario())
    assert fetcher.calls == 1


def test_successful_mutation_triggers_exactly_one_refetch() -> None:
    cache = QueryCache()
    key = query_key("workoutLogs", "user-1", "2024-05-12")
    fetcher = CountingFetcher()

    async def scenario() -> None:
        await cache.query(key, fetcher)
        result = await cache.mutate(_noop, [key])
        assert result == "done"
        assert cache.generation(key) == 1
        refreshed = await cache.query(key, fetcher)
        again = await cache.query(key, fetcher)
        assert refreshed.data == "v2"
        assert again.data == "v2"

    asyncio.run(scenario())
    assert fetcher.calls == 2


def test_failed_mutation_leaves_cache_untouched() -> None:
    cache = QueryCache()
    key = query_key("workoutLogs", "user-1", "2024-05-12")
    fetcher = CountingFetcher()

    async def failing_mutation() -> None:
        raise StoreError("insert failed")

    async def scenario() -> None:
        await cache.query(key, fetcher)
        before = cache.peek(key)
        with pytest.raises(StoreError):
            await cache.mutate(failing_mutation, [key], name="add")
        assert cache.peek(key) == before
        assert not cache.is_mutating("add")
        await cache.query(key, fetcher)

    asyncio.run(scenario())
    assert fetcher.calls == 1


def test_prefix_dependency_invalidates_only_matching_keys() -> None:
    cache = QueryCache()
    mine = query_key("workoutLogs", "user-1", "2024-05-12")
    last_week = query_key("workoutLogs", "user-1", "2024-05-05")
    other_user = query_key("workoutLogs", "user-2", "2024-05-12")
    meals = query_key("dailyItems", "user-1", "2024-05-15")

    async def scenario() -> None:
        for key in (mine, last_week, other_user, meals):
            await cache.query(key, CountingFetcher())
        await cache.mutate(_noop, [query_key("workoutLogs", "user-1")])

    asyncio.run(scenario())
    assert cache.generation(mine) == 1
    assert cache.generation(last_week) == 1
    assert cache.generation(other_user) == 0
    assert cache.generation(meals) == 0


def test_concurrent_readers_share_one_fetch() -> None:
    cache = QueryCache()
    key = query_key("dailyItems", "user-1", "2024-05-15")

    async def scenario() -> None:
        fetcher = CountingFetcher(gate=asyncio.Event())
        readers = [asyncio.ensure_future(cache.query(key, fetcher)) for _ in range(3)]
        await asyncio.sleep(0)
        assert cache.peek(key).is_loading
        fetcher.gate.set()
        states = await asyncio.gather(*readers)
        assert [state.data for state in states] == ["v1", "v1", "v1"]
        assert fetcher.calls == 1

    asyncio.run(scenario())


def test_response_fetched_before_invalidation_is_discarded() -> None:
    cache = QueryCache()
    key = query_key("workoutLogs", "user-1", "2024-05-12")

    async def scenario() -> None:
        fetcher = CountingFetcher(values=["before", "after"], gate=asyncio.Event())
        reader = asyncio.ensure_future(cache.query(key, fetcher))
        await asyncio.sleep(0)
        await cache.mutate(_noop, [key])
        fetcher.gate.set()
        state = await reader
        assert state.data == "after"
        assert fetcher.calls == 2

    asyncio.run(scenario())


def test_fetch_error_keeps_previous_data() -> None:
    cache = QueryCache()
    key = query_key("dailyItems", "user-1", "2024-05-15")
    fetcher = CountingFetcher()

    async def scenario() -> None:
        await cache.query(key, fetcher)
        cache.invalidate(key)
        failed = await cache.query(key, _failing_fetch)
        assert failed.status is QueryStatus.ERROR
        assert isinstance(failed.error, StoreError)
        assert failed.data == "v1"
        recovered = await cache.query(key, fetcher)
        assert recovered.status is QueryStatus.SUCCESS
        assert recovered.error is None
        assert recovered.data == "v2"

    asyncio.run(scenario())


def test_release_evicts_immediately_without_gc_time() -> None:
    cache = QueryCache(gc_time_seconds=0)
    key = query_key("dailyItems", "user-1", "2024-05-15")
    fetcher = CountingFetcher()

    async def scenario() -> None:
        with cache.subscription(key):
            await cache.query(key, fetcher)
            await cache.query(key, fetcher)
            assert key in cache
        assert key not in cache
        await cache.query(key, fetcher)

    asyncio.run(scenario())
    assert fetcher.calls == 2


def test_release_keeps_entry_during_gc_time() -> None:
    cache = QueryCache(gc_time_seconds=300)
    key = query_key("dailyItems", "user-1", "2024-05-15")

    async def scenario() -> None:
        cache.subscribe(key)
        await cache.query(key, CountingFetcher())
        cache.release(key)

    asyncio.run(scenario())
    assert cache.peek(key) is not None
    assert cache.peek(key).data == "v1"


def test_zero_stale_time_refetches_every_read() -> None:
    cache = QueryCache(stale_time_seconds=0)
    key = query_key("workoutLogs", "user-1", "2024-05-12")
    fetcher = CountingFetcher()

    async def scenario() -> None:
        await cache.query(key, fetcher)
        await cache.query(key, fetcher)

    asyncio.run(scenario())
    assert fetcher.calls == 2


def test_is_mutating_while_pending() -> None:
    cache = QueryCache()

    async def scenario() -> None:
        released = asyncio.Event()

        async def slow_mutation() -> str:
            await released.wait()
            return "ok"

        task = asyncio.ensure_future(cache.mutate(slow_mutation, [], name="add"))
        await asyncio.sleep(0)
        assert cache.is_mutating("add")
        released.set()
        assert await task == "ok"
        assert not cache.is_mutating("add")

    asyncio.run(scenario())


def test_cancelled_reader_does_not_cancel_shared_fetch() -> None:
    cache = QueryCache()
    key = query_key("dailyItems", "user-1", "2024-05-15")

    async def scenario() -> None:
        fetcher = CountingFetcher(gate=asyncio.Event())
        first = asyncio.ensure_future(cache.query(key, fetcher))
        second = asyncio.ensure_future(cache.query(key, fetcher))
        await asyncio.sleep(0)
        first.cancel()
        fetcher.gate.set()
        state = await second
        with pytest.raises(asyncio.CancelledError):
            await first
        assert state.data == "v1"
        assert state.status is QueryStatus.SUCCESS
        assert fetcher.calls == 1

    asyncio.run(scenario())


def test_cancelled_fetch_does_not_stay_loading() -> None:
    cache = QueryCache()
    key = query_key("workoutLogs", "user-1", "2024-05-12")

    async def scenario() -> None:
        fetcher = CountingFetcher(gate=asyncio.Event())
        state = await cache.query(key, fetcher, wait=False)
        assert state.is_loading
        await asyncio.sleep(0)

    # Shutting the loop down cancels the fetch still waiting on its gate.
    asyncio.run(scenario())
    state = cache.peek(key)
    assert state is not None
    assert state.status is QueryStatus.IDLE
    assert not state.has_data


def test_non_blocking_query_returns_loading_snapshot() -> None:
    cache = QueryCache()
    key = query_key("dailyItems", "user-1", "2024-05-15")

    async def scenario() -> None:
        fetcher = CountingFetcher(gate=asyncio.Event())
        pending = await cache.query(key, fetcher, wait=False)
        assert pending.is_loading
        assert not pending.has_data
        fetcher.gate.set()
        loaded = await cache.query(key, fetcher)
        assert loaded.data == "v1"
        assert not loaded.is_loading
        cache.invalidate(key)
        refreshing = await cache.query(key, fetcher, wait=False)
        assert refreshing.is_loading
        assert refreshing.data == "v1"
        assert (await cache.query(key, fetcher)).data == "v2"
        assert fetcher.calls == 2

    asyncio.run(scenario())
