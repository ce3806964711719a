"""Keyed query cache with generation-based invalidation."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from functools import partial
from typing import Generic, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueryKey:
    """Composite cache key of a query name and its parameters."""

    name: str
    params: tuple[object, ...] = ()

    def matches(self, dependency: "QueryKey") -> bool:
        """Return True when this key falls under a dependency prefix."""
        if self.name != dependency.name:
            return False
        size = len(dependency.params)
        return self.params[:size] == dependency.params


def query_key(name: str, *params: object) -> QueryKey:
    """Build a query key from a name and ordered parameters."""
    return QueryKey(name=name, params=tuple(params))


class QueryStatus(StrEnum):
    """Lifecycle state of a cached query."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryState(Generic[T]):
    """Snapshot of a cached query handed to readers."""

    key: QueryKey
    status: QueryStatus
    data: T | None
    error: Exception | None
    generation: int

    @property
    def is_loading(self) -> bool:
        """Return True while a fetch is in flight."""
        return self.status is QueryStatus.LOADING

    @property
    def has_data(self) -> bool:
        """Return True once any fetch has succeeded."""
        return self.data is not None


@dataclass
class _CacheEntry:
    key: QueryKey
    status: QueryStatus = QueryStatus.IDLE
    data: object | None = None
    error: Exception | None = None
    generation: int = 0
    fetched_generation: int | None = None
    fetched_at: datetime | None = None
    inflight: "asyncio.Future[None] | None" = None
    subscribers: int = 0
    evict_at: datetime | None = None

    def snapshot(self) -> QueryState:
        return QueryState(
            key=self.key,
            status=self.status,
            data=self.data,
            error=self.error,
            generation=self.generation,
        )


@dataclass
class QueryCache:
    """Process-local cache of remote reads.

    Mutations that succeed bump the generation of every dependent key; a
    read of a key whose last applied fetch is behind its generation fetches
    again before returning. Concurrent readers of one key share the
    in-flight fetch, and a response fetched before an invalidation is
    discarded rather than applied.
    """

    gc_time_seconds: float = 300.0
    stale_time_seconds: float | None = None
    _entries: dict[QueryKey, _CacheEntry] = field(default_factory=dict)
    _pending_mutations: dict[str, int] = field(default_factory=dict)

    async def query(
        self,
        key: QueryKey,
        fetch_fn: Callable[[], Awaitable[T]],
        wait: bool = True,
    ) -> QueryState[T]:
        """Return the cached state for a key, fetching when it is not fresh.

        With ``wait=False`` the fetch is started (or joined) in the background
        and the current snapshot is returned at once, still LOADING and
        carrying any previous data.
        """
        self._sweep()
        entry = self._entries.get(key)
        if entry is None:
            entry = _CacheEntry(key=key)
            self._entries[key] = entry
        try:
            while not self._is_fresh(entry):
                inflight = self._start_fetch(entry, fetch_fn)
                if not wait:
                    break
                # A cancelled reader must not cancel the shared fetch.
                await asyncio.shield(inflight)
                if entry.status is QueryStatus.ERROR or self._is_current(entry):
                    break
        finally:
            if entry.subscribers == 0:
                self._schedule_eviction(entry)
        return entry.snapshot()

    async def mutate(
        self,
        mutation_fn: Callable[[], Awaitable[T]],
        dependent_keys: Iterable[QueryKey],
        name: str | None = None,
    ) -> T:
        """Run a write and invalidate its dependent keys once it succeeds.

        Failures leave the cache untouched and propagate to the caller.
        """
        dependencies = list(dependent_keys)
        if name:
            self._pending_mutations[name] = self._pending_mutations.get(name, 0) + 1
        try:
            result = await mutation_fn()
        except Exception:
            _logger.warning("Mutation %s failed", name or "<anonymous>", exc_info=True)
            raise
        finally:
            if name:
                self._pending_mutations[name] -= 1
                if not self._pending_mutations[name]:
                    del self._pending_mutations[name]
        self.invalidate(*dependencies)
        return result

    def invalidate(self, *dependencies: QueryKey) -> int:
        """Mark every cached key under the given keys stale.

        Returns the number of entries whose generation moved.
        """
        bumped = 0
        for entry in self._entries.values():
            if any(entry.key.matches(dependency) for dependency in dependencies):
                entry.generation += 1
                bumped += 1
        if bumped:
            _logger.info("Invalidated %s cached queries", bumped)
        return bumped

    def is_mutating(self, name: str) -> bool:
        """Return True while a named mutation is in flight."""
        return self._pending_mutations.get(name, 0) > 0

    def peek(self, key: QueryKey) -> QueryState | None:
        """Return the cached state without fetching."""
        self._sweep()
        entry = self._entries.get(key)
        return entry.snapshot() if entry else None

    def generation(self, key: QueryKey) -> int:
        """Return the current generation token for a key."""
        entry = self._entries.get(key)
        return entry.generation if entry else 0

    def subscribe(self, key: QueryKey) -> None:
        """Register interest in a key, creating its entry if needed."""
        self._sweep()
        entry = self._entries.get(key)
        if entry is None:
            entry = _CacheEntry(key=key)
            self._entries[key] = entry
        entry.subscribers += 1
        entry.evict_at = None

    def release(self, key: QueryKey) -> None:
        """Drop interest in a key; the last release schedules eviction."""
        entry = self._entries.get(key)
        if entry is None or entry.subscribers == 0:
            return
        entry.subscribers -= 1
        if entry.subscribers == 0:
            self._schedule_eviction(entry)
            self._sweep()

    @contextmanager
    def subscription(self, key: QueryKey) -> Iterator[None]:
        """Hold a subscription on a key for the duration of a block."""
        self.subscribe(key)
        try:
            yield
        finally:
            self.release(key)

    def clear(self) -> None:
        """Drop every cached entry."""
        self._entries.clear()
        self._pending_mutations.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _start_fetch(
        self, entry: _CacheEntry, fetch_fn: Callable[[], Awaitable[object]]
    ) -> "asyncio.Future[None]":
        if entry.inflight is None:
            entry.status = QueryStatus.LOADING
            inflight = asyncio.ensure_future(
                self._fetch(entry, fetch_fn, entry.generation)
            )
            inflight.add_done_callback(partial(_fetch_done, entry))
            entry.inflight = inflight
        return entry.inflight

    async def _fetch(
        self,
        entry: _CacheEntry,
        fetch_fn: Callable[[], Awaitable[object]],
        generation: int,
    ) -> None:
        try:
            data = await fetch_fn()
        except Exception as exc:
            if generation == entry.generation:
                entry.status = QueryStatus.ERROR
                entry.error = exc
            _logger.warning("Query %s failed", entry.key.name, exc_info=True)
            return
        finally:
            entry.inflight = None
        if generation != entry.generation:
            _logger.info(
                "Discarding response for %s fetched at generation %s (now %s)",
                entry.key.name,
                generation,
                entry.generation,
            )
            return
        entry.status = QueryStatus.SUCCESS
        entry.data = data
        entry.error = None
        entry.fetched_generation = generation
        entry.fetched_at = datetime.now(tz=UTC)

    def _is_current(self, entry: _CacheEntry) -> bool:
        return (
            entry.status is QueryStatus.SUCCESS
            and entry.fetched_generation == entry.generation
        )

    def _is_fresh(self, entry: _CacheEntry) -> bool:
        if not self._is_current(entry):
            return False
        if self.stale_time_seconds is None or entry.fetched_at is None:
            return True
        age = datetime.now(tz=UTC) - entry.fetched_at
        return age < timedelta(seconds=self.stale_time_seconds)

    def _schedule_eviction(self, entry: _CacheEntry) -> None:
        entry.evict_at = datetime.now(tz=UTC) + timedelta(
            seconds=self.gc_time_seconds
        )

    def _sweep(self) -> None:
        now = datetime.now(tz=UTC)
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.subscribers == 0
            and entry.inflight is None
            and entry.evict_at is not None
            and entry.evict_at <= now
        ]
        for key in expired:
            del self._entries[key]


def _settled_status(entry: _CacheEntry) -> QueryStatus:
    if entry.error is not None:
        return QueryStatus.ERROR
    if entry.fetched_generation is not None:
        return QueryStatus.SUCCESS
    return QueryStatus.IDLE


def _fetch_done(entry: _CacheEntry, future: "asyncio.Future[None]") -> None:
    # A fetch cancelled before or while running never settles the entry itself.
    if entry.inflight is future:
        entry.inflight = None
    if entry.inflight is None and entry.status is QueryStatus.LOADING:
        entry.status = _settled_status(entry)
        if future.cancelled():
            _logger.info("Fetch for %s cancelled", entry.key.name)
