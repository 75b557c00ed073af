"""Time-boxed cache in front of a single serializing upstream request queue."""
import asyncio
import logging
import time
from collections import OrderedDict, deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from crypto_tracker.providers.core.exceptions import (
    FetchErrorKind,
    MarketDataError,
    NotFoundError,
    RateLimitedError,
    ServiceUnavailableError,
    classify_fetch_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CachedEntry:
    """A cached upstream result. Replaced on refresh, never mutated."""

    key: str
    data: Any
    stored_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.stored_at < ttl


@dataclass
class QueuedRequest:
    """A pending upstream fetch; its future is resolved by the queue worker."""

    key: str
    fetch: Callable[[], Awaitable[Any]]
    future: asyncio.Future


class ThrottledCache:
    """Memoizes async fetches by key while serializing every upstream call.

    At most one fetch runs at a time. Queued fetches run in FIFO order and the
    worker sleeps ``request_delay`` seconds between two fetches whenever more
    work is waiting. Failures fall back to the last cached value where one
    exists (see ``_recover``).

    With ``dedupe_in_flight`` enabled, callers asking for a key that is
    already queued or running share that request's result instead of queueing
    another upstream call.
    """

    def __init__(
        self,
        ttl: float = 30.0,
        request_delay: float = 1.0,
        *,
        dedupe_in_flight: bool = True,
        max_entries: int | None = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: Default time-to-live of an entry, in seconds.
            request_delay: Pause between two queued upstream calls, in seconds.
            dedupe_in_flight: Share one queued request among callers of the same key.
            max_entries: Keep at most this many entries, evicting the least recently
                used first. None disables the bound.
            clock: Monotonic time source used for entry freshness.
        """
        self._ttl = ttl
        self._request_delay = request_delay
        self._dedupe = dedupe_in_flight
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CachedEntry] = OrderedDict()
        self._queue: deque[QueuedRequest] = deque()
        self._in_flight: dict[str, asyncio.Future] = {}
        self._worker: asyncio.Task | None = None

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def pending(self) -> int:
        """Number of requests waiting in the queue (excludes the running one)."""
        return len(self._queue)

    @property
    def size(self) -> int:
        """Number of cached entries, fresh or stale."""
        return len(self._entries)

    def get_entry(self, key: str) -> CachedEntry | None:
        """Return the cached entry for key, fresh or stale."""
        return self._entries.get(key)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        *,
        ttl: float | None = None,
        force_refresh: bool = False,
    ) -> T:
        """Return the cached value for key, or queue fetch and await its result.

        Args:
            key: Cache key.
            fetch: Zero-argument coroutine function performing the upstream call.
            ttl: Override the default time-to-live for this lookup.
            force_refresh: Skip the freshness check and always go upstream.

        Raises:
            RateLimitedError: Upstream returned 429 and nothing is cached.
            NotFoundError: Upstream returned 404.
            ServiceUnavailableError: Upstream failed otherwise and nothing is cached.
        """
        if not force_refresh:
            entry = self._entries.get(key)
            lifetime = self._ttl if ttl is None else ttl
            if entry is not None and entry.is_fresh(self._clock(), lifetime):
                self._entries.move_to_end(key)
                return entry.data

        future = self._in_flight.get(key) if self._dedupe else None
        if future is None:
            future = asyncio.get_running_loop().create_future()
            self._queue.append(QueuedRequest(key=key, fetch=fetch, future=future))
            if self._dedupe:
                self._in_flight[key] = future
            self._ensure_worker()
        # Shielded so one caller giving up does not cancel the shared request.
        return await asyncio.shield(future)

    async def aclose(self) -> None:
        """Stop the worker and cancel requests that never ran."""
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        while self._queue:
            request = self._queue.popleft()
            if not request.future.done():
                request.future.cancel()
        self._in_flight.clear()

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._queue:
                request = self._queue.popleft()
                try:
                    await self._execute(request)
                finally:
                    if self._in_flight.get(request.key) is request.future:
                        del self._in_flight[request.key]
                if self._queue:
                    await asyncio.sleep(self._request_delay)
        finally:
            # Nothing resolves queued requests once the worker is gone.
            while self._queue:
                request = self._queue.popleft()
                if self._in_flight.get(request.key) is request.future:
                    del self._in_flight[request.key]
                if not request.future.done():
                    request.future.cancel()

    async def _execute(self, request: QueuedRequest) -> None:
        future = request.future
        try:
            data = await request.fetch()
        except asyncio.CancelledError as exc:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                if not future.done():
                    future.cancel()
                raise
            # The fetch cancelled itself; the worker keeps draining.
            self._settle_failure(request, exc)
            return
        except Exception as exc:  # pylint: disable=broad-except
            self._settle_failure(request, exc)
            return
        self._store(request.key, data)
        if not future.done():
            future.set_result(data)

    def _settle_failure(self, request: QueuedRequest, exc: BaseException) -> None:
        future = request.future
        try:
            data = self._recover(request.key, exc)
        except MarketDataError as err:
            if not future.done():
                future.set_exception(err)
            return
        if not future.done():
            future.set_result(data)

    def _store(self, key: str, data: Any) -> None:
        self._entries[key] = CachedEntry(key=key, data=data, stored_at=self._clock())
        self._entries.move_to_end(key)
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted)

    def _recover(self, key: str, exc: BaseException) -> Any:
        """Return stale data for a failed fetch, or raise the matching error."""
        kind = classify_fetch_error(exc)
        stale = self._entries.get(key)
        logger.warning("Upstream fetch for %s failed (%s): %s", key, kind.value, exc)

        if kind is FetchErrorKind.RATE_LIMITED:
            if stale is not None:
                logger.info("Rate limited; extending cached entry for %s", key)
                self._entries[key] = replace(stale, stored_at=self._clock())
                return stale.data
            raise RateLimitedError(f"Rate limited while fetching {key}") from exc

        if kind is FetchErrorKind.NOT_FOUND:
            raise NotFoundError(f"Not found upstream: {key}") from exc

        if stale is not None:
            logger.info("Serving stale data for %s after upstream failure", key)
            return stale.data
        raise ServiceUnavailableError(f"Upstream unavailable for {key}") from exc
