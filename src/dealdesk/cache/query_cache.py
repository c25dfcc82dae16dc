"""In-memory query cache with in-flight de-duplication and explicit invalidation.

The client never holds authoritative state. Every query result lives here
under a QueryKey and stays fresh until something invalidates it; there is no
time-based expiry and no automatic polling (callers that want polling, like
the reminder badge, force a fetch on their own schedule).

Semantics:
- fetch(): returns fresh cached data, or runs the query function. Concurrent
  fetches of one key share a single in-flight task.
- subscribe(): mounts a consumer. Only keys with mounted consumers are
  re-fetched in the background after invalidation.
- invalidate(): marks every key under the given prefix stale and schedules at
  most one background refetch per key. Invalidating again before that
  refetch starts is a no-op.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from src.dealdesk.cache.keys import QueryKey

logger = structlog.get_logger(__name__)

QueryFn = Callable[[], Awaitable[Any]]
Listener = Callable[["QueryEntry"], None]


def key_matches(key: QueryKey, prefix: QueryKey) -> bool:
    """True when ``prefix`` is a leading slice of ``key``."""
    return key[: len(prefix)] == prefix


@dataclass
class QueryEntry:
    """Cached state of a single query key."""

    key: QueryKey
    fn: QueryFn | None = None
    data: Any = None
    error: BaseException | None = None
    has_data: bool = False
    stale: bool = True
    updated_at: datetime | None = None
    fetch_count: int = 0
    inflight: asyncio.Task | None = None
    refetch_pending: bool = False
    refetch: asyncio.Task | None = None
    subscriptions: list[Subscription] = field(default_factory=list)

    @property
    def is_fetching(self) -> bool:
        return self.inflight is not None


class Subscription:
    """A mounted consumer of one query key.

    Listeners are called after every settled fetch of the key (success or
    failure). Call ``unsubscribe()`` when the consumer unmounts.
    """

    def __init__(self, cache: QueryCache, entry: QueryEntry, listener: Listener | None) -> None:
        self._cache = cache
        self._entry = entry
        self._listener = listener
        self.active = True

    @property
    def key(self) -> QueryKey:
        return self._entry.key

    @property
    def data(self) -> Any:
        return self._entry.data

    @property
    def error(self) -> BaseException | None:
        return self._entry.error

    @property
    def is_fetching(self) -> bool:
        return self._entry.is_fetching

    async def refetch(self) -> Any:
        return await self._cache.fetch(self._entry.key, force=True)

    def unsubscribe(self) -> None:
        if self.active:
            self._entry.subscriptions.remove(self)
            self.active = False

    def _notify(self) -> None:
        if self._listener is not None:
            self._listener(self._entry)


class QueryCache:
    """Client-side cache of REST query results keyed by QueryKey."""

    def __init__(self) -> None:
        self._entries: dict[QueryKey, QueryEntry] = {}
        self._background: set[asyncio.Task] = set()

    def _entry(self, key: QueryKey, fn: QueryFn | None = None) -> QueryEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryEntry(key=key)
            self._entries[key] = entry
        if fn is not None:
            entry.fn = fn
        return entry

    # ── Reads ───────────────────────────────────────────────────────────────

    def get_entry(self, key: QueryKey) -> QueryEntry | None:
        return self._entries.get(key)

    def get_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.stale

    async def fetch(self, key: QueryKey, fn: QueryFn | None = None, *, force: bool = False) -> Any:
        """Return data for ``key``, running the query function when needed.

        Args:
            key: Query key.
            fn: Query function; remembered for later background refetches.
            force: Fetch even when the cached data is fresh. Still joins a
                fetch that is already in flight, or the background refetch
                a pending invalidation queued.

        Raises:
            LookupError: If no query function was ever registered for ``key``.
            Exception: Whatever the query function raises.
        """
        entry = self._entry(key, fn)
        if entry.has_data and not entry.stale and not force:
            return entry.data
        if force and entry.refetch is not None:
            # Join the refetch an invalidation already queued.
            await asyncio.shield(entry.refetch)
            if entry.has_data and not entry.stale:
                return entry.data
        return await self._run(entry)

    async def _run(self, entry: QueryEntry) -> Any:
        if entry.inflight is None:
            if entry.fn is None:
                raise LookupError(f"No query function registered for {entry.key!r}")
            entry.inflight = asyncio.ensure_future(self._execute(entry))
        # A cancelled joiner must not cancel the fetch the others share.
        return await asyncio.shield(entry.inflight)

    async def _execute(self, entry: QueryEntry) -> Any:
        entry.fetch_count += 1
        try:
            data = await entry.fn()
        except asyncio.CancelledError:
            entry.inflight = None
            logger.info("query.fetch_cancelled", key=entry.key)
            raise
        except Exception as exc:
            entry.error = exc
            entry.inflight = None
            logger.warning(
                "query.fetch_failed",
                key=entry.key,
                error=str(exc),
            )
            self._notify(entry)
            raise

        entry.data = data
        entry.has_data = True
        entry.error = None
        entry.updated_at = datetime.now(timezone.utc)
        # An invalidation that arrived mid-fetch keeps the entry stale.
        if not entry.refetch_pending:
            entry.stale = False
        entry.inflight = None
        logger.debug("query.fetched", key=entry.key, fetch_count=entry.fetch_count)
        self._notify(entry)
        return data

    def _notify(self, entry: QueryEntry) -> None:
        for subscription in list(entry.subscriptions):
            subscription._notify()

    # ── Writes ──────────────────────────────────────────────────────────────

    def set_data(self, key: QueryKey, data: Any) -> None:
        """Seed or overwrite cached data; the entry becomes fresh."""
        entry = self._entry(key)
        entry.data = data
        entry.has_data = True
        entry.error = None
        entry.stale = False
        entry.updated_at = datetime.now(timezone.utc)
        self._notify(entry)

    def subscribe(
        self,
        key: QueryKey,
        fn: QueryFn,
        listener: Listener | None = None,
    ) -> Subscription:
        """Mount a consumer on ``key`` with ``fn`` as its query function."""
        entry = self._entry(key, fn)
        subscription = Subscription(self, entry, listener)
        entry.subscriptions.append(subscription)
        return subscription

    # ── Invalidation ────────────────────────────────────────────────────────

    def invalidate(self, prefix: QueryKey) -> list[QueryKey]:
        """Mark every key under ``prefix`` stale and schedule mounted refetches.

        Must be called from inside a running event loop when any matching key
        has mounted consumers.

        Returns:
            The keys that were marked stale.
        """
        matched: list[QueryKey] = []
        for key, entry in self._entries.items():
            if not key_matches(key, prefix):
                continue
            matched.append(key)
            entry.stale = True
            if entry.subscriptions and not entry.refetch_pending:
                entry.refetch_pending = True
                task = asyncio.get_running_loop().create_task(self._refetch(entry))
                entry.refetch = task
                self._background.add(task)
                task.add_done_callback(self._background.discard)

        logger.debug("query.invalidated", prefix=prefix, matched=len(matched))
        return matched

    async def _refetch(self, entry: QueryEntry) -> None:
        # Let a fetch that started before the invalidation finish first, then
        # fetch again so the result reflects the mutation.
        if entry.inflight is not None:
            await asyncio.wait([entry.inflight])
        entry.refetch_pending = False
        try:
            if entry.subscriptions:
                await self._run(entry)
        except Exception:
            # Already recorded on entry.error and pushed to listeners.
            logger.info("query.background_refetch_failed", key=entry.key)
        finally:
            if entry.refetch is asyncio.current_task():
                entry.refetch = None

    async def wait_idle(self) -> None:
        """Wait until every scheduled background refetch has settled."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
