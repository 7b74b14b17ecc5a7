"""In-process query cache backing the favorites engine.

Entries are addressed by tuple query keys such as ``("favorites", user_id)``.
Each entry remembers its last authoritative payload, whether it has been marked
stale, and the fetch currently in flight. Prefix matching mirrors the way the
mobile client scoped invalidations: ``("favoriteDetails", user_id)`` matches every
locale-specific details entry of that user.

The cache is meant to be driven from a single asyncio event loop; operations
that mutate entries are synchronous so a read-then-write sequence cannot be
interleaved with another coroutine.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

QueryKey = tuple[str, ...]
Fetcher = Callable[[], Awaitable[Any]]
CacheListener = Callable[[QueryKey, "CacheEntry | None"], None]

FAVORITES_PREFIX = "favorites"
FAVORITE_DETAILS_PREFIX = "favoriteDetails"


def favorites_key(user_id: str) -> QueryKey:
    return (FAVORITES_PREFIX, user_id)


def favorite_details_key(user_id: str, locale: str) -> QueryKey:
    return (FAVORITE_DETAILS_PREFIX, user_id, locale)


def favorite_details_scope(user_id: str) -> QueryKey:
    """Prefix matching every locale-specific details entry of ``user_id``."""

    return (FAVORITE_DETAILS_PREFIX, user_id)


def key_matches(key: QueryKey, prefix: QueryKey) -> bool:
    """Return ``True`` when ``prefix`` is a leading slice of ``key``."""

    return key[: len(prefix)] == prefix


@dataclass
class CacheEntry:
    """State of one query: last payload plus freshness bookkeeping."""

    key: QueryKey
    data: Any = None
    updated_at: float | None = None
    is_stale: bool = False
    error: BaseException | None = None
    generation: int = field(default=0, repr=False)
    inflight: asyncio.Task[Any] | None = field(default=None, repr=False)

    @property
    def has_data(self) -> bool:
        return self.updated_at is not None

    @property
    def is_fetching(self) -> bool:
        return self.inflight is not None and not self.inflight.done()


class QueryCache:
    """Keyed store of :class:`CacheEntry` objects with fetch de-duplication."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._fetchers: dict[QueryKey, Fetcher] = {}
        self._listeners: list[CacheListener] = []
        self._background: set[asyncio.Task[Any]] = set()

    # -- reads -------------------------------------------------------------------

    def get(self, key: QueryKey) -> CacheEntry | None:
        return self._entries.get(key)

    def get_data(self, key: QueryKey, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None or not entry.has_data:
            return default
        return entry.data

    def keys(self, prefix: QueryKey = ()) -> list[QueryKey]:
        return [key for key in self._entries if key_matches(key, prefix)]

    # -- writes ------------------------------------------------------------------

    def set_data(self, key: QueryKey, data: Any) -> Any:
        """Write ``data`` as the current payload and return the previous one.

        Any fetch in flight for ``key`` is superseded: its result will be
        discarded when it lands so it cannot overwrite this write.
        """

        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry

        previous = entry.data if entry.has_data else None
        self._supersede(entry)
        entry.data = data
        entry.updated_at = self._clock()
        entry.is_stale = False
        entry.error = None
        self._notify(key, entry)
        return previous

    def cancel(self, key: QueryKey) -> None:
        """Discard the result of any fetch currently in flight for ``key``."""

        entry = self._entries.get(key)
        if entry is not None and entry.is_fetching:
            logger.debug("Cancelling in-flight fetch for query %s", key)
            self._supersede(entry)

    def remove(self, prefix: QueryKey) -> int:
        """Drop every entry (and registered fetcher) under ``prefix``."""

        removed = [key for key in self._entries if key_matches(key, prefix)]
        for key in removed:
            entry = self._entries.pop(key)
            self._supersede(entry)
            self._notify(key, None)

        for key in [key for key in self._fetchers if key_matches(key, prefix)]:
            self._fetchers.pop(key, None)

        return len(removed)

    def clear(self) -> None:
        self.remove(())

    # -- fetching ----------------------------------------------------------------

    def register_fetcher(self, key: QueryKey, fetcher: Fetcher) -> None:
        """Remember how to refetch ``key`` when it is invalidated."""

        self._fetchers[key] = fetcher

    async def fetch(self, key: QueryKey, fetcher: Fetcher | None = None) -> Any:
        """Load ``key`` through its fetcher, sharing any fetch already in flight.

        A failing fetch keeps the previous payload, records the error on the
        entry and returns whatever data is still cached.
        """

        if fetcher is not None:
            self._fetchers[key] = fetcher
        resolved = self._fetchers.get(key)
        if resolved is None:
            raise KeyError(f"No fetcher registered for query {key!r}")

        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
            self._entries[key] = entry

        if entry.is_fetching:
            return await asyncio.shield(entry.inflight)

        task = asyncio.get_running_loop().create_task(
            self._run_fetch(entry, resolved, entry.generation)
        )
        entry.inflight = task
        return await asyncio.shield(task)

    def invalidate(self, prefix: QueryKey) -> list[asyncio.Task[Any]]:
        """Mark matching entries stale and refetch those with a registered fetcher.

        Refetches run in the background; the scheduled tasks are returned so a
        caller may await them. Outside a running event loop entries are only
        marked stale.
        """

        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        tasks: list[asyncio.Task[Any]] = []
        for key, entry in list(self._entries.items()):
            if not key_matches(key, prefix):
                continue
            entry.is_stale = True
            self._notify(key, entry)
            if loop is None or key not in self._fetchers:
                continue
            task = loop.create_task(self.fetch(key))
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            tasks.append(task)
        return tasks

    async def _run_fetch(
        self, entry: CacheEntry, fetcher: Fetcher, generation: int
    ) -> Any:
        try:
            data = await fetcher()
        except Exception as exc:  # broad: any fetch failure keeps stale data
            logger.warning("Fetch for query %s failed: %s", entry.key, exc)
            if self._is_current(entry, generation):
                entry.error = exc
                entry.inflight = None
                self._notify(entry.key, entry)
            return self.get_data(entry.key)

        if not self._is_current(entry, generation):
            logger.debug("Discarding superseded fetch result for query %s", entry.key)
            return self.get_data(entry.key)

        entry.inflight = None
        entry.data = data
        entry.updated_at = self._clock()
        entry.is_stale = False
        entry.error = None
        self._notify(entry.key, entry)
        return data

    def _is_current(self, entry: CacheEntry, generation: int) -> bool:
        return self._entries.get(entry.key) is entry and entry.generation == generation

    @staticmethod
    def _supersede(entry: CacheEntry) -> None:
        entry.generation += 1
        entry.inflight = None

    # -- subscriptions -----------------------------------------------------------

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        """Call ``listener(key, entry)`` after every change; ``entry`` is ``None`` on removal."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, key: QueryKey, entry: CacheEntry | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, entry)
            except Exception:  # listeners belong to the UI layer
                logger.exception("Cache listener failed for query %s", key)


__all__ = [
    "CacheEntry",
    "CacheListener",
    "FAVORITES_PREFIX",
    "FAVORITE_DETAILS_PREFIX",
    "Fetcher",
    "QueryCache",
    "QueryKey",
    "favorite_details_key",
    "favorite_details_scope",
    "favorites_key",
    "key_matches",
]
