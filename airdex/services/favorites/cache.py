"""Caching helpers dedicated to favorites synchronization.

Favorite membership lives in the shared :class:`~airdex.cache.QueryCache` under
``("favorites", user_id)`` as an ordered, duplicate-free tuple of
:class:`FavoriteKey`. Every change goes through :func:`apply_update` with one of
three update operations, and optimistic writes hand back a
:class:`MutationResult` that must be passed to :meth:`FavoritesCache.rollback`
if the remote call fails.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from airdex.cache import CacheEntry, CacheListener, Fetcher, QueryCache, QueryKey, key_matches
from airdex.schemas.favorites import FavoriteKey, FavoriteSet, unique_keys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddKey:
    key: FavoriteKey


@dataclass(frozen=True)
class RemoveKey:
    key: FavoriteKey


@dataclass(frozen=True)
class ReplaceSet:
    favorites: FavoriteSet


FavoriteUpdate = AddKey | RemoveKey | ReplaceSet


def apply_update(favorites: FavoriteSet | None, update: FavoriteUpdate) -> FavoriteSet:
    """Return the favorite set produced by applying ``update`` to ``favorites``."""

    current = favorites or ()
    if isinstance(update, AddKey):
        if update.key in current:
            return current
        return (*current, update.key)
    if isinstance(update, RemoveKey):
        return tuple(key for key in current if key != update.key)
    if isinstance(update, ReplaceSet):
        return unique_keys(update.favorites)
    raise TypeError(f"Unsupported favorite update: {update!r}")


@dataclass(frozen=True)
class MutationResult:
    """Outcome of an optimistic write, needed to undo that write precisely."""

    applied: FavoriteKey
    previous_snapshot: FavoriteSet | None

    @property
    def was_member(self) -> bool:
        return self.previous_snapshot is not None and self.applied in self.previous_snapshot


class FavoritesCache:
    """Wrap query-cache interactions for favorites payloads.

    The toggle controller only needs read, optimistic write, confirm, rollback,
    invalidate and clear. Keeping them behind this class means the controller
    never manipulates raw cache entries, and the reducer stays the single place
    where favorite sets change shape.

    Optimistic updates stay recorded as unconfirmed until the controller
    confirms, rolls back or releases them. Fetches registered through this
    class re-apply every unconfirmed update to the server payload they
    return, so a refetch that read the store before a pending mutation landed
    cannot erase that mutation's optimistic state.
    """

    def __init__(self, queries: QueryCache) -> None:
        self._queries = queries
        self._unconfirmed: dict[QueryKey, dict[FavoriteKey, AddKey | RemoveKey]] = {}

    def read(self, query_key: QueryKey) -> CacheEntry | None:
        return self._queries.get(query_key)

    def favorites(self, query_key: QueryKey) -> FavoriteSet | None:
        """Return the cached favorite set, or ``None`` before the first load."""

        entry = self._queries.get(query_key)
        if entry is None or not entry.has_data:
            return None
        return tuple(entry.data)

    def optimistic_write(
        self, query_key: QueryKey, update: AddKey | RemoveKey
    ) -> MutationResult:
        """Apply ``update`` ahead of remote confirmation.

        Any refetch in flight for the same query is cancelled so its (older)
        result cannot land on top of the optimistic state.
        """

        if not isinstance(update, (AddKey, RemoveKey)):
            raise TypeError("Optimistic writes accept AddKey or RemoveKey only")

        self._queries.cancel(query_key)
        previous = self.favorites(query_key)
        self._unconfirmed.setdefault(query_key, {})[update.key] = update
        self._queries.set_data(query_key, apply_update(previous, update))
        return MutationResult(applied=update.key, previous_snapshot=previous)

    def confirm(self, query_key: QueryKey, update: AddKey | RemoveKey) -> None:
        """Record that the store accepted ``update``; its key's bit is now server truth.

        The bit is written back only when something overwrote it while the
        mutation was in flight, so a refetch still running is left alone.
        """

        self.release(query_key, update.key)
        favorites = self.favorites(query_key)
        if favorites is None:
            return

        confirmed = apply_update(favorites, update)
        if confirmed != favorites:
            logger.debug("Re-applying confirmed %s to query %s", update.key, query_key)
            self._queries.set_data(query_key, confirmed)

    def release(self, query_key: QueryKey, key: FavoriteKey) -> None:
        """Stop re-applying ``key``'s optimistic update to fetch results."""

        unconfirmed = self._unconfirmed.get(query_key)
        if unconfirmed is None:
            return
        unconfirmed.pop(key, None)
        if not unconfirmed:
            del self._unconfirmed[query_key]

    def rollback(self, query_key: QueryKey, result: MutationResult) -> None:
        """Restore only ``result.applied``'s membership bit.

        Other keys toggled concurrently keep their own optimistic state. When
        the entry has been cleared in the meantime (logout) this is a no-op.
        """

        self.release(query_key, result.applied)
        if self._queries.get(query_key) is None:
            logger.debug(
                "Skipping rollback of %s: query %s no longer cached", result.applied, query_key
            )
            return

        restore: FavoriteUpdate = (
            AddKey(result.applied) if result.was_member else RemoveKey(result.applied)
        )
        self._queries.set_data(query_key, apply_update(self.favorites(query_key), restore))

    def replace(self, query_key: QueryKey, favorites: FavoriteSet) -> None:
        """Authoritative write of a full favorite set."""

        self._queries.set_data(query_key, apply_update(None, ReplaceSet(favorites)))

    def register_fetcher(self, query_key: QueryKey, fetcher: Fetcher) -> None:
        self._queries.register_fetcher(query_key, self._with_unconfirmed(query_key, fetcher))

    async def fetch(self, query_key: QueryKey, fetcher: Fetcher | None = None) -> Any:
        if fetcher is not None:
            fetcher = self._with_unconfirmed(query_key, fetcher)
        return await self._queries.fetch(query_key, fetcher)

    def _with_unconfirmed(self, query_key: QueryKey, fetcher: Fetcher) -> Fetcher:
        async def fetch_favorites() -> Any:
            data = await fetcher()
            unconfirmed = self._unconfirmed.get(query_key)
            if not unconfirmed:
                return data

            favorites: FavoriteSet = tuple(data or ())
            for update in unconfirmed.values():
                favorites = apply_update(favorites, update)
            return favorites

        return fetch_favorites

    def invalidate(self, query_key: QueryKey) -> list[asyncio.Task[Any]]:
        """Mark entries under ``query_key`` stale and refetch them in the background."""

        return self._queries.invalidate(query_key)

    def clear(self, query_key: QueryKey) -> int:
        """Drop every entry under ``query_key``; used on logout."""

        for cached_key in [key for key in self._unconfirmed if key_matches(key, query_key)]:
            del self._unconfirmed[cached_key]

        removed = self._queries.remove(query_key)
        if removed:
            logger.info("Cleared %d cached favorites queries under %s", removed, query_key)
        return removed

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        return self._queries.subscribe(listener)


__all__ = [
    "AddKey",
    "FavoriteUpdate",
    "FavoritesCache",
    "MutationResult",
    "RemoveKey",
    "ReplaceSet",
    "apply_update",
]
