"""UI-facing favorites engine.

Collaborators wired together by :class:`FavoritesService`:

* :class:`FavoritesCache` holds membership (``("favorites", user_id)``) and
  resolved entities (``("favoriteDetails", user_id, locale)``).
* :class:`FavoriteToggleController` owns every write to membership.
* :class:`FavoriteDetailsResolver` turns membership into catalog entities.
* The auth gate's session-expired signal clears the cache and redirects.

The ``use_*`` methods are the contract the screens consume: synchronous reads
of the current cache state, with background loads scheduled as needed.
Screens re-render through :meth:`FavoritesService.subscribe`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from functools import partial
from typing import Any

from airdex.auth import AuthGate, Navigator
from airdex.cache import (
    FAVORITE_DETAILS_PREFIX,
    FAVORITES_PREFIX,
    CacheListener,
    favorite_details_key,
    favorite_details_scope,
    favorites_key,
)
from airdex.schemas.entities import Airline, Airport, FavoriteEntity
from airdex.schemas.favorites import FavoriteKey, FavoriteSet
from airdex.services.favorites import (
    FavoriteDetailsResolver,
    FavoritesCache,
    FavoriteToggleController,
    RemoteFavoriteStore,
    ToggleOutcome,
    is_favorite,
)
from airdex.services.favorites.errors import (
    FailureListener,
    RemoteStoreError,
    SessionExpiredError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FavoriteToggleState:
    is_favorite: bool
    is_pending: bool
    toggle: Callable[[], asyncio.Task[ToggleOutcome] | None]


@dataclass(frozen=True)
class FavoriteListState:
    items: list[FavoriteEntity]
    is_loading: bool
    refresh: Callable[[], list[asyncio.Task[Any]]]
    error: BaseException | None = None

    @property
    def airports(self) -> list[Airport]:
        return [item for item in self.items if isinstance(item, Airport)]

    @property
    def airlines(self) -> list[Airline]:
        return [item for item in self.items if isinstance(item, Airline)]


class FavoritesService:
    """Orchestrates the cache, toggle controller and details resolution."""

    def __init__(
        self,
        *,
        store: RemoteFavoriteStore,
        details: FavoriteDetailsResolver,
        cache: FavoritesCache,
        controller: FavoriteToggleController,
        auth_gate: AuthGate,
        navigator: Navigator,
        locale: str,
    ) -> None:
        self._store = store
        self._details = details
        self._cache = cache
        self._controller = controller
        self._auth_gate = auth_gate
        self._navigator = navigator
        self._locale = locale
        self._background: set[asyncio.Task[Any]] = set()
        self._unsubscribe_expiry = auth_gate.on_session_expired(self._handle_session_expired)

    @property
    def locale(self) -> str:
        return self._locale

    def set_locale(self, locale: str) -> None:
        """Switch the catalog locale; details for the new locale load on next use."""

        self._locale = locale

    # -- loads -------------------------------------------------------------------

    async def load_favorites(self) -> FavoriteSet:
        """Read membership from the remote store into the cache."""

        user_id = self._active_user_id()
        if user_id is None:
            return ()

        self._register_fetchers(user_id, self._locale)
        data = await self._cache.fetch(favorites_key(user_id))
        return tuple(data or ())

    async def load_favorite_details(self, locale: str | None = None) -> list[FavoriteEntity]:
        """Resolve the favorites screen entities for ``locale``."""

        user_id = self._active_user_id()
        if user_id is None:
            return []

        resolved_locale = locale or self._locale
        self._register_fetchers(user_id, resolved_locale)
        data = await self._cache.fetch(favorite_details_key(user_id, resolved_locale))
        return list(data or [])

    async def _resolve_details(self, user_id: str, locale: str) -> list[FavoriteEntity]:
        query_key = favorites_key(user_id)
        entry = self._cache.read(query_key)
        if entry is None or not entry.has_data or entry.is_stale:
            await self._cache.fetch(query_key)
            entry = self._cache.read(query_key)

        if entry is not None and not entry.has_data and entry.error is not None:
            raise RemoteStoreError(
                "Favorites are unavailable for details resolution",
                operation="read",
                user_id=user_id,
            ) from entry.error

        favorites = self._cache.favorites(query_key) or ()
        return await self._details.resolve(favorites, locale)

    async def _read_favorites(self, user_id: str) -> FavoriteSet:
        try:
            return await self._store.read(user_id)
        except SessionExpiredError:
            # Fetch errors stay on the cache entry; expiry still has to end the session.
            self._auth_gate.expire_session()
            raise

    def _register_fetchers(self, user_id: str, locale: str) -> None:
        self._cache.register_fetcher(favorites_key(user_id), partial(self._read_favorites, user_id))
        self._cache.register_fetcher(
            favorite_details_key(user_id, locale),
            partial(self._resolve_details, user_id, locale),
        )

    # -- hooks -------------------------------------------------------------------

    def use_favorite_membership(self, key: FavoriteKey) -> bool:
        user_id = self._active_user_id()
        if user_id is None:
            return False
        return is_favorite(self._cache, favorites_key(user_id), key)

    def use_favorite_toggle(self, key: FavoriteKey) -> FavoriteToggleState:
        return FavoriteToggleState(
            is_favorite=self.use_favorite_membership(key),
            is_pending=self._controller.is_pending(key),
            toggle=partial(self._controller.toggle, key),
        )

    def use_favorite_list(self, locale: str | None = None) -> FavoriteListState:
        """Return the current favorites screen state, loading it when needed."""

        resolved_locale = locale or self._locale
        refresh = partial(self.refresh, resolved_locale)
        user_id = self._active_user_id()
        if user_id is None:
            return FavoriteListState(items=[], is_loading=False, refresh=refresh)

        entry = self._cache.read(favorite_details_key(user_id, resolved_locale))
        if entry is None or (entry.is_stale and not entry.is_fetching):
            self._schedule(self.load_favorite_details(resolved_locale))

        if entry is None:
            return FavoriteListState(items=[], is_loading=True, refresh=refresh)

        return FavoriteListState(
            items=list(entry.data or []) if entry.has_data else [],
            is_loading=not entry.has_data and entry.is_fetching,
            refresh=refresh,
            error=entry.error,
        )

    def refresh(self, locale: str | None = None) -> list[asyncio.Task[Any]]:
        """Invalidate membership and details so both are re-read."""

        user_id = self._active_user_id()
        if user_id is None:
            return []

        self._register_fetchers(user_id, locale or self._locale)
        tasks = self._cache.invalidate(favorites_key(user_id))
        tasks.extend(self._cache.invalidate(favorite_details_scope(user_id)))
        return tasks

    def on_focus(self) -> list[asyncio.Task[Any]]:
        """Screen regained focus: refetch like the favorites tab does."""

        return self.refresh()

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        return self._cache.subscribe(listener)

    def add_failure_listener(self, listener: FailureListener) -> Callable[[], None]:
        return self._controller.add_failure_listener(listener)

    # -- session lifecycle -------------------------------------------------------

    def end_session(self) -> None:
        """Logout: drop cached favorites; the remote document is left intact."""

        self._cache.clear((FAVORITES_PREFIX,))
        self._cache.clear((FAVORITE_DETAILS_PREFIX,))

    def _handle_session_expired(self, user_id: str | None) -> None:
        logger.warning("Clearing favorites after session expiry for user %s", user_id)
        self.end_session()
        self._navigator.redirect_to_auth()

    async def aclose(self) -> None:
        """Stop listening for expiry and wait for outstanding work."""

        self._unsubscribe_expiry()
        await self._controller.settle()
        if self._background:
            await asyncio.gather(*list(self._background))

    def _active_user_id(self) -> str | None:
        if not self._auth_gate.is_authenticated():
            return None
        return self._auth_gate.current_user_id()

    def _schedule(self, coroutine: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coroutine)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task


__all__ = ["FavoriteListState", "FavoriteToggleState", "FavoritesService"]
