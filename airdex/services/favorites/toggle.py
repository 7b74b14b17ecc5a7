"""Per-key favorite toggle state machine.

For one :class:`FavoriteKey` the client-observed states are::

    NOT_FAVORITE --toggle--> PENDING_ADD    --ok-->   FAVORITE
                                            --fail--> NOT_FAVORITE
    FAVORITE     --toggle--> PENDING_REMOVE --ok-->   NOT_FAVORITE
                                            --fail--> FAVORITE
    PENDING_*    --toggle--> (ignored)

``toggle`` does all of its bookkeeping synchronously (auth check, pending
guard, optimistic cache write) and then schedules the remote call as a task.
The task never raises for store failures: those are reported on the failure
channel and undone in the cache.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from airdex.auth import AuthGate, Navigator
from airdex.cache import QueryKey, favorite_details_scope, favorites_key
from airdex.schemas.favorites import FavoriteKey
from airdex.services.favorites.cache import AddKey, FavoritesCache, MutationResult, RemoveKey
from airdex.services.favorites.errors import (
    FailureKind,
    FailureListener,
    FavoriteFailure,
    RemoteStoreError,
    SessionExpiredError,
)
from airdex.services.favorites.membership import is_favorite
from airdex.services.favorites.persistence import RemoteFavoriteStore

logger = logging.getLogger(__name__)


class ToggleOutcome(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    ROLLED_BACK = "rolled_back"
    SESSION_EXPIRED = "session_expired"


class FavoriteToggleController:
    """Decides add vs. remove, guards duplicates and reconciles the cache."""

    def __init__(
        self,
        *,
        store: RemoteFavoriteStore,
        cache: FavoritesCache,
        auth_gate: AuthGate,
        navigator: Navigator,
    ) -> None:
        self._store = store
        self._cache = cache
        self._auth_gate = auth_gate
        self._navigator = navigator
        self._pending: set[FavoriteKey] = set()
        self._tasks: set[asyncio.Task[ToggleOutcome]] = set()
        self._failure_listeners: list[FailureListener] = []

    def is_pending(self, key: FavoriteKey) -> bool:
        return key in self._pending

    @property
    def pending_keys(self) -> frozenset[FavoriteKey]:
        return frozenset(self._pending)

    def toggle(self, key: FavoriteKey) -> asyncio.Task[ToggleOutcome] | None:
        """Flip ``key``'s favorite state; must be called from the event loop.

        Returns the task settling the remote call, or ``None`` when the call was
        redirected to sign-in or ignored because ``key`` is already pending.
        """

        user_id = self._auth_gate.current_user_id() if self._auth_gate.is_authenticated() else None
        if user_id is None:
            logger.info("Favorite toggle for %s requires an active session", key)
            self._navigator.redirect_to_auth()
            return None

        if key in self._pending:
            logger.debug("Ignoring toggle for %s: a mutation is already in flight", key)
            return None

        loop = asyncio.get_running_loop()
        query_key = favorites_key(user_id)
        update: AddKey | RemoveKey = (
            RemoveKey(key) if is_favorite(self._cache, query_key, key) else AddKey(key)
        )

        self._pending.add(key)
        result = self._cache.optimistic_write(query_key, update)
        task = loop.create_task(
            self._commit(user_id, query_key, update, result),
            name=f"favorite-toggle:{key}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def settle(self) -> None:
        """Wait until every mutation scheduled so far has settled."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def add_failure_listener(self, listener: FailureListener) -> Callable[[], None]:
        self._failure_listeners.append(listener)

        def remove() -> None:
            if listener in self._failure_listeners:
                self._failure_listeners.remove(listener)

        return remove

    async def _commit(
        self,
        user_id: str,
        query_key: QueryKey,
        update: AddKey | RemoveKey,
        result: MutationResult,
    ) -> ToggleOutcome:
        operation = "add" if isinstance(update, AddKey) else "remove"
        try:
            if isinstance(update, AddKey):
                await self._store.add_element(user_id, update.key)
            else:
                await self._store.remove_element(user_id, update.key)
        except SessionExpiredError as exc:
            self._pending.discard(update.key)
            self._cache.release(query_key, update.key)
            self._report(FavoriteFailure(update.key, operation, FailureKind.SESSION_EXPIRED, exc))
            self._auth_gate.expire_session()
            return ToggleOutcome.SESSION_EXPIRED
        except RemoteStoreError as exc:
            self._pending.discard(update.key)
            self._cache.rollback(query_key, result)
            self._report(FavoriteFailure(update.key, operation, FailureKind.REMOTE_TRANSIENT, exc))
            return ToggleOutcome.ROLLED_BACK
        except Exception as exc:  # a misbehaving store must not escape the task
            logger.exception("Unexpected error during favorite %s of %s", operation, update.key)
            self._pending.discard(update.key)
            self._cache.rollback(query_key, result)
            self._report(FavoriteFailure(update.key, operation, FailureKind.REMOTE_TRANSIENT, exc))
            return ToggleOutcome.ROLLED_BACK

        self._pending.discard(update.key)
        self._cache.confirm(query_key, update)
        self._cache.invalidate(favorite_details_scope(user_id))
        if result.previous_snapshot is None:
            # Membership was never loaded; pick up the rest of the server set.
            self._cache.invalidate(query_key)
        return ToggleOutcome.ADDED if isinstance(update, AddKey) else ToggleOutcome.REMOVED

    def _report(self, failure: FavoriteFailure) -> None:
        logger.warning(
            "Favorite %s of %s failed (%s): %s",
            failure.operation,
            failure.key,
            failure.kind.value,
            failure.error,
        )
        for listener in list(self._failure_listeners):
            try:
                listener(failure)
            except Exception:
                logger.exception("Favorite failure listener raised")


__all__ = ["FavoriteToggleController", "ToggleOutcome"]
