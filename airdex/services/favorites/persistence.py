"""Firestore-backed access to per-user favorites documents and catalog entities.

Each user owns one document ``{users_collection}/{user_id}`` shaped as
``{"favorites": [{"id": ..., "type": "airport" | "airline"}]}``. Mutations use
Firestore's array transforms so adding an element that is already present and
removing one that is absent are both no-ops on the server.

Every Google API failure or timeout leaves this module as a
:class:`RemoteStoreError`; credential rejections become
:class:`SessionExpiredError` so callers can tear the session down instead of
rolling back a single key.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore

from airdex.schemas.favorites import FavoriteDocument, FavoriteKey, FavoriteSet, FavoriteType
from airdex.services.favorites.errors import RemoteStoreError, SessionExpiredError
from airdex.settings import DEFAULT_REMOTE_TIMEOUT_SECONDS, DEFAULT_USERS_COLLECTION

logger = logging.getLogger(__name__)

FAVORITES_FIELD = "favorites"

T = TypeVar("T")


class RemoteFavoriteStore(Protocol):
    """Remote operations against one user's favorites document."""

    async def read(self, user_id: str) -> FavoriteSet: ...

    async def add_element(self, user_id: str, key: FavoriteKey) -> None: ...

    async def remove_element(self, user_id: str, key: FavoriteKey) -> None: ...


class EntityCatalog(Protocol):
    """Read access to the localized airport and airline catalog collections."""

    async def get_entity(
        self, collection: str, entity_id: str
    ) -> dict[str, Any] | None: ...


def catalog_collection(locale: str, favorite_type: FavoriteType) -> str:
    """Return the catalog collection name, e.g. ``enAirports`` or ``trAirlines``."""

    suffix = "Airlines" if favorite_type is FavoriteType.AIRLINE else "Airports"
    return f"{locale}{suffix}"


async def _guarded(
    awaitable: Awaitable[T],
    *,
    operation: str,
    timeout: float,
    user_id: str | None = None,
    missing_ok: bool = False,
) -> T | None:
    """Await a Firestore call, translating failures into store errors."""

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except google_exceptions.NotFound as exc:
        if missing_ok:
            logger.debug("Firestore %s found no document for user %s", operation, user_id)
            return None
        raise RemoteStoreError(
            f"Firestore {operation} failed: {exc}", operation=operation, user_id=user_id
        ) from exc
    except google_exceptions.Unauthenticated as exc:
        raise SessionExpiredError(
            f"Firestore {operation} rejected the session: {exc}",
            operation=operation,
            user_id=user_id,
        ) from exc
    except TimeoutError as exc:
        raise RemoteStoreError(
            f"Firestore {operation} timed out after {timeout:.1f}s",
            operation=operation,
            user_id=user_id,
        ) from exc
    except (google_exceptions.GoogleAPIError, OSError) as exc:
        raise RemoteStoreError(
            f"Firestore {operation} failed: {exc}", operation=operation, user_id=user_id
        ) from exc


class FirestoreFavoriteStore:
    """:class:`RemoteFavoriteStore` implementation over ``firestore.AsyncClient``."""

    def __init__(
        self,
        client: firestore.AsyncClient,
        *,
        users_collection: str = DEFAULT_USERS_COLLECTION,
        timeout_seconds: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._users_collection = users_collection
        self._timeout = timeout_seconds

    def _document(self, user_id: str) -> firestore.AsyncDocumentReference:
        return self._client.collection(self._users_collection).document(user_id)

    async def read(self, user_id: str) -> FavoriteSet:
        """Return the user's favorites; a missing document reads as empty."""

        snapshot = await _guarded(
            self._document(user_id).get(),
            operation="read",
            timeout=self._timeout,
            user_id=user_id,
        )
        if snapshot is None or not snapshot.exists:
            return ()
        return FavoriteDocument.from_snapshot(snapshot.to_dict()).favorite_set

    async def add_element(self, user_id: str, key: FavoriteKey) -> None:
        """Union ``key`` into the array, creating the document when absent."""

        await _guarded(
            self._document(user_id).set(
                {FAVORITES_FIELD: firestore.ArrayUnion([key.to_document()])},
                merge=True,
            ),
            operation="add_element",
            timeout=self._timeout,
            user_id=user_id,
        )
        logger.info("Added favorite %s for user %s", key, user_id)

    async def remove_element(self, user_id: str, key: FavoriteKey) -> None:
        """Remove ``key`` from the array; a missing document is left untouched."""

        await _guarded(
            self._document(user_id).update(
                {FAVORITES_FIELD: firestore.ArrayRemove([key.to_document()])}
            ),
            operation="remove_element",
            timeout=self._timeout,
            user_id=user_id,
            missing_ok=True,
        )
        logger.info("Removed favorite %s for user %s", key, user_id)


class FirestoreEntityCatalog:
    """:class:`EntityCatalog` implementation reading catalog documents by id."""

    def __init__(
        self,
        client: firestore.AsyncClient,
        *,
        timeout_seconds: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self._timeout = timeout_seconds

    async def get_entity(self, collection: str, entity_id: str) -> dict[str, Any] | None:
        snapshot = await _guarded(
            self._client.collection(collection).document(entity_id).get(),
            operation=f"get_entity:{collection}",
            timeout=self._timeout,
        )
        if snapshot is None or not snapshot.exists:
            return None
        return snapshot.to_dict()


__all__ = [
    "EntityCatalog",
    "FAVORITES_FIELD",
    "FirestoreEntityCatalog",
    "FirestoreFavoriteStore",
    "RemoteFavoriteStore",
    "catalog_collection",
]
