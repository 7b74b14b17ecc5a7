"""Dependency wiring for the favorites engine.

The Firestore client is created once per process/session and handed to every
collaborator that needs it, so nothing in the service modules reaches for a
module-level client.
"""

from __future__ import annotations

import logging

from google.cloud import firestore

from airdex.auth import AuthGate, Navigator
from airdex.cache import QueryCache
from airdex.services.favorites import (
    EntityCatalog,
    FavoriteDetailsResolver,
    FavoritesCache,
    FavoriteToggleController,
    FirestoreEntityCatalog,
    FirestoreFavoriteStore,
    RemoteFavoriteStore,
)
from airdex.services.favorites_service import FavoritesService
from airdex.settings import AppSettings, get_settings

logger = logging.getLogger(__name__)


def create_firestore_client(settings: AppSettings | None = None) -> firestore.AsyncClient:
    """Instantiate the async Firestore client described by ``settings``."""

    resolved = settings or get_settings()
    if resolved.uses_emulator:
        logger.info("Using Firestore emulator at %s", resolved.firestore_emulator_host)
    return firestore.AsyncClient(
        project=resolved.firestore_project_id,
        database=resolved.firestore_database,
    )


def build_favorites_service(
    *,
    auth_gate: AuthGate,
    navigator: Navigator,
    settings: AppSettings | None = None,
    client: firestore.AsyncClient | None = None,
    store: RemoteFavoriteStore | None = None,
    catalog: EntityCatalog | None = None,
    queries: QueryCache | None = None,
) -> FavoritesService:
    """Provide a fully-wired :class:`FavoritesService`.

    ``store`` and ``catalog`` default to the Firestore implementations sharing
    one client; passing them explicitly lets tests and tools run without
    Google credentials.
    """

    resolved = settings or get_settings()
    if store is None or catalog is None:
        client = client or create_firestore_client(resolved)
    if store is None:
        store = FirestoreFavoriteStore(
            client,
            users_collection=resolved.users_collection,
            timeout_seconds=resolved.remote_timeout_seconds,
        )
    if catalog is None:
        catalog = FirestoreEntityCatalog(client, timeout_seconds=resolved.remote_timeout_seconds)

    cache = FavoritesCache(queries or QueryCache())
    controller = FavoriteToggleController(
        store=store,
        cache=cache,
        auth_gate=auth_gate,
        navigator=navigator,
    )
    return FavoritesService(
        store=store,
        details=FavoriteDetailsResolver(catalog),
        cache=cache,
        controller=controller,
        auth_gate=auth_gate,
        navigator=navigator,
        locale=resolved.default_locale,
    )


__all__ = ["build_favorites_service", "create_firestore_client"]
