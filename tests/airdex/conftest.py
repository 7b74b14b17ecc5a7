"""Shared fixtures wiring the favorites engine against in-memory doubles."""

from __future__ import annotations

import pytest

from airdex.auth import SessionAuthGate
from airdex.cache import QueryCache
from airdex.services.dependencies import build_favorites_service
from airdex.services.favorites import FavoritesCache, FavoriteToggleController
from airdex.services.favorites_service import FavoritesService
from airdex.settings import AppSettings
from tests.airdex.support.doubles import (
    USER_ID,
    InMemoryEntityCatalog,
    InMemoryFavoriteStore,
    RecordingNavigator,
)


@pytest.fixture
def store() -> InMemoryFavoriteStore:
    return InMemoryFavoriteStore()


@pytest.fixture
def catalog() -> InMemoryEntityCatalog:
    return InMemoryEntityCatalog()


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def auth_gate() -> SessionAuthGate:
    return SessionAuthGate(USER_ID)


@pytest.fixture
def queries() -> QueryCache:
    return QueryCache()


@pytest.fixture
def favorites_cache(queries: QueryCache) -> FavoritesCache:
    return FavoritesCache(queries)


@pytest.fixture
def controller(
    store: InMemoryFavoriteStore,
    favorites_cache: FavoritesCache,
    auth_gate: SessionAuthGate,
    navigator: RecordingNavigator,
) -> FavoriteToggleController:
    return FavoriteToggleController(
        store=store,
        cache=favorites_cache,
        auth_gate=auth_gate,
        navigator=navigator,
    )


@pytest.fixture
def service(
    store: InMemoryFavoriteStore,
    catalog: InMemoryEntityCatalog,
    auth_gate: SessionAuthGate,
    navigator: RecordingNavigator,
    queries: QueryCache,
) -> FavoritesService:
    return build_favorites_service(
        auth_gate=auth_gate,
        navigator=navigator,
        settings=AppSettings(default_locale="en"),
        store=store,
        catalog=catalog,
        queries=queries,
    )
