"""Favorites domain components split by responsibility.

This package isolates the remote store client from the cache adapter, the
membership resolver and the toggle state machine so each piece can be tested
with simple doubles for the others.
"""

from .cache import (
    AddKey,
    FavoritesCache,
    FavoriteUpdate,
    MutationResult,
    RemoveKey,
    ReplaceSet,
    apply_update,
)
from .details import FavoriteDetailsResolver
from .errors import (
    FailureKind,
    FavoriteFailure,
    RemoteStoreError,
    SessionExpiredError,
)
from .membership import is_favorite
from .persistence import (
    EntityCatalog,
    FirestoreEntityCatalog,
    FirestoreFavoriteStore,
    RemoteFavoriteStore,
    catalog_collection,
)
from .toggle import FavoriteToggleController, ToggleOutcome

__all__ = [
    "AddKey",
    "EntityCatalog",
    "FailureKind",
    "FavoriteDetailsResolver",
    "FavoriteFailure",
    "FavoriteToggleController",
    "FavoriteUpdate",
    "FavoritesCache",
    "FirestoreEntityCatalog",
    "FirestoreFavoriteStore",
    "MutationResult",
    "RemoteFavoriteStore",
    "RemoteStoreError",
    "RemoveKey",
    "ReplaceSet",
    "SessionExpiredError",
    "ToggleOutcome",
    "apply_update",
    "catalog_collection",
    "is_favorite",
]
