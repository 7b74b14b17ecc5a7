"""Synchronous favorite membership lookups against cached state."""

from __future__ import annotations

from airdex.cache import QueryKey
from airdex.schemas.favorites import FavoriteKey
from airdex.services.favorites.cache import FavoritesCache


def is_favorite(cache: FavoritesCache, query_key: QueryKey, key: FavoriteKey) -> bool:
    """Return whether ``key`` is currently favorited according to the cache.

    Never performs I/O. Before the first load the answer is ``False``.
    """

    favorites = cache.favorites(query_key)
    if favorites is None:
        return False
    return key in favorites


__all__ = ["is_favorite"]
