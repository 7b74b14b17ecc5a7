"""Resolve favorite keys into airport and airline catalog entities."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from airdex.schemas.entities import FavoriteEntity, entity_from_document
from airdex.schemas.favorites import FavoriteKey, FavoriteSet
from airdex.services.favorites.persistence import EntityCatalog, catalog_collection

logger = logging.getLogger(__name__)


class FavoriteDetailsResolver:
    """Fetch catalog documents for a favorite set with all-settled semantics.

    Entities are fetched concurrently from the locale-specific collection of
    their type. A failed fetch, a missing document or a document that does not
    parse only drops that entity; the rest of the list is still returned in the
    order of the favorite set.
    """

    def __init__(self, catalog: EntityCatalog) -> None:
        self._catalog = catalog

    async def resolve(self, favorites: FavoriteSet, locale: str) -> list[FavoriteEntity]:
        if not favorites:
            return []

        results = await asyncio.gather(
            *(self._fetch(key, locale) for key in favorites),
            return_exceptions=True,
        )

        entities: list[FavoriteEntity] = []
        for key, result in zip(favorites, results):
            if isinstance(result, BaseException):
                logger.warning("Failed to fetch favorite details for %s: %s", key, result)
                continue
            if result is None:
                logger.debug("Favorite %s has no %s catalog document", key, locale)
                continue
            try:
                entities.append(entity_from_document(key, result))
            except ValidationError as exc:
                logger.warning("Skipping unparseable catalog document for %s: %s", key, exc)
        return entities

    async def _fetch(self, key: FavoriteKey, locale: str) -> dict[str, Any] | None:
        return await self._catalog.get_entity(catalog_collection(locale, key.type), key.id)


__all__ = ["FavoriteDetailsResolver"]
