"""Pydantic schemas shared by the favorites engine."""

from airdex.schemas.entities import (  # noqa: F401
    Airline,
    Airport,
    DirectoryEntity,
    FavoriteEntity,
    entity_from_document,
)
from airdex.schemas.favorites import (  # noqa: F401
    FavoriteDocument,
    FavoriteKey,
    FavoriteSet,
    FavoriteType,
    unique_keys,
)
