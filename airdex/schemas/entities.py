"""Catalog entities resolved for the aggregated favorites screen."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from airdex.schemas.favorites import FavoriteKey, FavoriteType


class DirectoryEntity(BaseModel):
    """Fields shared by airports and airlines.

    Catalog documents carry many presentation-only fields (social links,
    infrastructure figures, fleet data); they are preserved as extras so the
    UI layer can render them without this engine modelling each one.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    favorite_type: ClassVar[FavoriteType]

    id: str = Field(..., description="Catalog document identifier")
    name: str | None = Field(None, description="Display name in the requested locale")
    country: str | None = Field(None)
    image_url: str | None = Field(None, alias="imageUrl")

    @property
    def favorite_key(self) -> FavoriteKey:
        return FavoriteKey(id=self.id, type=self.favorite_type)


class Airport(DirectoryEntity):
    """Airport catalog document."""

    favorite_type: ClassVar[FavoriteType] = FavoriteType.AIRPORT

    iata_code: str | None = Field(None, alias="iataCode")
    icao_code: str | None = Field(None, alias="icaoCode")
    city: str | None = Field(None)


class Airline(DirectoryEntity):
    """Airline catalog document."""

    favorite_type: ClassVar[FavoriteType] = FavoriteType.AIRLINE

    iata_code: str | None = Field(None, alias="iataCode")
    icao_code: str | None = Field(None, alias="icaoCode")
    logo_url: str | None = Field(None, alias="logoUrl")


FavoriteEntity = Airport | Airline

_ENTITY_MODELS: dict[FavoriteType, type[DirectoryEntity]] = {
    FavoriteType.AIRPORT: Airport,
    FavoriteType.AIRLINE: Airline,
}


def entity_from_document(key: FavoriteKey, data: dict[str, Any]) -> FavoriteEntity:
    """Parse a catalog document for ``key``, stamping ``id`` with the key id."""

    model = _ENTITY_MODELS[key.type]
    payload = {**data, "id": key.id}
    return model.model_validate(payload)  # type: ignore[return-value]


__all__ = [
    "Airline",
    "Airport",
    "DirectoryEntity",
    "FavoriteEntity",
    "entity_from_document",
]
