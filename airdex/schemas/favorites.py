"""Pydantic schemas describing favorite keys and the per-user favorites document."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class FavoriteType(str, Enum):
    """Kinds of directory entities a user can mark as favorite."""

    AIRPORT = "airport"
    AIRLINE = "airline"


class FavoriteKey(BaseModel):
    """Immutable identifier of a favorite-able entity.

    Equality and hashing are structural over ``(id, type)`` so keys built from
    different UI props for the same entity collapse to the same pending flag and
    cache membership bit.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Catalog document identifier")
    type: FavoriteType = Field(..., description="Entity kind the identifier refers to")

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Favorite ids must not be blank")
        return cleaned

    @classmethod
    def airport(cls, entity_id: str) -> FavoriteKey:
        return cls(id=entity_id, type=FavoriteType.AIRPORT)

    @classmethod
    def airline(cls, entity_id: str) -> FavoriteKey:
        return cls(id=entity_id, type=FavoriteType.AIRLINE)

    def to_document(self) -> dict[str, str]:
        """Return the ``{id, type}`` map stored inside the favorites array."""

        return {"id": self.id, "type": self.type.value}

    def __str__(self) -> str:
        return f"{self.type.value}:{self.id}"


# Ordered, duplicate-free collection of keys for one user.
FavoriteSet = tuple[FavoriteKey, ...]


def unique_keys(keys: Iterable[FavoriteKey]) -> FavoriteSet:
    """Drop structural duplicates while preserving first-seen order."""

    seen: set[FavoriteKey] = set()
    ordered: list[FavoriteKey] = []
    for key in keys:
        if key in seen:
            continue
        seen.add(key)
        ordered.append(key)
    return tuple(ordered)


class FavoriteDocument(BaseModel):
    """Shape of ``users/{user_id}``: only the favorites array is owned here."""

    model_config = ConfigDict(extra="ignore")

    favorites: list[FavoriteKey] = Field(default_factory=list)

    @field_validator("favorites", mode="before")
    @classmethod
    def _drop_malformed(cls, value: Any) -> list[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            logger.warning("Ignoring non-list favorites field of type %s", type(value).__name__)
            return []

        accepted: list[FavoriteKey] = []
        for raw in value:
            try:
                accepted.append(FavoriteKey.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed favorite element: %r", raw)
        return accepted

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any] | None) -> FavoriteDocument:
        """Build a document from raw Firestore data, tolerating a missing document."""

        return cls.model_validate(dict(data or {}))

    @property
    def favorite_set(self) -> FavoriteSet:
        return unique_keys(self.favorites)


__all__ = [
    "FavoriteDocument",
    "FavoriteKey",
    "FavoriteSet",
    "FavoriteType",
    "unique_keys",
]
