"""Error types and the structured failure channel of the favorites engine."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from airdex.schemas.favorites import FavoriteKey


class RemoteStoreError(Exception):
    """Any failure of the remote favorites store: transport, permission, timeout."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        user_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.user_id = user_id


class SessionExpiredError(RemoteStoreError):
    """The store rejected the caller's credentials (401-equivalent)."""


class FailureKind(str, Enum):
    REMOTE_TRANSIENT = "remote_transient"
    SESSION_EXPIRED = "session_expired"


@dataclass(frozen=True)
class FavoriteFailure:
    """Typed record of a toggle that did not reach the remote store."""

    key: FavoriteKey
    operation: str
    kind: FailureKind
    error: BaseException


FailureListener = Callable[[FavoriteFailure], None]


__all__ = [
    "FailureKind",
    "FailureListener",
    "FavoriteFailure",
    "RemoteStoreError",
    "SessionExpiredError",
]
