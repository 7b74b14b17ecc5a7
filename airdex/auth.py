"""Authentication and navigation collaborators consumed by the favorites engine.

The engine never inspects credentials. It only asks whether a session is
active, which user it belongs to, and subscribes to session expiry so it can
tear its cache down.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

SessionExpiredCallback = Callable[[str | None], None]


class AuthGate(Protocol):
    def is_authenticated(self) -> bool: ...

    def current_user_id(self) -> str | None: ...

    def on_session_expired(
        self, callback: SessionExpiredCallback
    ) -> Callable[[], None]: ...

    def expire_session(self) -> None: ...


class Navigator(Protocol):
    def redirect_to_auth(self) -> None: ...


class SessionAuthGate:
    """In-process session holder mirroring the application's auth store."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id
        self._expiry_callbacks: list[SessionExpiredCallback] = []

    def is_authenticated(self) -> bool:
        return self._user_id is not None

    def current_user_id(self) -> str | None:
        return self._user_id

    def sign_in(self, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        self._user_id = user_id
        logger.info("Session started for user %s", user_id)

    def sign_out(self) -> None:
        """End the session on explicit logout; expiry callbacks are not fired."""

        if self._user_id is not None:
            logger.info("Session ended for user %s", self._user_id)
        self._user_id = None

    def on_session_expired(self, callback: SessionExpiredCallback) -> Callable[[], None]:
        self._expiry_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._expiry_callbacks:
                self._expiry_callbacks.remove(callback)

        return unsubscribe

    def expire_session(self) -> None:
        """Mark the session expired and notify subscribers once."""

        expired_user = self._user_id
        if expired_user is None:
            return

        self._user_id = None
        logger.warning("Session expired for user %s", expired_user)
        for callback in list(self._expiry_callbacks):
            try:
                callback(expired_user)
            except Exception:  # subscribers must not block teardown of the others
                logger.exception("Session expiry callback failed")


__all__ = ["AuthGate", "Navigator", "SessionAuthGate", "SessionExpiredCallback"]
