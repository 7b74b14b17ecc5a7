"""Centralized configuration management for the airdex favorites engine."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables defined in a local .env file before instantiating the
# settings singleton so every consumer of :mod:`airdex.settings` sees the same values.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_USERS_COLLECTION = "users"
DEFAULT_FIRESTORE_DATABASE = "(default)"
DEFAULT_LOCALE = "en"
DEFAULT_REMOTE_TIMEOUT_SECONDS = 10.0
DEFAULT_LOG_LEVEL = "INFO"


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    The class exposes the handful of knobs the favorites engine needs: where the
    per-user favorites documents live, which locale the entity catalog is read
    in, and how long a remote call may take before it is reported as failed.
    """

    _explicit_project_id: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_project_id = (
            "firestore_project_id" in normalized_keys
            or "google_cloud_project" in normalized_keys
        )
        project_env = os.getenv("FIRESTORE_PROJECT_ID")
        if project_env is not None and project_env.strip():
            self._explicit_project_id = True

    firestore_project_id: str | None = Field(
        default=None,
        alias="FIRESTORE_PROJECT_ID",
        description=(
            "Google Cloud project hosting the Firestore database. When unset the"
            " client falls back to application default credentials discovery."
        ),
    )
    firestore_database: str = Field(
        default=DEFAULT_FIRESTORE_DATABASE,
        alias="FIRESTORE_DATABASE",
        description="Firestore database identifier within the project.",
    )
    firestore_emulator_host: str | None = Field(
        default=None,
        alias="FIRESTORE_EMULATOR_HOST",
        description=(
            "host:port of a local Firestore emulator. The Google client reads the"
            " environment variable directly; it is mirrored here for diagnostics."
        ),
    )
    users_collection: str = Field(
        default=DEFAULT_USERS_COLLECTION,
        alias="FAVORITES_USERS_COLLECTION",
        description="Collection holding one favorites document per user id.",
    )
    default_locale: str = Field(
        default=DEFAULT_LOCALE,
        alias="DEFAULT_LOCALE",
        description=(
            "Locale prefix used to resolve the airport and airline catalog"
            " collections (for example ``enAirports``)."
        ),
    )
    remote_timeout_seconds: float = Field(
        default=DEFAULT_REMOTE_TIMEOUT_SECONDS,
        alias="FAVORITES_REMOTE_TIMEOUT_SECONDS",
        gt=0,
        description="Upper bound for a single favorites read/add/remove call.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    @property
    def uses_emulator(self) -> bool:
        """Return ``True`` when requests are routed to a Firestore emulator."""

        return bool(self.firestore_emulator_host and self.firestore_emulator_host.strip())

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_project_id and not self.firestore_project_id:
            warnings.append(
                "FIRESTORE_PROJECT_ID is not set - the Firestore client will infer"
                " the project from application default credentials"
            )

        if self.uses_emulator:
            warnings.append(
                f"FIRESTORE_EMULATOR_HOST is set ({self.firestore_emulator_host}) -"
                " favorites are persisted to the local emulator"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_FIRESTORE_DATABASE",
    "DEFAULT_LOCALE",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_REMOTE_TIMEOUT_SECONDS",
    "DEFAULT_USERS_COLLECTION",
    "get_settings",
]
