"""Unit tests covering the typed application settings implementation."""

from __future__ import annotations

import logging

import pytest

from airdex.bootstrap import LOG_FORMAT, configure_logging, validate_environment
from airdex.settings import (
    DEFAULT_FIRESTORE_DATABASE,
    DEFAULT_LOCALE,
    DEFAULT_REMOTE_TIMEOUT_SECONDS,
    DEFAULT_USERS_COLLECTION,
    AppSettings,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "FIRESTORE_PROJECT_ID",
        "FIRESTORE_DATABASE",
        "FIRESTORE_EMULATOR_HOST",
        "FAVORITES_USERS_COLLECTION",
        "DEFAULT_LOCALE",
        "FAVORITES_REMOTE_TIMEOUT_SECONDS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_app_settings_defaults() -> None:
    configured = AppSettings(_env_file=None)

    assert configured.firestore_database == DEFAULT_FIRESTORE_DATABASE
    assert configured.users_collection == DEFAULT_USERS_COLLECTION
    assert configured.default_locale == DEFAULT_LOCALE
    assert configured.remote_timeout_seconds == DEFAULT_REMOTE_TIMEOUT_SECONDS
    assert configured.log_level_numeric == logging.INFO
    assert not configured.uses_emulator


def test_app_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables should override every default."""

    monkeypatch.setenv("FIRESTORE_PROJECT_ID", "airdex-prod")
    monkeypatch.setenv("FAVORITES_USERS_COLLECTION", "profiles")
    monkeypatch.setenv("DEFAULT_LOCALE", "tr")
    monkeypatch.setenv("FAVORITES_REMOTE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    configured = AppSettings(_env_file=None)

    assert configured.firestore_project_id == "airdex-prod"
    assert configured.users_collection == "profiles"
    assert configured.default_locale == "tr"
    assert configured.remote_timeout_seconds == 2.5
    assert configured.log_level_numeric == logging.DEBUG


def test_unknown_log_level_falls_back_to_info() -> None:
    assert AppSettings(_env_file=None, log_level="chatty").log_level_numeric == logging.INFO


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AppSettings(_env_file=None, remote_timeout_seconds=0)


def test_optional_config_warnings_default() -> None:
    """Default configuration should warn when the project id remains unset."""

    warnings = AppSettings(_env_file=None).optional_config_warnings()

    assert any("FIRESTORE_PROJECT_ID" in warning for warning in warnings)
    assert not any("FIRESTORE_EMULATOR_HOST" in warning for warning in warnings)


def test_optional_config_warnings_clear_when_values_provided(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("FIRESTORE_PROJECT_ID", "airdex-prod")

    assert AppSettings(_env_file=None).optional_config_warnings() == []


def test_explicit_project_id_suppresses_warning() -> None:
    configured = AppSettings(_env_file=None, firestore_project_id="airdex-dev")

    assert configured.optional_config_warnings() == []


def test_emulator_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FIRESTORE_PROJECT_ID", "demo-airdex")
    monkeypatch.setenv("FIRESTORE_EMULATOR_HOST", "localhost:8080")
    configured = AppSettings(_env_file=None)

    assert configured.uses_emulator
    assert configured.optional_config_warnings() == [
        "FIRESTORE_EMULATOR_HOST is set (localhost:8080) - favorites are persisted"
        " to the local emulator"
    ]


def test_validate_environment_logging(caplog: pytest.LogCaptureFixture) -> None:
    """The environment validator should emit warnings when optional inputs are absent."""

    candidate = AppSettings(_env_file=None)

    with caplog.at_level(logging.WARNING):
        warnings = validate_environment(candidate)

    assert warnings
    assert "Environment Configuration Warnings" in caplog.text
    assert "FIRESTORE_PROJECT_ID is not set" in caplog.text


def test_validate_environment_silent_when_overrides_present(
    caplog: pytest.LogCaptureFixture,
) -> None:
    candidate = AppSettings(_env_file=None, firestore_project_id="airdex-prod")

    with caplog.at_level(logging.WARNING):
        assert validate_environment(candidate) == []

    assert "Environment Configuration Warnings" not in caplog.text


def test_configure_logging_uses_configured_level(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))

    configure_logging(AppSettings(_env_file=None, log_level="WARNING"))

    assert captured == {"level": logging.WARNING, "format": LOG_FORMAT}
