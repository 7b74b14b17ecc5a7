"""Process start-up helpers: logging configuration and environment validation."""

from __future__ import annotations

import logging

from airdex.settings import AppSettings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(settings: AppSettings | None = None) -> None:
    """Configure the root logger once using the configured ``LOG_LEVEL``."""

    resolved = settings or get_settings()
    logging.basicConfig(level=resolved.log_level_numeric, format=LOG_FORMAT)


def validate_environment(settings: AppSettings | None = None) -> list[str]:
    """Log warnings for optional configuration left unset and return them."""

    resolved = settings or get_settings()
    warnings = resolved.optional_config_warnings()

    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning(f"  • {warning}")
        logger.warning("=" * 60)

    return warnings


__all__ = ["LOG_FORMAT", "configure_logging", "validate_environment"]
