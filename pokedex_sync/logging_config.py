"""Logging bootstrap shared by the CLI and any embedding application."""

from __future__ import annotations

import logging

from pokedex_sync.settings import AppSettings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(active_settings: AppSettings | None = None) -> None:
    """Configure root logging and surface optional configuration warnings."""

    resolved = active_settings or get_settings()
    logging.basicConfig(level=resolved.log_level_numeric, format=LOG_FORMAT)

    warnings = resolved.optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning(f"  • {warning}")
        logger.warning("=" * 60)


__all__ = ["LOG_FORMAT", "configure_logging"]
