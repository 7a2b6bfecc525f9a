"""Taxprotest Infra Observability -- structlog logging configuration."""

from taxprotest.infra.observability.logging import (
    REDACTED_VALUE,
    LoggingSettings,
    SensitiveDataProcessor,
    configure_logging,
    get_logger,
    get_logging_settings,
)

__all__ = [
    "REDACTED_VALUE",
    "LoggingSettings",
    "SensitiveDataProcessor",
    "configure_logging",
    "get_logger",
    "get_logging_settings",
]
