"""Structured logging configuration using structlog.

Provides environment-aware structured logging with:
- JSON output for production, colored console output elsewhere
- Request id binding from RequestIdMiddleware via context variables
- Redaction of secrets and customer signatures
- Standard-library ``logging`` records rendered through the same chain, so
  domain modules can keep using ``logging.getLogger(__name__)`` with
  snake_case event names and ``extra=`` fields

Usage:
    # During application startup
    from taxprotest.infra.observability.logging import configure_logging
    configure_logging()

    # In application code
    from taxprotest.infra.observability import get_logger
    logger = get_logger(__name__)
    logger.info("intake_started", user_id="123")
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import MutableMapping

Processor = structlog.types.Processor

SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "authorization",
        "api_key",
        "apikey",
        "anon_key",
        "service_role_key",
        "secret",
        "signature",
        "ssn",
        "bearer",
        "credential",
    }
)

REDACTED_VALUE: str = "***REDACTED***"

STDLIB_HANDLER_NAME = "taxprotest-structlog"


class LoggingSettings(BaseSettings):
    """Logging configuration from environment variables.

    - LOG_LEVEL: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ENVIRONMENT: Environment name (development, staging, production, test)

    Example:
        >>> LoggingSettings(environment="production").use_json_logs
        True
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Minimum log level to output",
    )
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Environment name for format selection",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        if isinstance(v, str):
            return v.upper()
        return str(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Reject names the logging module does not know.

        Raises:
            ValueError: If log level is not a valid Python logging level.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            msg = f"log_level must be one of {valid_levels}"
            raise ValueError(msg)
        return v

    @property
    def use_json_logs(self) -> bool:
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)


class SensitiveDataProcessor:
    """Structlog processor redacting sensitive fields from the event dict.

    A key is sensitive when it is one of ``SENSITIVE_FIELDS``
    (case-insensitive) or contains "password", "token" or "secret".

    Example:
        >>> processor = SensitiveDataProcessor()
        >>> processor(None, "info", {"event": "signup", "password": "x"})["password"]
        '***REDACTED***'
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict.keys()):
            if self._is_sensitive(key):
                event_dict[key] = REDACTED_VALUE
        return event_dict

    def _is_sensitive(self, key: str) -> bool:
        key_lower = key.lower()
        if key_lower in SENSITIVE_FIELDS:
            return True
        return any(part in key_lower for part in ("password", "token", "secret"))


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached LoggingSettings instance.

    Clear with ``get_logging_settings.cache_clear()`` in tests.
    """
    return LoggingSettings()


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and route standard-library logging through it.

    Processor chain: context variable merge (request id), log level, ISO 8601
    UTC timestamp, sensitive data redaction, exception formatting, then JSON
    or console rendering depending on the environment.

    Safe to call more than once: the root handler installed by a previous
    call is replaced, not duplicated.

    Args:
        settings: Optional LoggingSettings. Loaded from the environment when
            omitted.
    """
    if settings is None:
        settings = get_logging_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
    ]
    renderer: Processor
    if settings.use_json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, structlog.processors.format_exc_info, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level_int),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _route_stdlib_logging(shared_processors, renderer, settings.log_level_int)


def _route_stdlib_logging(
    shared_processors: list[Processor],
    renderer: Processor,
    level: int,
) -> None:
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.stdlib.ExtraAdder(), *shared_processors],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler()
    handler.set_name(STDLIB_HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == STDLIB_HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str | None = None) -> structlog.typing.WrappedLogger:
    """Get a structlog logger bound to the given name.

    The logger inherits context bound by RequestIdMiddleware (request_id).

    Args:
        name: Logger name (typically __name__). If None, returns unbound logger.
    """
    logger = structlog.get_logger()
    if name is not None:
        logger = logger.bind(logger=name)
    return logger
