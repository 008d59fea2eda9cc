"""Structured logging for the deletion engine using structlog.

The engine modules log through the standard library
(``logging.getLogger(__name__)`` with snake_case event names and
``extra={...}`` fields). ``configure_logging`` installs a
``structlog.stdlib.ProcessorFormatter`` on the root logger so those records
are rendered exactly like native structlog events: JSON in production,
colored console output otherwise.

Usage:
    from gmao.infra.observability.logging import bind_deletion_context, configure_logging

    configure_logging()
    with bind_deletion_context(entity):
        plan = await engine.plan(entity)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping

    from gmao.foundation.domain.identifiers import EntityRef

Processor = structlog.types.Processor

# Database DSNs carry credentials
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {"password", "secret", "authorization", "api_key", "dsn", "database_url", "credential"}
)

REDACTED_VALUE: str = "***REDACTED***"

_VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class LoggingSettings(BaseSettings):
    """Logging settings from ``LOG_LEVEL`` and ``ENVIRONMENT``.

    Example:
        >>> LoggingSettings(environment="production").use_json_logs
        True
    """

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        return str(v).strip().upper()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v not in _VALID_LEVELS:
            msg = f"log_level must be one of {sorted(_VALID_LEVELS)}"
            raise ValueError(msg)
        return v

    @property
    def use_json_logs(self) -> bool:
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        return logging.getLevelName(self.log_level)


class SensitiveDataProcessor:
    """Redact credential-looking fields from the event dict.

    A field is sensitive when its lowercased name is in ``SENSITIVE_FIELDS``
    or contains ``password`` or ``token``.

    Example:
        >>> SensitiveDataProcessor()(None, "info", {"dsn": "postgresql://u:p@h/db"})["dsn"]
        '***REDACTED***'
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict):
            lowered = key.lower()
            if lowered in SENSITIVE_FIELDS or "password" in lowered or "token" in lowered:
                event_dict[key] = REDACTED_VALUE
        return event_dict


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached LoggingSettings. Clear with ``cache_clear()`` in tests."""
    return LoggingSettings()


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
    ]


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Called once at startup by the logging lifespan hook.

    Args:
        settings: Logging settings. Loaded from the environment when omitted.
    """
    if settings is None:
        settings = get_logging_settings()

    renderer: Processor
    if settings.use_json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    shared = _shared_processors()
    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level_int),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level_int)


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger, bound to ``name`` when given."""
    logger = structlog.get_logger()
    if name is not None:
        logger = logger.bind(logger=name)
    return logger


@contextmanager
def bind_deletion_context(entity: EntityRef, **extra: Any) -> Iterator[None]:
    """Bind the deletion target to every log record emitted inside the block."""
    with structlog.contextvars.bound_contextvars(
        entity_type=entity.entity_type.value,
        entity_id=entity.entity_id,
        **extra,
    ):
        yield
