"""GMAO Infra Observability -- structlog logging and OpenTelemetry tracing."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from gmao.foundation.application.contributions import (
    LIFESPAN_PRIORITY_OBSERVABILITY,
    LifespanContribution,
)
from gmao.infra.observability.logging import (
    LoggingSettings,
    bind_deletion_context,
    configure_logging,
    get_logger,
)
from gmao.infra.observability.tracing import (
    TracingSettings,
    configure_tracing,
    deletion_span,
    shutdown_tracing,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@asynccontextmanager
async def _observability_lifespan(app: Any) -> AsyncIterator[None]:
    """Configure logging and tracing on startup, flush spans on shutdown."""
    configure_logging()
    configure_tracing(app)
    try:
        yield
    finally:
        shutdown_tracing()


lifespan_contribution = LifespanContribution(
    hook=_observability_lifespan,
    priority=LIFESPAN_PRIORITY_OBSERVABILITY,
)

__all__ = [
    "LoggingSettings",
    "TracingSettings",
    "bind_deletion_context",
    "configure_logging",
    "configure_tracing",
    "deletion_span",
    "get_logger",
    "lifespan_contribution",
    "shutdown_tracing",
]
