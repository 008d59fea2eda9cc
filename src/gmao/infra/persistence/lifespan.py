"""Persistence lifespan hook.

Startup runs a ``SELECT 1`` health check on the default engine; shutdown
disposes the engine and its pool. Priority 75 starts persistence after
observability (50) so the health check is logged.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from gmao.foundation.application import LIFESPAN_PRIORITY_PERSISTENCE, LifespanContribution
from gmao.infra.persistence.database import get_database_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _persistence_lifespan(app: Any) -> AsyncIterator[None]:
    manager = get_database_manager()

    async with manager.get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info(
        "database_health_check_passed",
        extra={"backend": "sqlite" if manager.settings.is_sqlite else "postgresql"},
    )

    try:
        yield
    finally:
        await manager.dispose()
        logger.info("database_engine_disposed")


lifespan_contribution = LifespanContribution(
    hook=_persistence_lifespan,
    priority=LIFESPAN_PRIORITY_PERSISTENCE,
)
