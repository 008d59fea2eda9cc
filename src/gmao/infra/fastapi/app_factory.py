"""FastAPI application factory for the deletion service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from gmao.domain.deletion import (
    DeletionEngine,
    DeletionSessionRegistry,
    DeletionSettings,
    get_deletion_settings,
)
from gmao.infra.fastapi.error_handlers import register_exception_handlers
from gmao.infra.fastapi.lifespan import compose_lifespan
from gmao.infra.fastapi.middleware.request_id import RequestIdMiddleware
from gmao.infra.fastapi.routers import deletions_router
from gmao.infra.fastapi.settings import AppSettings
from gmao.infra.observability import lifespan_contribution as observability_lifespan

if TYPE_CHECKING:
    from gmao.foundation.application import LifespanContribution
    from gmao.foundation.domain.ports import DataStorePort

logger = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    *,
    store: DataStorePort | None = None,
    deletion_settings: DeletionSettings | None = None,
    extra_lifespan_hooks: list[LifespanContribution] | None = None,
) -> FastAPI:
    """Build the deletion service.

    Args:
        settings: Application settings. Loaded from the environment when omitted.
        store: Data store the engine works on. When omitted the SQLAlchemy
            store over the default database is used, and the persistence
            lifespan (health check, engine disposal) is installed.
        deletion_settings: Engine policy. Loaded from the environment when omitted.
        extra_lifespan_hooks: Additional lifespan hooks.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or AppSettings()
    hooks: list[LifespanContribution] = [observability_lifespan, *(extra_lifespan_hooks or [])]

    if store is None:
        from gmao.infra.persistence import (
            SqlAlchemyDataStore,
            get_database_manager,
        )
        from gmao.infra.persistence import (
            lifespan_contribution as persistence_lifespan,
        )

        store = SqlAlchemyDataStore(get_database_manager())
        hooks.append(persistence_lifespan)

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=compose_lifespan(hooks),
    )

    deletion_settings = deletion_settings or get_deletion_settings()
    app.state.deletion_engine = DeletionEngine(store, deletion_settings)
    app.state.deletion_sessions = DeletionSessionRegistry(
        ttl_seconds=deletion_settings.session_ttl_seconds
    )

    # Starlette runs the last added middleware first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=settings.cors.expose_headers,
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)
    app.include_router(deletions_router)
    logger.info(
        "app_created",
        extra={"title": settings.title, "transactional_store": store.supports_transactions},
    )
    return app
