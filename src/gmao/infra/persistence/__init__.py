"""GMAO Infra Persistence -- data store adapters and database session factory."""

from gmao.infra.persistence.database import (
    DatabaseManager,
    DatabaseSettings,
    get_database_manager,
)
from gmao.infra.persistence.lifespan import lifespan_contribution
from gmao.infra.persistence.memory_store import InMemoryDataStore
from gmao.infra.persistence.sql_store import SqlAlchemyDataStore

__all__ = [
    "DatabaseManager",
    "DatabaseSettings",
    "InMemoryDataStore",
    "SqlAlchemyDataStore",
    "get_database_manager",
    "lifespan_contribution",
]
