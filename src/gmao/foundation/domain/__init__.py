"""GMAO Foundation Domain -- pure Python domain primitives.

This package provides the foundational building blocks shared by the
deletion engine and its adapters: identifiers, exceptions, table layout,
row predicates, and the data store port.
"""

from gmao.foundation.domain.exceptions import (
    ConflictError,
    DeletionBlockedError,
    DeletionStepError,
    DomainError,
    EntityLockedError,
    InvalidStateTransitionError,
    NotFoundError,
    StoreQueryError,
    ValidationError,
)
from gmao.foundation.domain.identifiers import EntityRef, EntityType
from gmao.foundation.domain.ports import DataStorePort, Row
from gmao.foundation.domain.predicates import ALL, Predicate, eq, in_, ne, not_null
from gmao.foundation.domain.tables import (
    SHARED_RESOURCE_TYPES,
    Junction,
    Table,
    entity_table,
    equipment_link,
    group_membership,
)

__all__ = [
    "ALL",
    "SHARED_RESOURCE_TYPES",
    "ConflictError",
    "DataStorePort",
    "DeletionBlockedError",
    "DeletionStepError",
    "DomainError",
    "EntityLockedError",
    "EntityRef",
    "EntityType",
    "InvalidStateTransitionError",
    "Junction",
    "NotFoundError",
    "Predicate",
    "Row",
    "StoreQueryError",
    "Table",
    "ValidationError",
    "entity_table",
    "eq",
    "equipment_link",
    "group_membership",
    "in_",
    "ne",
    "not_null",
]
