"""Storage table names and the junction layout between them.

The engine never builds SQL; it names tables and columns and hands
predicates to the data store port. This module is the single place that
knows which junction table links which kind of record to a group or to an
equipment.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

from gmao.foundation.domain.identifiers import EntityType


class Table(StrEnum):
    """Tables of the maintenance store touched by the deletion engine."""

    EQUIPMENTS = "equipments"
    DOCUMENTS = "documents"
    PARTS = "parts"
    INTERVENTIONS = "interventions"
    EQUIPMENT_HISTORY = "equipment_history"
    EQUIPMENT_GROUPS = "equipment_groups"
    EQUIPMENT_GROUP_MEMBERS = "equipment_group_members"
    DOCUMENT_GROUP_MEMBERS = "document_group_members"
    PART_GROUP_MEMBERS = "part_group_members"
    DOCUMENT_EQUIPMENT_LINKS = "document_equipment_links"
    PART_EQUIPMENT_LINKS = "part_equipment_links"


@dataclass(frozen=True, slots=True)
class Junction:
    """A many-to-many edge table.

    Attributes:
        table: The junction table.
        owner_column: Column holding the id of the entity side.
        other_column: Column holding the id of the other side (group or equipment).
    """

    table: Table
    owner_column: str
    other_column: str


def entity_table(entity_type: EntityType) -> Table:
    """Return the table holding rows of the given entity kind."""
    match entity_type:
        case EntityType.EQUIPMENT:
            return Table.EQUIPMENTS
        case EntityType.DOCUMENT:
            return Table.DOCUMENTS
        case EntityType.PART:
            return Table.PARTS
        case _:
            assert_never(entity_type)


def group_membership(entity_type: EntityType) -> Junction:
    """Return the entity ↔ group junction for the given entity kind."""
    match entity_type:
        case EntityType.EQUIPMENT:
            return Junction(Table.EQUIPMENT_GROUP_MEMBERS, "equipment_id", "group_id")
        case EntityType.DOCUMENT:
            return Junction(Table.DOCUMENT_GROUP_MEMBERS, "document_id", "group_id")
        case EntityType.PART:
            return Junction(Table.PART_GROUP_MEMBERS, "part_id", "group_id")
        case _:
            assert_never(entity_type)


def equipment_link(entity_type: EntityType) -> Junction:
    """Return the direct resource ↔ equipment junction for a document or part.

    Raises:
        ValueError: For EQUIPMENT, which has no direct equipment link.
    """
    match entity_type:
        case EntityType.DOCUMENT:
            return Junction(Table.DOCUMENT_EQUIPMENT_LINKS, "document_id", "equipment_id")
        case EntityType.PART:
            return Junction(Table.PART_EQUIPMENT_LINKS, "part_id", "equipment_id")
        case EntityType.EQUIPMENT:
            msg = "Equipment has no direct equipment link table"
            raise ValueError(msg)
        case _:
            assert_never(entity_type)


SHARED_RESOURCE_TYPES: tuple[EntityType, EntityType] = (EntityType.DOCUMENT, EntityType.PART)
