"""SQLAlchemy Core table definitions of the maintenance store.

Only the columns the deletion engine reads are declared. Junction tables use
composite primary keys, so an edge exists at most once.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, MetaData, String, Table, Text

from gmao.foundation.domain.tables import Table as TableName

metadata = MetaData()


def _junction(name: TableName, owner: str, owner_table: str, other: str, other_table: str) -> Table:
    return Table(
        name.value,
        metadata,
        Column(owner, String(64), ForeignKey(f"{owner_table}.id"), primary_key=True),
        Column(other, String(64), ForeignKey(f"{other_table}.id"), primary_key=True),
    )


equipments = Table(
    TableName.EQUIPMENTS.value,
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("status", String(32)),
    Column("image_url", Text),
)

documents = Table(
    TableName.DOCUMENTS.value,
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
)

parts = Table(
    TableName.PARTS.value,
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
)

interventions = Table(
    TableName.INTERVENTIONS.value,
    metadata,
    Column("id", String(64), primary_key=True),
    Column(
        "equipment_id",
        String(64),
        ForeignKey("equipments.id", ondelete="SET NULL"),
        index=True,
    ),
    Column("title", String(255)),
)

equipment_history = Table(
    TableName.EQUIPMENT_HISTORY.value,
    metadata,
    Column("id", String(64), primary_key=True),
    Column("equipment_id", String(64), ForeignKey("equipments.id"), index=True),
    Column("description", Text),
)

equipment_groups = Table(
    TableName.EQUIPMENT_GROUPS.value,
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255)),
    Column("description", Text),
)

equipment_group_members = _junction(
    TableName.EQUIPMENT_GROUP_MEMBERS, "equipment_id", "equipments", "group_id", "equipment_groups"
)
document_group_members = _junction(
    TableName.DOCUMENT_GROUP_MEMBERS, "document_id", "documents", "group_id", "equipment_groups"
)
part_group_members = _junction(
    TableName.PART_GROUP_MEMBERS, "part_id", "parts", "group_id", "equipment_groups"
)
document_equipment_links = _junction(
    TableName.DOCUMENT_EQUIPMENT_LINKS, "document_id", "documents", "equipment_id", "equipments"
)
part_equipment_links = _junction(
    TableName.PART_EQUIPMENT_LINKS, "part_id", "parts", "equipment_id", "equipments"
)
