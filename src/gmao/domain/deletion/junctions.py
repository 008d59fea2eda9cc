"""Maintenance of the group junction tables.

Edits made from the equipment, document, part and group forms replace a
record's memberships wholesale. Errors are not degraded here: a failing
store call propagates as :class:`StoreQueryError`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gmao.domain.deletion.association_index import AssociationIndex
from gmao.foundation.domain.identifiers import EntityType
from gmao.foundation.domain.predicates import eq, in_
from gmao.foundation.domain.tables import Table, group_membership

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gmao.foundation.domain.ports import DataStorePort

logger = logging.getLogger(__name__)


class JunctionTableManager:
    """Reads and rewrites group memberships.

    Args:
        store: Data store port.
    """

    def __init__(self, store: DataStorePort) -> None:
        self._store = store
        self._index = AssociationIndex(store)

    async def groups_for_equipment(self, equipment_id: str) -> list[str]:
        return await self._index.groups_for(equipment_id, EntityType.EQUIPMENT)

    async def groups_for_document(self, document_id: str) -> list[str]:
        return await self._index.groups_for(document_id, EntityType.DOCUMENT)

    async def groups_for_part(self, part_id: str) -> list[str]:
        return await self._index.groups_for(part_id, EntityType.PART)

    async def equipment_for_group(self, group_id: str) -> list[str]:
        rows = await self._store.select_where(
            Table.EQUIPMENT_GROUP_MEMBERS, eq("group_id", group_id), columns=["equipment_id"]
        )
        return list(dict.fromkeys(row["equipment_id"] for row in rows))

    async def replace_equipment_memberships(self, equipment_id: str, group_ids: Iterable[str]) -> int:
        return await self._replace(EntityType.EQUIPMENT, equipment_id, group_ids)

    async def replace_document_memberships(self, document_id: str, group_ids: Iterable[str]) -> int:
        return await self._replace(EntityType.DOCUMENT, document_id, group_ids)

    async def replace_part_memberships(self, part_id: str, group_ids: Iterable[str]) -> int:
        return await self._replace(EntityType.PART, part_id, group_ids)

    async def replace_group_equipment(self, group_id: str, equipment_ids: Iterable[str]) -> int:
        """Set the equipment of a group, from the group management screen."""
        ids = list(dict.fromkeys(equipment_ids))
        async with self._store.transaction():
            await self._store.delete_where(Table.EQUIPMENT_GROUP_MEMBERS, eq("group_id", group_id))
            inserted = 0
            if ids:
                inserted = await self._store.insert(
                    Table.EQUIPMENT_GROUP_MEMBERS,
                    [{"equipment_id": equipment_id, "group_id": group_id} for equipment_id in ids],
                )
        logger.info(
            "group_equipment_replaced",
            extra={"group_id": group_id, "equipment": len(ids)},
        )
        return inserted

    async def resources_for_equipment(self, equipment_id: str, kind: EntityType) -> list[str]:
        """Documents or parts visible to an equipment, directly or through its groups.

        Direct links come first, then group-shared resources, without duplicates.
        """
        direct = await self._index.resources_linked_to(equipment_id, kind)
        group_ids = await self.groups_for_equipment(equipment_id)
        shared: list[str] = []
        if group_ids:
            junction = group_membership(kind)
            rows = await self._store.select_where(
                junction.table, in_(junction.other_column, group_ids), columns=[junction.owner_column]
            )
            shared = [row[junction.owner_column] for row in rows]
        return list(dict.fromkeys([*direct, *shared]))

    async def _replace(self, entity_type: EntityType, entity_id: str, group_ids: Iterable[str]) -> int:
        junction = group_membership(entity_type)
        ids = list(dict.fromkeys(group_ids))
        async with self._store.transaction():
            await self._store.delete_where(junction.table, eq(junction.owner_column, entity_id))
            inserted = 0
            if ids:
                inserted = await self._store.insert(
                    junction.table,
                    [{junction.owner_column: entity_id, junction.other_column: gid} for gid in ids],
                )
        logger.info(
            "group_memberships_replaced",
            extra={"entity_type": entity_type.value, "entity_id": entity_id, "groups": len(ids)},
        )
        return inserted
