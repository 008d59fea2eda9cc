"""Read-only resolver over the group and equipment junction tables.

Answers "which groups does this record belong to" and "how many equipment
would a group keep". Lookups never fail the analysis: a store error yields
an empty result and a warning in the analysis collector.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gmao.domain.deletion.analysis_warnings import degrade
from gmao.foundation.domain.identifiers import EntityType
from gmao.foundation.domain.predicates import eq, in_, ne
from gmao.foundation.domain.tables import Table, equipment_link, group_membership

if TYPE_CHECKING:
    from gmao.domain.deletion.analysis_warnings import AnalysisWarnings
    from gmao.foundation.domain.ports import DataStorePort


def _distinct(values: list[str]) -> list[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(values))


class AssociationIndex:
    """Membership lookups for one analysis (or one execution).

    Args:
        store: Data store port.
        warnings: Collector for degraded lookups. ``None`` makes every
            lookup strict: store errors propagate.
    """

    def __init__(self, store: DataStorePort, warnings: AnalysisWarnings | None = None) -> None:
        self._store = store
        self._warnings = warnings

    async def groups_for(
        self,
        entity_id: str,
        entity_type: EntityType,
        *,
        critical: bool = False,
    ) -> list[str]:
        """Group ids the entity belongs to, in membership resolution order."""
        junction = group_membership(entity_type)
        rows = await degrade(
            self._warnings,
            f"groups_for:{entity_type.value}",
            self._store.select_where(
                junction.table,
                eq(junction.owner_column, entity_id),
                columns=[junction.other_column],
            ),
            [],
            critical=critical,
        )
        return _distinct([row[junction.other_column] for row in rows])

    async def remaining_members(self, group_id: str, excluding_entity_id: str) -> int:
        """Equipment left in ``group_id`` once ``excluding_entity_id`` is removed."""
        return await degrade(
            self._warnings,
            "remaining_members",
            self._store.count(
                Table.EQUIPMENT_GROUP_MEMBERS,
                eq("group_id", group_id) & ne("equipment_id", excluding_entity_id),
            ),
            0,
        )

    async def member_count(self, group_id: str, *, critical: bool = False) -> int:
        """Current equipment count of a group."""
        return await degrade(
            self._warnings,
            "member_count",
            self._store.count(Table.EQUIPMENT_GROUP_MEMBERS, eq("group_id", group_id)),
            0,
            critical=critical,
        )

    async def equipment_for(
        self,
        entity_id: str,
        entity_type: EntityType,
        *,
        critical: bool = False,
    ) -> list[str]:
        """Equipment ids a document or part is linked to directly."""
        junction = equipment_link(entity_type)
        rows = await degrade(
            self._warnings,
            f"equipment_for:{entity_type.value}",
            self._store.select_where(
                junction.table,
                eq(junction.owner_column, entity_id),
                columns=[junction.other_column],
            ),
            [],
            critical=critical,
        )
        return _distinct([row[junction.other_column] for row in rows])

    async def group_names(self, group_ids: list[str]) -> dict[str, str]:
        """Map group id to name; unknown or unreadable groups are left out."""
        if not group_ids:
            return {}
        rows = await degrade(
            self._warnings,
            "group_names",
            self._store.select_where(
                Table.EQUIPMENT_GROUPS, in_("id", group_ids), columns=["id", "name"]
            ),
            [],
        )
        return {row["id"]: row["name"] for row in rows if row.get("name")}

    async def equipment_names(self, equipment_ids: list[str]) -> dict[str, str]:
        """Map equipment id to name for the given ids."""
        if not equipment_ids:
            return {}
        rows = await degrade(
            self._warnings,
            "equipment_names",
            self._store.select_where(
                Table.EQUIPMENTS, in_("id", equipment_ids), columns=["id", "name"]
            ),
            [],
        )
        return {row["id"]: row["name"] for row in rows if row.get("name")}

    async def resources_linked_to(
        self,
        equipment_id: str,
        kind: EntityType,
        *,
        critical: bool = False,
    ) -> list[str]:
        """Documents or parts linked directly to an equipment."""
        junction = equipment_link(kind)
        rows = await degrade(
            self._warnings,
            f"resources_linked_to:{kind.value}",
            self._store.select_where(
                junction.table,
                eq(junction.other_column, equipment_id),
                columns=[junction.owner_column],
            ),
            [],
            critical=critical,
        )
        return _distinct([row[junction.owner_column] for row in rows])
