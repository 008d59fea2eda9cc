"""Reference counting of documents and parts shared through groups.

A document or part is reachable through two kinds of edges: a direct link
to an equipment, and a membership in a group. The counter materialises the
reference set of a resource and decides whether removing some equipment and
some groups would leave it with no reference at all (an orphan). Only
orphans are ever deleted by a cascade.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from gmao.domain.deletion.analysis_warnings import degrade
from gmao.domain.deletion.models import ResourceReferences, SharedResourceCounts
from gmao.foundation.domain.identifiers import EntityType
from gmao.foundation.domain.predicates import eq
from gmao.foundation.domain.tables import equipment_link, group_membership

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gmao.domain.deletion.analysis_warnings import AnalysisWarnings
    from gmao.foundation.domain.ports import DataStorePort


class ReferenceCounter:
    """Counts shared resources and their surviving references.

    Args:
        store: Data store port.
        warnings: Collector for degraded lookups. ``None`` makes every
            lookup strict: store errors propagate.
    """

    def __init__(self, store: DataStorePort, warnings: AnalysisWarnings | None = None) -> None:
        self._store = store
        self._warnings = warnings

    async def shared_resource_counts(self, group_id: str) -> SharedResourceCounts:
        """Documents and parts attached to the group, as raw membership counts."""
        documents, parts = await asyncio.gather(
            self._membership_count(EntityType.DOCUMENT, group_id),
            self._membership_count(EntityType.PART, group_id),
        )
        return SharedResourceCounts(documents=documents, parts=parts)

    async def shared_resource_ids(self, group_id: str, kind: EntityType) -> list[str]:
        """Ids of the documents or parts shared through the group."""
        junction = group_membership(kind)
        rows = await degrade(
            self._warnings,
            f"shared_resource_ids:{kind.value}",
            self._store.select_where(
                junction.table,
                eq(junction.other_column, group_id),
                columns=[junction.owner_column],
            ),
            [],
        )
        return list(dict.fromkeys(row[junction.owner_column] for row in rows))

    async def references_for(self, kind: EntityType, resource_id: str) -> ResourceReferences:
        """Current reference set of a document or part.

        A failed lookup yields ``unknown=True`` so the resource is kept.
        """
        link = equipment_link(kind)
        membership = group_membership(kind)
        direct, groups = await asyncio.gather(
            degrade(
                self._warnings,
                f"references_for:{kind.value}",
                self._store.select_where(
                    link.table, eq(link.owner_column, resource_id), columns=[link.other_column]
                ),
                None,
            ),
            degrade(
                self._warnings,
                f"references_for:{kind.value}",
                self._store.select_where(
                    membership.table,
                    eq(membership.owner_column, resource_id),
                    columns=[membership.other_column],
                ),
                None,
            ),
        )
        if direct is None or groups is None:
            return ResourceReferences(resource_id=resource_id, unknown=True)
        return ResourceReferences(
            resource_id=resource_id,
            equipment_ids=frozenset(row[link.other_column] for row in direct),
            group_ids=frozenset(row[membership.other_column] for row in groups),
        )

    async def orphans(
        self,
        kind: EntityType,
        resource_ids: Iterable[str],
        *,
        removed_equipment: frozenset[str] = frozenset(),
        removed_groups: frozenset[str] = frozenset(),
    ) -> tuple[str, ...]:
        """Subset of ``resource_ids`` left with no reference after the removals.

        Order of ``resource_ids`` is preserved.
        """
        ids = list(dict.fromkeys(resource_ids))
        if not ids:
            return ()
        references = await asyncio.gather(*(self.references_for(kind, rid) for rid in ids))
        return tuple(
            ref.resource_id
            for ref in references
            if ref.is_orphaned_by(removed_equipment, removed_groups)
        )

    async def orphaned_by_group(
        self,
        group_id: str,
        kind: EntityType,
        *,
        removed_equipment: frozenset[str],
        removed_groups: frozenset[str],
    ) -> tuple[str, ...]:
        """Resources shared through ``group_id`` that the removals would orphan.

        ``removed_groups`` must contain every group cascaded away together,
        so a resource shared only through several dying groups is caught.
        """
        ids = await self.shared_resource_ids(group_id, kind)
        return await self.orphans(
            kind,
            ids,
            removed_equipment=removed_equipment,
            removed_groups=removed_groups,
        )

    async def _membership_count(self, kind: EntityType, group_id: str) -> int:
        junction = group_membership(kind)
        return await degrade(
            self._warnings,
            f"shared_resource_counts:{kind.value}",
            self._store.count(junction.table, eq(junction.other_column, group_id)),
            0,
        )
