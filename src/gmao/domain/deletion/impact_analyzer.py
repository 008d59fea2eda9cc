"""Impact analysis of a hypothetical deletion.

Builds, without mutating anything, the raw picture of what removing one
equipment, document or part would touch: direct dependents, per-group
impact records and the orphaned shared resources. The plan builder turns
this into the operator-facing plan.

Lookups are best-effort. A failing query degrades to zero and leaves a
warning in the analysis; a failing *direct* lookup is marked critical so
the resulting plan is blocked rather than reported as safe.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, assert_never

from gmao.domain.deletion.analysis_warnings import AnalysisWarnings, degrade
from gmao.domain.deletion.association_index import AssociationIndex
from gmao.domain.deletion.models import (
    DirectReferences,
    GroupImpact,
    ImpactAnalysis,
    LinkedEquipment,
    LinkedGroup,
)
from gmao.domain.deletion.reference_counter import ReferenceCounter
from gmao.domain.deletion.settings import DeletionSettings, get_deletion_settings
from gmao.foundation.domain.exceptions import NotFoundError
from gmao.foundation.domain.identifiers import EntityType
from gmao.foundation.domain.predicates import eq
from gmao.foundation.domain.tables import Table, entity_table

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from typing import TypeVar

    from gmao.foundation.domain.identifiers import EntityRef
    from gmao.foundation.domain.ports import DataStorePort, Row

    T = TypeVar("T")

logger = logging.getLogger(__name__)


def fallback_group_name(group_id: str) -> str:
    return f"Groupe {group_id[:8]}..."


class _AnalysisRun:
    """State shared by the lookups of a single analysis."""

    def __init__(self, store: DataStorePort, settings: DeletionSettings) -> None:
        self.warnings = AnalysisWarnings()
        self.index = AssociationIndex(store, self.warnings)
        self.counter = ReferenceCounter(store, self.warnings)
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_queries)

    async def bounded(self, lookup: Awaitable[T]) -> T:
        async with self._semaphore:
            return await lookup


class ImpactAnalyzer:
    """Computes the impact of deleting one entity.

    Args:
        store: Data store port.
        settings: Deletion settings. Loaded from the environment when omitted.
    """

    def __init__(self, store: DataStorePort, settings: DeletionSettings | None = None) -> None:
        self._store = store
        self._settings = settings or get_deletion_settings()

    async def analyze(self, entity: EntityRef) -> ImpactAnalysis:
        """Analyze the deletion of ``entity``.

        Raises:
            NotFoundError: If the target row does not exist.
        """
        run = _AnalysisRun(self._store, self._settings)
        target = await self._load_target(run, entity)

        match entity.entity_type:
            case EntityType.EQUIPMENT:
                analysis = await self._analyze_equipment(run, entity, target)
            case EntityType.DOCUMENT | EntityType.PART:
                analysis = await self._analyze_shared_resource(run, entity, target)
            case _:
                assert_never(entity.entity_type)

        logger.info(
            "deletion_analysis_completed",
            extra={
                "entity": str(entity),
                "groups": len(analysis.groups),
                "empty_groups": len(analysis.empty_groups),
                "linked_equipment": len(analysis.linked_equipment),
                "warnings": len(analysis.warnings),
            },
        )
        return analysis

    async def _load_target(self, run: _AnalysisRun, entity: EntityRef) -> Row | None:
        """Fetch the target row. ``None`` means the lookup itself failed."""
        rows = await degrade(
            run.warnings,
            "load_target",
            self._store.select_where(entity_table(entity.entity_type), eq("id", entity.entity_id)),
            None,
            critical=True,
        )
        if rows is None:
            return None
        if not rows:
            raise NotFoundError(entity.entity_type.label.capitalize(), entity.entity_id)
        return rows[0]

    @staticmethod
    def _item_name(entity: EntityRef, target: Row | None) -> str:
        if target and target.get("name"):
            return str(target["name"])
        return f"{entity.entity_type.label} {entity.short_id}"

    async def _analyze_equipment(
        self,
        run: _AnalysisRun,
        entity: EntityRef,
        target: Row | None,
    ) -> ImpactAnalysis:
        equipment_id = entity.entity_id
        removed = frozenset({equipment_id})

        document_ids, part_ids, interventions, history, group_ids = await asyncio.gather(
            run.index.resources_linked_to(equipment_id, EntityType.DOCUMENT, critical=True),
            run.index.resources_linked_to(equipment_id, EntityType.PART, critical=True),
            degrade(
                run.warnings,
                "direct:interventions",
                self._store.count(Table.INTERVENTIONS, eq("equipment_id", equipment_id)),
                0,
                critical=True,
            ),
            degrade(
                run.warnings,
                "direct:history",
                self._store.count(Table.EQUIPMENT_HISTORY, eq("equipment_id", equipment_id)),
                0,
                critical=True,
            ),
            run.index.groups_for(equipment_id, EntityType.EQUIPMENT),
        )

        names = await run.index.group_names(group_ids)
        partial = await asyncio.gather(
            *(self._group_impact(run, group_id, equipment_id, names) for group_id in group_ids)
        )
        dying = frozenset(group.group_id for group in partial if group.will_become_empty)

        groups = []
        for group in partial:
            if group.will_become_empty:
                orphaned_documents, orphaned_parts = await asyncio.gather(
                    run.bounded(
                        run.counter.orphaned_by_group(
                            group.group_id,
                            EntityType.DOCUMENT,
                            removed_equipment=removed,
                            removed_groups=dying,
                        )
                    ),
                    run.bounded(
                        run.counter.orphaned_by_group(
                            group.group_id,
                            EntityType.PART,
                            removed_equipment=removed,
                            removed_groups=dying,
                        )
                    ),
                )
                groups.append(
                    replace(
                        group,
                        orphaned_document_ids=orphaned_documents,
                        orphaned_part_ids=orphaned_parts,
                    )
                )
            else:
                groups.append(group)

        orphaned_documents, orphaned_parts = await asyncio.gather(
            run.counter.orphans(EntityType.DOCUMENT, document_ids, removed_equipment=removed),
            run.counter.orphans(EntityType.PART, part_ids, removed_equipment=removed),
        )

        direct = DirectReferences(
            documents=len(document_ids),
            parts=len(part_ids),
            interventions=interventions,
            history=history,
            has_image=bool(target and target.get("image_url")),
            document_ids=tuple(document_ids),
            part_ids=tuple(part_ids),
            orphaned_document_ids=orphaned_documents,
            orphaned_part_ids=orphaned_parts,
        )
        return ImpactAnalysis(
            entity=entity,
            item_name=self._item_name(entity, target),
            direct=direct,
            groups=tuple(groups),
            warnings=run.warnings.freeze(),
        )

    async def _group_impact(
        self,
        run: _AnalysisRun,
        group_id: str,
        equipment_id: str,
        names: dict[str, str],
    ) -> GroupImpact:
        remaining, shared = await asyncio.gather(
            run.bounded(run.index.remaining_members(group_id, equipment_id)),
            run.bounded(run.counter.shared_resource_counts(group_id)),
        )
        return GroupImpact(
            group_id=group_id,
            group_name=names.get(group_id, fallback_group_name(group_id)),
            remaining_equipment=remaining,
            shared_documents=shared.documents,
            shared_parts=shared.parts,
            will_become_empty=remaining == 0,
        )

    async def _analyze_shared_resource(
        self,
        run: _AnalysisRun,
        entity: EntityRef,
        target: Row | None,
    ) -> ImpactAnalysis:
        equipment_ids, group_ids = await asyncio.gather(
            run.index.equipment_for(entity.entity_id, entity.entity_type, critical=True),
            run.index.groups_for(entity.entity_id, entity.entity_type, critical=True),
        )
        equipment_names, group_names = await asyncio.gather(
            run.index.equipment_names(equipment_ids),
            run.index.group_names(group_ids),
        )
        # a group whose count is unknown may still expose the resource
        counts = await asyncio.gather(
            *(
                run.bounded(run.index.member_count(group_id, critical=True))
                for group_id in group_ids
            )
        )

        linked_equipment = tuple(
            LinkedEquipment(
                equipment_id=equipment_id,
                equipment_name=equipment_names.get(
                    equipment_id, f"{EntityType.EQUIPMENT.label} {equipment_id[:8]}..."
                ),
            )
            for equipment_id in equipment_ids
        )
        linked_groups = tuple(
            LinkedGroup(
                group_id=group_id,
                group_name=group_names.get(group_id, fallback_group_name(group_id)),
                equipment_count=count,
            )
            for group_id, count in zip(group_ids, counts, strict=True)
        )
        return ImpactAnalysis(
            entity=entity,
            item_name=self._item_name(entity, target),
            linked_equipment=linked_equipment,
            linked_groups=linked_groups,
            warnings=run.warnings.freeze(),
        )
