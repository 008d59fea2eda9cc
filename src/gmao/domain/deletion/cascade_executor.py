"""Executes a confirmed deletion plan against the data store.

Steps run in dependency order: membership edges first, then the records
they pointed at, then the groups the removal emptied. The store may have
changed since analysis, so every cascade decision is re-validated against
the current rows and the reported counts can differ from the plan.

When the store offers transactions the whole plan runs inside one and a
failure rolls everything back. Otherwise the journal of applied steps tells
the caller exactly how far the deletion went.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, assert_never

from gmao.domain.deletion.association_index import AssociationIndex
from gmao.domain.deletion.models import ExecutionResult, ExecutionStatus, StepRecord
from gmao.domain.deletion.reference_counter import ReferenceCounter
from gmao.foundation.domain.exceptions import (
    DeletionBlockedError,
    DeletionStepError,
    StoreQueryError,
)
from gmao.foundation.domain.identifiers import EntityType
from gmao.foundation.domain.predicates import eq, in_
from gmao.foundation.domain.tables import (
    SHARED_RESOURCE_TYPES,
    Table,
    entity_table,
    equipment_link,
    group_membership,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from gmao.domain.deletion.models import DeletionPlan
    from gmao.foundation.domain.predicates import Predicate
    from gmao.foundation.domain.ports import DataStorePort

logger = logging.getLogger(__name__)


class _Run:
    """One execution: strict readers plus the step journal."""

    def __init__(self, store: DataStorePort, result: ExecutionResult) -> None:
        self.store = store
        self.result = result
        self.index = AssociationIndex(store)
        self.counter = ReferenceCounter(store)

    def fail(self, step: str, reason: str) -> DeletionStepError:
        return DeletionStepError(
            step,
            reason,
            applied_steps=[record.name for record in self.result.steps],
            rolled_back=self.store.supports_transactions,
            entity=str(self.result.entity),
        )

    async def read(self, step: str, lookup: Awaitable[list[str]]) -> list[str]:
        """Run a validation read; a store failure halts execution."""
        try:
            return await lookup
        except StoreQueryError as exc:
            raise self.fail(step, str(exc)) from exc

    async def delete(self, step: str, table: Table, predicate: Predicate) -> int:
        """Run one delete step and journal it."""
        try:
            affected = await self.store.delete_where(table, predicate)
        except StoreQueryError as exc:
            raise self.fail(step, str(exc)) from exc
        self.result.steps.append(StepRecord(name=step, table=table.value, affected=affected))
        logger.debug(
            "cascade_step_applied",
            extra={"step": step, "table": table.value, "affected": affected},
        )
        return affected

    async def delete_resources(self, step: str, kind: EntityType, ids: tuple[str, ...]) -> None:
        if not ids:
            return
        affected = await self.delete(step, entity_table(kind), in_("id", list(ids)))
        if kind is EntityType.DOCUMENT:
            self.result.deleted.documents += affected
        else:
            self.result.deleted.parts += affected


class CascadeExecutor:
    """Applies deletion plans.

    Args:
        store: Data store port. Readers used during execution are strict:
            a failing lookup is a failed step, never a silent zero.
    """

    def __init__(self, store: DataStorePort) -> None:
        self._store = store

    async def execute(self, plan: DeletionPlan, *, cascade_empty_groups: bool) -> ExecutionResult:
        """Execute ``plan``.

        Raises:
            DeletionBlockedError: If the plan does not allow deletion.
        """
        if not plan.can_delete:
            raise DeletionBlockedError(plan.reason, entity=str(plan.entity))

        result = ExecutionResult(entity=plan.entity)
        run = _Run(self._store, result)
        logger.info(
            "cascade_deletion_started",
            extra={
                "entity": str(plan.entity),
                "cascade_empty_groups": cascade_empty_groups,
                "transactional": self._store.supports_transactions,
            },
        )

        try:
            async with self._store.transaction():
                match plan.entity.entity_type:
                    case EntityType.EQUIPMENT:
                        await self._delete_equipment(run, plan, cascade_empty_groups)
                    case EntityType.DOCUMENT | EntityType.PART:
                        await self._delete_shared_resource(run, plan)
                    case _:
                        assert_never(plan.entity.entity_type)
        except DeletionStepError as exc:
            return self._failed(result, exc)
        except StoreQueryError as exc:
            # the store refused the commit; nothing was applied
            return self._failed(
                result,
                DeletionStepError(
                    "commit",
                    str(exc),
                    applied_steps=[record.name for record in result.steps],
                    rolled_back=True,
                ),
            )

        logger.info(
            "cascade_deletion_completed",
            extra={
                "entity": str(plan.entity),
                "steps": len(result.steps),
                "groups": result.deleted.groups,
                "skipped_groups": len(result.skipped_groups),
            },
        )
        return result

    @staticmethod
    def _failed(result: ExecutionResult, exc: DeletionStepError) -> ExecutionResult:
        result.status = ExecutionStatus.FAILED
        result.failed_step = exc.step
        result.rolled_back = exc.rolled_back
        result.errors.append(str(exc))
        logger.error(
            "cascade_deletion_failed",
            extra={
                "entity": str(result.entity),
                "failed_step": exc.step,
                "applied_steps": exc.applied_steps,
                "rolled_back": exc.rolled_back,
            },
        )
        return result

    async def _delete_equipment(self, run: _Run, plan: DeletionPlan, cascade: bool) -> None:
        equipment_id = plan.entity.entity_id
        removed = frozenset({equipment_id})

        direct = {}
        for kind in SHARED_RESOURCE_TYPES:
            direct[kind] = await run.read(
                f"read_direct_{kind.value}s",
                run.index.resources_linked_to(equipment_id, kind),
            )

        run.result.deleted.membership_edges += await run.delete(
            "unlink_equipment_groups",
            Table.EQUIPMENT_GROUP_MEMBERS,
            eq("equipment_id", equipment_id),
        )
        for kind in SHARED_RESOURCE_TYPES:
            link = equipment_link(kind)
            run.result.deleted.membership_edges += await run.delete(
                f"unlink_{kind.value}s",
                link.table,
                eq(link.other_column, equipment_id),
            )

        for kind in SHARED_RESOURCE_TYPES:
            orphans = await self._orphans(
                run, f"check_direct_{kind.value}s", kind, direct[kind], removed, frozenset()
            )
            await run.delete_resources(f"delete_orphaned_{kind.value}s", kind, orphans)

        run.result.deleted.history = await run.delete(
            "delete_equipment_history",
            Table.EQUIPMENT_HISTORY,
            eq("equipment_id", equipment_id),
        )
        deleted = await run.delete(
            "delete_equipment", Table.EQUIPMENTS, eq("id", equipment_id)
        )
        if deleted == 0:
            raise run.fail("delete_equipment", "equipment row no longer exists")
        run.result.deleted.equipment = deleted

        if cascade:
            await self._cascade_empty_groups(run, plan, removed)

    async def _cascade_empty_groups(
        self,
        run: _Run,
        plan: DeletionPlan,
        removed: frozenset[str],
    ) -> None:
        dying = []
        for group in plan.empty_groups:
            try:
                members = await run.index.member_count(group.group_id)
            except StoreQueryError as exc:
                raise run.fail(f"check_group:{group.group_id}", str(exc)) from exc
            if members:
                run.result.skipped_groups.append(group.group_id)
                logger.warning(
                    "cascade_group_skipped",
                    extra={"group_id": group.group_id, "members": members},
                )
                continue
            dying.append(group.group_id)

        removed_groups = frozenset(dying)
        for group_id in dying:
            for kind in SHARED_RESOURCE_TYPES:
                junction = group_membership(kind)
                shared = await run.read(
                    f"read_group_{kind.value}s:{group_id}",
                    run.counter.shared_resource_ids(group_id, kind),
                )
                # orphans are decided before the edges go, edges of the
                # other dying groups are discounted through removed_groups
                orphans = await self._orphans(
                    run,
                    f"check_group_{kind.value}s:{group_id}",
                    kind,
                    shared,
                    removed,
                    removed_groups,
                )
                run.result.deleted.membership_edges += await run.delete(
                    f"unlink_group_{kind.value}s:{group_id}",
                    junction.table,
                    eq(junction.other_column, group_id),
                )
                await run.delete_resources(
                    f"delete_group_{kind.value}s:{group_id}", kind, orphans
                )

            run.result.deleted.groups += await run.delete(
                f"delete_group:{group_id}", Table.EQUIPMENT_GROUPS, eq("id", group_id)
            )

    @staticmethod
    async def _orphans(
        run: _Run,
        step: str,
        kind: EntityType,
        ids: list[str],
        removed_equipment: frozenset[str],
        removed_groups: frozenset[str],
    ) -> tuple[str, ...]:
        try:
            return await run.counter.orphans(
                kind,
                ids,
                removed_equipment=removed_equipment,
                removed_groups=removed_groups,
            )
        except StoreQueryError as exc:
            raise run.fail(step, str(exc)) from exc

    async def _delete_shared_resource(self, run: _Run, plan: DeletionPlan) -> None:
        kind = plan.entity.entity_type
        resource_id = plan.entity.entity_id

        linked = await run.read(
            "check_equipment_links", run.index.equipment_for(resource_id, kind)
        )
        if linked:
            raise run.fail(
                "check_equipment_links",
                f"{kind.label} is linked to {len(linked)} equipment since analysis",
            )

        group_ids = await run.read("check_group_links", run.index.groups_for(resource_id, kind))
        active = []
        for group_id in group_ids:
            try:
                if await run.index.member_count(group_id):
                    active.append(group_id)
            except StoreQueryError as exc:
                raise run.fail("check_group_links", str(exc)) from exc
        if active:
            raise run.fail(
                "check_group_links",
                f"{kind.label} is shared by {len(active)} group(s) with equipment since analysis",
            )

        junction = group_membership(kind)
        run.result.deleted.membership_edges += await run.delete(
            f"unlink_{kind.value}_groups",
            junction.table,
            eq(junction.owner_column, resource_id),
        )
        deleted = await run.delete(
            f"delete_{kind.value}", entity_table(kind), eq("id", resource_id)
        )
        if deleted == 0:
            raise run.fail(f"delete_{kind.value}", f"{kind.label} row no longer exists")
        if kind is EntityType.DOCUMENT:
            run.result.deleted.documents += deleted
        else:
            run.result.deleted.parts += deleted
