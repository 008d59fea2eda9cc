"""Deletion engine facade.

Wires the analyzer, plan builder, executor and entity locks around one data
store and exposes the two calls the dashboard needs: ``analyze`` to get a
plan, ``execute`` to apply it.

Example:
    >>> engine = DeletionEngine(store)
    >>> plan = await engine.analyze("eq-1", "equipment")
    >>> if plan.can_delete:
    ...     result = await engine.execute(plan, cascade_empty_groups=True)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gmao.domain.deletion.cascade_executor import CascadeExecutor
from gmao.domain.deletion.impact_analyzer import ImpactAnalyzer
from gmao.domain.deletion.locks import EntityLockRegistry
from gmao.domain.deletion.plan_builder import PlanBuilder
from gmao.domain.deletion.session import DeletionSession
from gmao.domain.deletion.settings import DeletionSettings, get_deletion_settings
from gmao.foundation.domain.identifiers import EntityRef, EntityType

if TYPE_CHECKING:
    from gmao.domain.deletion.models import DeletionPlan, DeletionTotals, ExecutionResult
    from gmao.foundation.domain.ports import DataStorePort

logger = logging.getLogger(__name__)


class DeletionEngine:
    """Deletion-impact analysis and cascading cleanup.

    Plans are never cached: every ``analyze`` re-reads the store.

    Args:
        store: Data store port.
        settings: Deletion settings. Loaded from the environment when omitted.
        locks: Entity lock registry. One is created from the settings when
            omitted; share it between engines serving the same store.
    """

    def __init__(
        self,
        store: DataStorePort,
        settings: DeletionSettings | None = None,
        locks: EntityLockRegistry | None = None,
    ) -> None:
        self._settings = settings or get_deletion_settings()
        self.store = store
        self.locks = locks or EntityLockRegistry(self._settings.lock_timeout_seconds)
        self._analyzer = ImpactAnalyzer(store, self._settings)
        self._builder = PlanBuilder(self._settings)
        self._executor = CascadeExecutor(store)

    async def analyze(
        self,
        entity_id: str,
        entity_type: EntityType | str,
        *,
        cascade_empty_groups: bool | None = None,
    ) -> DeletionPlan:
        """Build the deletion plan of one entity.

        Raises:
            ValidationError: If ``entity_type`` is unknown or ``entity_id`` empty.
            NotFoundError: If the entity does not exist.
        """
        return await self.plan(
            EntityRef(entity_type, entity_id), cascade_empty_groups=cascade_empty_groups
        )

    async def plan(
        self,
        entity: EntityRef,
        *,
        cascade_empty_groups: bool | None = None,
    ) -> DeletionPlan:
        logger.info("deletion_analysis_started", extra={"entity": str(entity)})
        analysis = await self._analyzer.analyze(entity)
        return self._builder.build(analysis, cascade_empty_groups=cascade_empty_groups)

    async def execute(self, plan: DeletionPlan, cascade_empty_groups: bool) -> ExecutionResult:
        """Apply ``plan``, holding the entity lock for the whole execution.

        Raises:
            DeletionBlockedError: If the plan does not allow deletion.
            EntityLockedError: If the entity is being deleted elsewhere.
        """
        async with self.locks.hold(plan.entity):
            return await self.run_plan(plan, cascade_empty_groups=cascade_empty_groups)

    async def run_plan(self, plan: DeletionPlan, *, cascade_empty_groups: bool) -> ExecutionResult:
        """Apply ``plan``; the caller holds the entity lock."""
        return await self._executor.execute(plan, cascade_empty_groups=cascade_empty_groups)

    @staticmethod
    def totals_for(plan: DeletionPlan, cascade: bool) -> DeletionTotals:
        return plan.totals_for(cascade)

    async def open_session(
        self,
        entity_id: str,
        entity_type: EntityType | str,
        *,
        cascade_empty_groups: bool | None = None,
    ) -> DeletionSession:
        """Start a deletion dialog: create a session and analyze its target."""
        session = DeletionSession(EntityRef(entity_type, entity_id), self)
        await session.analyze(cascade_empty_groups=cascade_empty_groups)
        return session
