"""Value objects produced and consumed by the deletion engine.

Everything an analysis produces is frozen: a :class:`DeletionPlan` cannot be
altered once built, and two analyses of an unchanged store compare equal.
Execution results are mutable accumulators, filled step by step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gmao.foundation.domain.identifiers import EntityRef


class DeletionState(StrEnum):
    """Lifecycle of one deletion dialog.

    IDLE -> ANALYZING -> PLAN_READY -> CONFIRMING -> EXECUTING -> COMPLETED | FAILED

    CANCELLED is reachable from every state before EXECUTING.
    """

    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    PLAN_READY = "PLAN_READY"
    CONFIRMING = "CONFIRMING"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class ExecutionStatus(StrEnum):
    """Outcome of a cascade execution."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class AnalysisWarning:
    """A store lookup that failed during analysis and was degraded.

    Attributes:
        query: Name of the degraded lookup (e.g. "remaining_members").
        detail: Error message from the store.
        critical: True when the lookup was a direct reference of the target;
            critical warnings block the deletion.
    """

    query: str
    detail: str
    critical: bool = False


@dataclass(frozen=True, slots=True)
class SharedResourceCounts:
    """Documents and parts attached to a group through membership."""

    documents: int = 0
    parts: int = 0


@dataclass(frozen=True, slots=True)
class ResourceReferences:
    """Reference set of one document or part.

    A resource stays visible while at least one reference survives: a direct
    link to an equipment that is not being removed, or a membership in a
    group that is not being removed.

    Attributes:
        resource_id: Document or part id.
        equipment_ids: Equipment the resource is linked to directly.
        group_ids: Groups the resource is shared through.
        unknown: True when the lookup failed; such a resource is never
            considered orphaned.
    """

    resource_id: str
    equipment_ids: frozenset[str] = frozenset()
    group_ids: frozenset[str] = frozenset()
    unknown: bool = False

    @property
    def total(self) -> int:
        return len(self.equipment_ids) + len(self.group_ids)

    def surviving(
        self,
        removed_equipment: frozenset[str] = frozenset(),
        removed_groups: frozenset[str] = frozenset(),
    ) -> int:
        """Reference count left once the given equipment and groups are gone."""
        return len(self.equipment_ids - removed_equipment) + len(self.group_ids - removed_groups)

    def is_orphaned_by(
        self,
        removed_equipment: frozenset[str] = frozenset(),
        removed_groups: frozenset[str] = frozenset(),
    ) -> bool:
        if self.unknown:
            return False
        return self.surviving(removed_equipment, removed_groups) == 0


@dataclass(frozen=True, slots=True)
class DirectReferences:
    """Records linked straight to an equipment target.

    Attributes:
        documents: Number of directly linked documents.
        parts: Number of directly linked parts.
        interventions: Number of interventions on the equipment.
        history: Number of history entries, deleted with the equipment.
        has_image: Whether the equipment carries an image.
        document_ids: Ids of the directly linked documents.
        part_ids: Ids of the directly linked parts.
        orphaned_document_ids: Direct documents left with no reference once
            the equipment is gone (groups kept); these are deleted with it.
        orphaned_part_ids: Same for parts.
    """

    documents: int = 0
    parts: int = 0
    interventions: int = 0
    history: int = 0
    has_image: bool = False
    document_ids: tuple[str, ...] = ()
    part_ids: tuple[str, ...] = ()
    orphaned_document_ids: tuple[str, ...] = ()
    orphaned_part_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GroupImpact:
    """What removing the target does to one of its groups.

    Attributes:
        group_id: Group id.
        group_name: Display name (falls back to a shortened id).
        remaining_equipment: Equipment left in the group after the removal.
        shared_documents: Documents shared through the group.
        shared_parts: Parts shared through the group.
        will_become_empty: ``remaining_equipment == 0``.
        orphaned_document_ids: Shared documents with no surviving reference
            if the group is cascaded away.
        orphaned_part_ids: Same for parts.
    """

    group_id: str
    group_name: str
    remaining_equipment: int
    shared_documents: int
    shared_parts: int
    will_become_empty: bool
    orphaned_document_ids: tuple[str, ...] = ()
    orphaned_part_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LinkedEquipment:
    """An equipment directly using a document or part."""

    equipment_id: str
    equipment_name: str


@dataclass(frozen=True, slots=True)
class LinkedGroup:
    """A group sharing a document or part, with its equipment count."""

    group_id: str
    group_name: str
    equipment_count: int

    @property
    def is_active(self) -> bool:
        """A group with equipment still exposes the resource."""
        return self.equipment_count > 0


@dataclass(frozen=True, slots=True)
class DeletionTotals:
    """Aggregate counts shown to the operator."""

    documents: int = 0
    parts: int = 0
    interventions: int = 0
    groups: int = 0

    @classmethod
    def compute(
        cls,
        direct: DirectReferences,
        groups: tuple[GroupImpact, ...],
        *,
        cascade: bool,
    ) -> DeletionTotals:
        """Totals for one value of the cascade flag.

        Cascaded documents and parts are the orphans of the emptied groups,
        counted once across groups and never twice with a direct link.
        """
        if not cascade:
            return cls(
                documents=direct.documents,
                parts=direct.parts,
                interventions=direct.interventions,
            )
        empty = [group for group in groups if group.will_become_empty]
        documents = {rid for group in empty for rid in group.orphaned_document_ids}
        parts = {rid for group in empty for rid in group.orphaned_part_ids}
        return cls(
            documents=direct.documents + len(documents - set(direct.document_ids)),
            parts=direct.parts + len(parts - set(direct.part_ids)),
            interventions=direct.interventions,
            groups=len(empty),
        )


@dataclass(frozen=True, slots=True)
class ImpactAnalysis:
    """Raw analyzer output, before the plan builder aggregates it."""

    entity: EntityRef
    item_name: str
    direct: DirectReferences = DirectReferences()
    groups: tuple[GroupImpact, ...] = ()
    linked_equipment: tuple[LinkedEquipment, ...] = ()
    linked_groups: tuple[LinkedGroup, ...] = ()
    warnings: tuple[AnalysisWarning, ...] = ()

    @property
    def empty_groups(self) -> tuple[GroupImpact, ...]:
        return tuple(group for group in self.groups if group.will_become_empty)


@dataclass(frozen=True, slots=True)
class DeletionPlan:
    """Immutable description of everything a deletion would affect.

    Attributes:
        entity: The deletion target.
        item_name: Display name of the target.
        direct: Direct references (equipment targets only).
        groups: Per-group impact records, in membership order.
        linked_equipment: Equipment using the target (document/part targets).
        linked_groups: Groups sharing the target (document/part targets).
        totals: Aggregate counts for ``cascade_empty_groups``.
        cascade_empty_groups: The cascade choice the totals were computed for.
        can_delete: False when a policy or an incomplete analysis blocks removal.
        reason: Human-readable blocking reason, empty when deletable.
        warnings: Lookups degraded during analysis.
    """

    entity: EntityRef
    item_name: str
    direct: DirectReferences
    groups: tuple[GroupImpact, ...]
    linked_equipment: tuple[LinkedEquipment, ...]
    linked_groups: tuple[LinkedGroup, ...]
    totals: DeletionTotals
    cascade_empty_groups: bool
    can_delete: bool
    reason: str
    warnings: tuple[AnalysisWarning, ...] = ()

    @property
    def empty_groups(self) -> tuple[GroupImpact, ...]:
        return tuple(group for group in self.groups if group.will_become_empty)

    @property
    def is_complete(self) -> bool:
        """False when at least one lookup was degraded to zero."""
        return not self.warnings

    def totals_for(self, cascade: bool) -> DeletionTotals:
        """Totals for the other position of the cascade checkbox, no re-analysis."""
        if cascade == self.cascade_empty_groups:
            return self.totals
        return DeletionTotals.compute(self.direct, self.groups, cascade=cascade)


@dataclass
class DeletedCounts:
    """Rows the store reported as deleted, per kind."""

    equipment: int = 0
    documents: int = 0
    parts: int = 0
    groups: int = 0
    membership_edges: int = 0
    history: int = 0


@dataclass
class StepRecord:
    """Journal entry for one applied cascade step."""

    name: str
    table: str
    affected: int


@dataclass
class ExecutionResult:
    """Result of executing a deletion plan.

    Attributes:
        entity: The deletion target.
        status: COMPLETED or FAILED.
        deleted: Counts actually deleted (may differ from the plan).
        steps: Journal of the steps applied, in order.
        errors: Error messages; empty on success.
        failed_step: Name of the step that halted execution.
        rolled_back: True when the store undid the applied steps.
        skipped_groups: Empty-flagged groups that had regained equipment.
    """

    entity: EntityRef
    status: ExecutionStatus = ExecutionStatus.COMPLETED
    deleted: DeletedCounts = field(default_factory=DeletedCounts)
    steps: list[StepRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    failed_step: str | None = None
    rolled_back: bool = False
    skipped_groups: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is ExecutionStatus.COMPLETED

    @property
    def partially_applied(self) -> bool:
        """True when a failure left earlier steps committed in the store."""
        return not self.succeeded and not self.rolled_back and bool(self.steps)
