"""Response and request bodies of the deletion API.

Response models read the engine's dataclasses directly
(``from_attributes``). Of the id lists only the orphaned subsets are
exposed: they name the documents and parts the deletion removes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from gmao.domain.deletion import DeletionState, ExecutionStatus
from gmao.foundation.domain.identifiers import EntityType


class _FromDomain(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class OpenSessionRequest(BaseModel):
    entity_type: EntityType
    entity_id: str = Field(..., min_length=1, max_length=64)
    cascade_empty_groups: bool | None = None


class ConfirmRequest(BaseModel):
    cascade_empty_groups: bool


class EntityOut(_FromDomain):
    entity_type: EntityType
    entity_id: str


class DirectReferencesOut(_FromDomain):
    documents: int
    parts: int
    interventions: int
    history: int
    has_image: bool
    orphaned_document_ids: list[str]
    orphaned_part_ids: list[str]


class GroupImpactOut(_FromDomain):
    group_id: str
    group_name: str
    remaining_equipment: int
    shared_documents: int
    shared_parts: int
    will_become_empty: bool
    orphaned_document_ids: list[str]
    orphaned_part_ids: list[str]


class LinkedEquipmentOut(_FromDomain):
    equipment_id: str
    equipment_name: str


class LinkedGroupOut(_FromDomain):
    group_id: str
    group_name: str
    equipment_count: int


class TotalsOut(_FromDomain):
    documents: int
    parts: int
    interventions: int
    groups: int


class WarningOut(_FromDomain):
    query: str
    detail: str
    critical: bool


class PlanOut(_FromDomain):
    entity: EntityOut
    item_name: str
    direct: DirectReferencesOut
    groups: list[GroupImpactOut]
    linked_equipment: list[LinkedEquipmentOut]
    linked_groups: list[LinkedGroupOut]
    totals: TotalsOut
    cascade_empty_groups: bool
    can_delete: bool
    reason: str
    warnings: list[WarningOut]


class DeletedCountsOut(_FromDomain):
    equipment: int
    documents: int
    parts: int
    groups: int
    membership_edges: int
    history: int


class StepOut(_FromDomain):
    name: str
    table: str
    affected: int


class ExecutionResultOut(_FromDomain):
    status: ExecutionStatus
    deleted: DeletedCountsOut
    steps: list[StepOut]
    errors: list[str]
    failed_step: str | None
    rolled_back: bool
    partially_applied: bool
    skipped_groups: list[str]


class SessionOut(_FromDomain):
    session_id: str
    state: DeletionState
    entity: EntityOut
    plan: PlanOut | None
    result: ExecutionResultOut | None
    error: str | None
