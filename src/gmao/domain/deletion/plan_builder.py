"""Aggregates an impact analysis into an operator-facing deletion plan."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, assert_never

from gmao.domain.deletion.models import DeletionPlan, DeletionTotals
from gmao.domain.deletion.settings import DeletionSettings, get_deletion_settings
from gmao.foundation.domain.identifiers import EntityType

if TYPE_CHECKING:
    from gmao.domain.deletion.models import ImpactAnalysis

logger = logging.getLogger(__name__)

INCOMPLETE_ANALYSIS_REASON = (
    "Analyse incomplète : certaines références directes n'ont pas pu être vérifiées"
)


class PlanBuilder:
    """Builds immutable :class:`DeletionPlan` objects.

    Args:
        settings: Deletion settings. Loaded from the environment when omitted.
    """

    def __init__(self, settings: DeletionSettings | None = None) -> None:
        self._settings = settings or get_deletion_settings()

    def build(self, analysis: ImpactAnalysis, *, cascade_empty_groups: bool | None = None) -> DeletionPlan:
        """Aggregate ``analysis`` for the given cascade choice.

        ``None`` picks the configured default (the dialog checkbox starts
        checked).
        """
        cascade = (
            self._settings.default_cascade_empty_groups
            if cascade_empty_groups is None
            else cascade_empty_groups
        )
        reasons = self._blocking_reasons(analysis)
        plan = DeletionPlan(
            entity=analysis.entity,
            item_name=analysis.item_name,
            direct=analysis.direct,
            groups=analysis.groups,
            linked_equipment=analysis.linked_equipment,
            linked_groups=analysis.linked_groups,
            totals=DeletionTotals.compute(analysis.direct, analysis.groups, cascade=cascade),
            cascade_empty_groups=cascade,
            can_delete=not reasons,
            reason=" ; ".join(reasons),
            warnings=analysis.warnings,
        )
        logger.debug(
            "deletion_plan_built",
            extra={
                "entity": str(plan.entity),
                "can_delete": plan.can_delete,
                "cascade_empty_groups": cascade,
            },
        )
        return plan

    def _blocking_reasons(self, analysis: ImpactAnalysis) -> list[str]:
        reasons = []
        if any(warning.critical for warning in analysis.warnings):
            reasons.append(INCOMPLETE_ANALYSIS_REASON)

        entity_type = analysis.entity.entity_type
        match entity_type:
            case EntityType.EQUIPMENT:
                interventions = analysis.direct.interventions
                if interventions and self._settings.block_on_interventions:
                    reasons.append(
                        f"{entity_type.demonstrative} est encore référencé par : "
                        f"{interventions} intervention(s)"
                    )
            case EntityType.DOCUMENT | EntityType.PART:
                usage = usage_reason(analysis)
                if usage:
                    reasons.append(usage)
            case _:
                assert_never(entity_type)
        return reasons


def usage_reason(analysis: ImpactAnalysis) -> str:
    """Who still uses a document or part; empty when nobody does.

    Groups left without equipment no longer expose the resource and do not
    block its removal.
    """
    active = [group for group in analysis.linked_groups if group.is_active]
    equipment = len(analysis.linked_equipment)
    if not equipment and not active:
        return ""

    used_by = []
    if equipment:
        used_by.append(f"{equipment} équipement(s)")
    if active:
        members = sum(group.equipment_count for group in active)
        used_by.append(f"{len(active)} groupe(s) avec {members} équipements")
    suffix = "e" if analysis.entity.entity_type is EntityType.PART else ""
    return (
        f"{analysis.entity.entity_type.demonstrative} est encore utilisé{suffix} par : "
        + ", ".join(used_by)
    )
