"""GMAO deletion engine.

Deletion-impact analysis and cascading cleanup for equipment, documents and
parts, including the groups left empty by a removal.
"""

from gmao.domain.deletion.cascade_executor import CascadeExecutor
from gmao.domain.deletion.engine import DeletionEngine
from gmao.domain.deletion.impact_analyzer import ImpactAnalyzer
from gmao.domain.deletion.junctions import JunctionTableManager
from gmao.domain.deletion.locks import EntityLockRegistry
from gmao.domain.deletion.models import (
    AnalysisWarning,
    DeletedCounts,
    DeletionPlan,
    DeletionState,
    DeletionTotals,
    DirectReferences,
    ExecutionResult,
    ExecutionStatus,
    GroupImpact,
    ImpactAnalysis,
    LinkedEquipment,
    LinkedGroup,
    StepRecord,
)
from gmao.domain.deletion.plan_builder import PlanBuilder
from gmao.domain.deletion.session import DeletionSession, DeletionSessionRegistry
from gmao.domain.deletion.settings import DeletionSettings, get_deletion_settings

__all__ = [
    "AnalysisWarning",
    "CascadeExecutor",
    "DeletedCounts",
    "DeletionEngine",
    "DeletionPlan",
    "DeletionSession",
    "DeletionSessionRegistry",
    "DeletionSettings",
    "DeletionState",
    "DeletionTotals",
    "DirectReferences",
    "EntityLockRegistry",
    "ExecutionResult",
    "ExecutionStatus",
    "GroupImpact",
    "ImpactAnalysis",
    "ImpactAnalyzer",
    "JunctionTableManager",
    "LinkedEquipment",
    "LinkedGroup",
    "PlanBuilder",
    "StepRecord",
    "get_deletion_settings",
]
