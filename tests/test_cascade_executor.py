"""Unit tests for gmao.domain.deletion.cascade_executor."""

from __future__ import annotations

import pytest
from conftest import ids

from gmao.domain.deletion import DeletionEngine, DeletionSettings, ExecutionStatus
from gmao.foundation.domain.exceptions import DeletionBlockedError
from gmao.foundation.domain.predicates import eq
from gmao.infra.persistence import InMemoryDataStore


@pytest.mark.unit
class TestEquipmentCascade:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_cascade_removes_only_orphans(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("e1", "equipment")
        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.status is ExecutionStatus.COMPLETED
        deleted = result.deleted
        assert (deleted.equipment, deleted.documents, deleted.parts, deleted.groups) == (1, 2, 3, 1)
        assert deleted.membership_edges == 10
        assert deleted.history == 2
        assert ids(store.rows("equipment_history")) == {"h3"}

        assert ids(store.rows("equipments")) == {"e2", "e3"}
        assert ids(store.rows("equipment_groups")) == {"g1", "g3", "g4"}
        assert ids(store.rows("documents")) == {"d1", "d2", "d4", "d5"}
        assert ids(store.rows("parts")) == {"p4", "p5", "p6", "p7"}
        assert {(r["part_id"], r["group_id"]) for r in store.rows("part_group_members")} == {
            ("p5", "g1"),
            ("p6", "g3"),
            ("p7", "g4"),
        }
        assert store.rows("document_equipment_links") == [
            {"document_id": "d4", "equipment_id": "e2"}
        ]

    @pytest.mark.asyncio(loop_scope="function")
    async def test_step_journal_follows_dependency_order(self, engine: DeletionEngine) -> None:
        plan = await engine.analyze("e1", "equipment")
        result = await engine.execute(plan, cascade_empty_groups=True)
        assert [step.name for step in result.steps] == [
            "unlink_equipment_groups",
            "unlink_documents",
            "unlink_parts",
            "delete_orphaned_documents",
            "delete_equipment_history",
            "delete_equipment",
            "unlink_group_documents:g2",
            "delete_group_documents:g2",
            "unlink_group_parts:g2",
            "delete_group_parts:g2",
            "delete_group:g2",
        ]
        assert result.steps[0].table == "equipment_group_members"
        assert result.steps[0].affected == 2

    @pytest.mark.asyncio(loop_scope="function")
    async def test_without_cascade_groups_are_kept(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("e1", "equipment", cascade_empty_groups=False)
        result = await engine.execute(plan, cascade_empty_groups=False)

        assert result.deleted.groups == 0
        assert result.deleted.documents == 1
        assert "g2" in ids(store.rows("equipment_groups"))
        assert {"d6", "p1", "p2", "p3"} <= ids(store.rows("documents")) | ids(store.rows("parts"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_group_refilled_since_analysis_is_skipped(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("e1", "equipment")
        await store.insert("equipment_group_members", [{"equipment_id": "e2", "group_id": "g2"}])

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.succeeded
        assert result.skipped_groups == ["g2"]
        assert result.deleted.groups == 0
        assert "g2" in ids(store.rows("equipment_groups"))
        assert "p1" in ids(store.rows("parts"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_blocked_plan_is_refused(self, engine: DeletionEngine) -> None:
        plan = await engine.analyze("e3", "equipment")
        with pytest.raises(DeletionBlockedError) as exc_info:
            await engine.execute(plan, cascade_empty_groups=True)
        assert "intervention" in exc_info.value.reason


@pytest.mark.unit
class TestFailedSteps:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_transactional_store_rolls_back(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("e1", "equipment")
        store.fail_on("delete", "equipments")

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.status is ExecutionStatus.FAILED
        assert result.failed_step == "delete_equipment"
        assert result.rolled_back is True
        assert not result.partially_applied
        assert "delete_equipment" in result.errors[0]
        assert len(store.rows("equipment_group_members")) == 4
        assert "d3" in ids(store.rows("documents"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_plain_store_reports_partial_state(
        self, plain_store: InMemoryDataStore, deletion_settings: DeletionSettings
    ) -> None:
        engine = DeletionEngine(plain_store, deletion_settings)
        plan = await engine.analyze("e1", "equipment")
        plain_store.fail_on("delete", "equipments")

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.failed_step == "delete_equipment"
        assert result.rolled_back is False
        assert result.partially_applied
        assert [step.name for step in result.steps] == [
            "unlink_equipment_groups",
            "unlink_documents",
            "unlink_parts",
            "delete_orphaned_documents",
            "delete_equipment_history",
        ]
        remaining = plain_store.rows("equipment_group_members")
        assert all(row["equipment_id"] != "e1" for row in remaining)

    @pytest.mark.asyncio(loop_scope="function")
    async def test_failed_read_halts_execution(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("e1", "equipment")
        store.fail_on("count", "equipment_group_members")

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.failed_step == "check_group:g2"
        assert "e1" in ids(store.rows("equipments"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_vanished_target_fails(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("d5", "document")
        await store.delete_where("documents", eq("id", "d5"))

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.failed_step == "delete_document"


@pytest.mark.unit
class TestSharedResourceDeletion:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_part_in_empty_group_is_deleted(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("p7", "part")
        assert plan.can_delete

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.succeeded
        assert (result.deleted.parts, result.deleted.membership_edges) == (1, 1)
        assert "p7" not in ids(store.rows("parts"))
        assert "g4" in ids(store.rows("equipment_groups"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_link_added_since_analysis_fails(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("p7", "part")
        await store.insert("part_equipment_links", [{"part_id": "p7", "equipment_id": "e2"}])

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.failed_step == "check_equipment_links"
        assert "p7" in ids(store.rows("parts"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_used_group_joined_since_analysis_fails(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("d5", "document")
        assert plan.can_delete
        await store.insert("document_group_members", [{"document_id": "d5", "group_id": "g1"}])

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.status is ExecutionStatus.FAILED
        assert result.failed_step == "check_group_links"
        assert result.steps == []
        assert "d5" in ids(store.rows("documents"))
        assert {"document_id": "d5", "group_id": "g1"} in store.rows("document_group_members")

    @pytest.mark.asyncio(loop_scope="function")
    async def test_empty_group_joined_since_analysis_does_not_block(
        self, store: InMemoryDataStore, engine: DeletionEngine
    ) -> None:
        plan = await engine.analyze("d5", "document")
        await store.insert("document_group_members", [{"document_id": "d5", "group_id": "g4"}])

        result = await engine.execute(plan, cascade_empty_groups=True)

        assert result.succeeded
        assert result.deleted.membership_edges == 1
        assert "d5" not in ids(store.rows("documents"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_used_document_is_refused(self, engine: DeletionEngine) -> None:
        plan = await engine.analyze("d1", "document")
        with pytest.raises(DeletionBlockedError):
            await engine.execute(plan, cascade_empty_groups=False)
