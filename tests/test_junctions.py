"""Unit tests for gmao.domain.deletion.junctions."""

from __future__ import annotations

import pytest

from gmao.domain.deletion import JunctionTableManager
from gmao.foundation.domain.exceptions import StoreQueryError
from gmao.foundation.domain.identifiers import EntityType
from gmao.infra.persistence import InMemoryDataStore


@pytest.mark.unit
class TestJunctionReads:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_groups_of_each_kind(self, store: InMemoryDataStore) -> None:
        junctions = JunctionTableManager(store)
        assert await junctions.groups_for_equipment("e1") == ["g1", "g2"]
        assert await junctions.groups_for_document("d6") == ["g2"]
        assert await junctions.groups_for_part("p5") == ["g2", "g1"]

    @pytest.mark.asyncio(loop_scope="function")
    async def test_equipment_for_group(self, store: InMemoryDataStore) -> None:
        junctions = JunctionTableManager(store)
        assert await junctions.equipment_for_group("g1") == ["e1", "e2"]
        assert await junctions.equipment_for_group("g4") == []

    @pytest.mark.asyncio(loop_scope="function")
    async def test_resources_visible_to_equipment(self, store: InMemoryDataStore) -> None:
        junctions = JunctionTableManager(store)
        # direct links first, then shared through g1 and g2, without duplicates
        assert await junctions.resources_for_equipment("e1", EntityType.DOCUMENT) == [
            "d3",
            "d4",
            "d6",
            "d1",
            "d2",
        ]
        assert await junctions.resources_for_equipment("e2", EntityType.PART) == ["p4", "p5"]

    @pytest.mark.asyncio(loop_scope="function")
    async def test_reads_are_strict(self, store: InMemoryDataStore) -> None:
        store.fail_on("select", "equipment_group_members")
        with pytest.raises(StoreQueryError):
            await JunctionTableManager(store).groups_for_equipment("e1")


@pytest.mark.unit
class TestJunctionWrites:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_replace_memberships_drops_duplicates(self, store: InMemoryDataStore) -> None:
        junctions = JunctionTableManager(store)
        inserted = await junctions.replace_document_memberships("d5", ["g3", "g1", "g3"])

        assert inserted == 2
        assert await junctions.groups_for_document("d5") == ["g3", "g1"]

    @pytest.mark.asyncio(loop_scope="function")
    async def test_replace_with_nothing_clears(self, store: InMemoryDataStore) -> None:
        junctions = JunctionTableManager(store)
        assert await junctions.replace_part_memberships("p5", []) == 0
        assert await junctions.groups_for_part("p5") == []
        assert await junctions.groups_for_part("p1") == ["g2"]

    @pytest.mark.asyncio(loop_scope="function")
    async def test_replace_group_equipment(self, store: InMemoryDataStore) -> None:
        junctions = JunctionTableManager(store)
        await junctions.replace_group_equipment("g4", ["e2", "e3"])
        assert await junctions.equipment_for_group("g4") == ["e2", "e3"]
        assert await junctions.groups_for_equipment("e1") == ["g1", "g2"]

    @pytest.mark.asyncio(loop_scope="function")
    async def test_failed_insert_keeps_old_memberships(self, store: InMemoryDataStore) -> None:
        store.fail_on("insert", "equipment_group_members")
        junctions = JunctionTableManager(store)

        with pytest.raises(StoreQueryError):
            await junctions.replace_equipment_memberships("e1", ["g3"])

        assert await junctions.groups_for_equipment("e1") == ["g1", "g2"]
