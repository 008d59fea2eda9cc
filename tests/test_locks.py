"""Unit tests for gmao.domain.deletion.locks."""

from __future__ import annotations

import asyncio

import pytest

from gmao.domain.deletion import EntityLockRegistry
from gmao.foundation.domain.exceptions import EntityLockedError
from gmao.foundation.domain.identifiers import EntityRef, EntityType

E1 = EntityRef(EntityType.EQUIPMENT, "e1")


@pytest.mark.unit
class TestEntityLockRegistry:
    @pytest.mark.asyncio(loop_scope="function")
    async def test_second_acquire_fails_immediately(self) -> None:
        locks = EntityLockRegistry()
        await locks.acquire(E1)
        assert locks.is_locked(E1)

        with pytest.raises(EntityLockedError) as exc_info:
            await locks.acquire(E1)
        assert exc_info.value.entity_id == "e1"

    @pytest.mark.asyncio(loop_scope="function")
    async def test_locks_are_per_entity(self) -> None:
        locks = EntityLockRegistry()
        await locks.acquire(E1)
        await locks.acquire(EntityRef(EntityType.DOCUMENT, "e1"))
        assert locks.is_locked(EntityRef(EntityType.DOCUMENT, "e1"))

    @pytest.mark.asyncio(loop_scope="function")
    async def test_release_frees_the_entity(self) -> None:
        locks = EntityLockRegistry()
        async with locks.hold(E1):
            assert locks.is_locked(E1)
        assert not locks.is_locked(E1)
        locks.release(E1)

    @pytest.mark.asyncio(loop_scope="function")
    async def test_hold_releases_on_error(self) -> None:
        locks = EntityLockRegistry()
        with pytest.raises(RuntimeError):
            async with locks.hold(E1):
                raise RuntimeError("boom")
        assert not locks.is_locked(E1)

    @pytest.mark.asyncio(loop_scope="function")
    async def test_timeout_raises_locked(self) -> None:
        locks = EntityLockRegistry(timeout_seconds=0.01)
        await locks.acquire(E1)
        with pytest.raises(EntityLockedError) as exc_info:
            await locks.acquire(E1)
        assert exc_info.value.context["timeout_seconds"] == 0.01
        assert locks.is_locked(E1)

    @pytest.mark.asyncio(loop_scope="function")
    async def test_waiter_gets_lock_after_release(self) -> None:
        locks = EntityLockRegistry(timeout_seconds=1.0)
        await locks.acquire(E1)
        waiter = asyncio.create_task(locks.acquire(E1))
        await asyncio.sleep(0)

        locks.release(E1)
        await waiter

        assert locks.is_locked(E1)
        locks.release(E1)
        assert not locks.is_locked(E1)
