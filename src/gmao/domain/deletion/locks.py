"""Per-entity advisory locks for deletions in flight.

Only one deletion of a given entity may run between confirmation and the
end of execution. The registry lives in process memory; it guards sessions
served by the same application instance.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from gmao.foundation.domain.exceptions import EntityLockedError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from gmao.foundation.domain.identifiers import EntityRef

logger = logging.getLogger(__name__)


class EntityLockRegistry:
    """Advisory locks keyed by ``(entity_type, entity_id)``.

    Args:
        timeout_seconds: How long ``acquire`` waits for a held lock.
            ``0`` fails immediately.
    """

    def __init__(self, timeout_seconds: float = 0.0) -> None:
        self._timeout = timeout_seconds
        self._locks: dict[EntityRef, asyncio.Lock] = {}
        self._users: dict[EntityRef, int] = {}

    def is_locked(self, entity: EntityRef) -> bool:
        lock = self._locks.get(entity)
        return lock is not None and lock.locked()

    async def acquire(self, entity: EntityRef) -> None:
        """Take the lock on ``entity``.

        Raises:
            EntityLockedError: If another deletion holds it past the timeout.
        """
        lock = self._locks.setdefault(entity, asyncio.Lock())
        if lock.locked() and self._timeout <= 0:
            raise EntityLockedError(entity.entity_type.value, entity.entity_id)

        self._users[entity] = self._users.get(entity, 0) + 1
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self._timeout or None)
        except TimeoutError as exc:
            self._forget(entity)
            raise EntityLockedError(
                entity.entity_type.value,
                entity.entity_id,
                timeout_seconds=self._timeout,
            ) from exc
        logger.debug("entity_lock_acquired", extra={"entity": str(entity)})

    def release(self, entity: EntityRef) -> None:
        """Release the lock on ``entity``; releasing a free lock is a no-op."""
        lock = self._locks.get(entity)
        if lock is None or not lock.locked():
            return
        lock.release()
        self._forget(entity)
        logger.debug("entity_lock_released", extra={"entity": str(entity)})

    def _forget(self, entity: EntityRef) -> None:
        remaining = self._users.get(entity, 1) - 1
        if remaining > 0:
            self._users[entity] = remaining
            return
        self._users.pop(entity, None)
        self._locks.pop(entity, None)

    @asynccontextmanager
    async def hold(self, entity: EntityRef) -> AsyncIterator[None]:
        """Hold the lock on ``entity`` for the duration of the block."""
        await self.acquire(entity)
        try:
            yield
        finally:
            self.release(entity)
