"""Deletion session: the lifecycle of one deletion dialog.

A session owns the plan shown to the operator and walks it through the
confirmation and execution states. It owns no persistent state and is
discarded once the dialog closes.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from gmao.domain.deletion.models import DeletionState
from gmao.foundation.domain.exceptions import (
    DeletionBlockedError,
    InvalidStateTransitionError,
    NotFoundError,
)

if TYPE_CHECKING:
    from gmao.domain.deletion.engine import DeletionEngine
    from gmao.domain.deletion.models import DeletionPlan, DeletionTotals, ExecutionResult
    from gmao.foundation.domain.identifiers import EntityRef

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[DeletionState, frozenset[DeletionState]] = {
    DeletionState.IDLE: frozenset({DeletionState.ANALYZING, DeletionState.CANCELLED}),
    DeletionState.ANALYZING: frozenset(
        {DeletionState.PLAN_READY, DeletionState.FAILED, DeletionState.CANCELLED}
    ),
    DeletionState.PLAN_READY: frozenset(
        {DeletionState.ANALYZING, DeletionState.CONFIRMING, DeletionState.CANCELLED}
    ),
    DeletionState.CONFIRMING: frozenset(
        {DeletionState.EXECUTING, DeletionState.PLAN_READY, DeletionState.CANCELLED}
    ),
    DeletionState.EXECUTING: frozenset({DeletionState.COMPLETED, DeletionState.FAILED}),
    DeletionState.COMPLETED: frozenset(),
    DeletionState.FAILED: frozenset(),
    DeletionState.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset(
    {DeletionState.COMPLETED, DeletionState.FAILED, DeletionState.CANCELLED}
)

# holding the entity lock; never expired
_BUSY_STATES = frozenset({DeletionState.CONFIRMING, DeletionState.EXECUTING})


class DeletionSession:
    """One operator-driven deletion.

    State machine::

                 analyze()            plan built
        IDLE -------------> ANALYZING ------------> PLAN_READY
                                |                    |   ^
                        error   |      confirm()     |   | lock denied
                                v                    v   |
                              FAILED <---------- CONFIRMING
                                ^                    |
                                |  step failed       | lock held
                                |                    v
                                +-------------- EXECUTING ------> COMPLETED

        cancel(): IDLE | ANALYZING | PLAN_READY | CONFIRMING -> CANCELLED

    Attributes:
        session_id: Opaque identifier handed to the UI.
        entity: The deletion target.
        state: Current lifecycle state.
        plan: Latest plan, once analysis completed.
        result: Execution result, once execution finished.
        error: Message of the error that failed the session, if any.
    """

    def __init__(
        self,
        entity: EntityRef,
        engine: DeletionEngine,
        *,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.entity = entity
        self.state = DeletionState.IDLE
        self.plan: DeletionPlan | None = None
        self.result: ExecutionResult | None = None
        self.error: str | None = None
        self.created_at = datetime.now(UTC)
        self._engine = engine

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def _transition(self, target: DeletionState, action: str) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidStateTransitionError(
                f"Cannot {action} deletion session {self.session_id}: "
                f"current state is {self.state}",
                session_id=self.session_id,
                state=self.state.value,
                target=target.value,
            )
        logger.debug(
            "deletion_session_transition",
            extra={
                "session_id": self.session_id,
                "from_state": self.state.value,
                "to_state": target.value,
            },
        )
        self.state = target

    async def analyze(self, *, cascade_empty_groups: bool | None = None) -> DeletionPlan:
        """Analyze (or re-analyze) the target. IDLE | PLAN_READY -> PLAN_READY.

        Raises:
            InvalidStateTransitionError: From any other state.
            NotFoundError: If the target no longer exists; the session fails.
        """
        self._transition(DeletionState.ANALYZING, "analyze")
        try:
            plan = await self._engine.plan(self.entity, cascade_empty_groups=cascade_empty_groups)
        except Exception as exc:
            if self.state is not DeletionState.CANCELLED:
                self.error = str(exc)
                self._transition(DeletionState.FAILED, "fail")
            raise
        if self.state is DeletionState.CANCELLED:
            return plan
        self.plan = plan
        self._transition(DeletionState.PLAN_READY, "complete analysis of")
        return plan

    def totals(self, cascade: bool) -> DeletionTotals:
        """Totals for a cascade checkbox value, without re-analysis."""
        return self._require_plan("compute totals of").totals_for(cascade)

    async def confirm(self, cascade_empty_groups: bool) -> ExecutionResult:
        """Execute the plan with the operator's final cascade choice.

        PLAN_READY -> CONFIRMING -> EXECUTING -> COMPLETED | FAILED. The
        entity lock is held from confirmation until execution ends.

        Raises:
            InvalidStateTransitionError: If no plan is ready.
            DeletionBlockedError: If the plan does not allow deletion; the
                session stays PLAN_READY.
            EntityLockedError: If another session is deleting the same
                entity; the session goes back to PLAN_READY.
        """
        plan = self._require_plan("confirm")
        if not plan.can_delete:
            raise DeletionBlockedError(plan.reason, session_id=self.session_id)

        self._transition(DeletionState.CONFIRMING, "confirm")
        locks = self._engine.locks
        try:
            await locks.acquire(self.entity)
        except Exception:
            if self.state is DeletionState.CONFIRMING:
                self._transition(DeletionState.PLAN_READY, "release")
            raise

        try:
            if self.state is DeletionState.CANCELLED:
                raise InvalidStateTransitionError(
                    f"Deletion session {self.session_id} was cancelled during confirmation",
                    session_id=self.session_id,
                )
            self._transition(DeletionState.EXECUTING, "execute")
            try:
                result = await self._engine.run_plan(
                    plan, cascade_empty_groups=cascade_empty_groups
                )
            except Exception as exc:
                self.error = str(exc)
                self._transition(DeletionState.FAILED, "fail")
                raise
        finally:
            locks.release(self.entity)

        self.result = result
        if result.succeeded:
            self._transition(DeletionState.COMPLETED, "complete")
        else:
            self.error = "; ".join(result.errors)
            self._transition(DeletionState.FAILED, "fail")
        return result

    def cancel(self) -> None:
        """Discard the plan. Idempotent on an already cancelled session.

        Raises:
            InvalidStateTransitionError: Once execution has started.
        """
        if self.state is DeletionState.CANCELLED:
            return
        self._transition(DeletionState.CANCELLED, "cancel")
        self.plan = None

    def _require_plan(self, action: str) -> DeletionPlan:
        if self.state is not DeletionState.PLAN_READY or self.plan is None:
            raise InvalidStateTransitionError(
                f"Cannot {action} deletion session {self.session_id}: "
                f"current state is {self.state}, expected PLAN_READY",
                session_id=self.session_id,
                state=self.state.value,
            )
        return self.plan


class DeletionSessionRegistry:
    """Open sessions of one application instance, by id.

    Sessions older than ``ttl_seconds`` are dropped on the next ``add``,
    unless they are confirming or executing. Abandoned dialogs are
    cancelled on the way out.

    Args:
        ttl_seconds: Maximum session age. ``None`` keeps sessions until
            they are discarded.
    """

    def __init__(self, ttl_seconds: float | None = None) -> None:
        self._sessions: dict[str, DeletionSession] = {}
        self._ttl = timedelta(seconds=ttl_seconds) if ttl_seconds is not None else None

    def add(self, session: DeletionSession) -> DeletionSession:
        self.sweep()
        self._sessions[session.session_id] = session
        return session

    def sweep(self, now: datetime | None = None) -> int:
        """Drop expired sessions and return how many were dropped."""
        if self._ttl is None:
            return 0
        cutoff = (now or datetime.now(UTC)) - self._ttl
        expired = [
            session
            for session in self._sessions.values()
            if session.created_at < cutoff and session.state not in _BUSY_STATES
        ]
        for session in expired:
            if not session.is_terminal:
                session.cancel()
            del self._sessions[session.session_id]
            logger.info(
                "deletion_session_expired",
                extra={"session_id": session.session_id, "state": session.state.value},
            )
        return len(expired)

    def get(self, session_id: str) -> DeletionSession:
        """Look up a session.

        Raises:
            NotFoundError: If no such session is open.
        """
        try:
            return self._sessions[session_id]
        except KeyError:
            raise NotFoundError("DeletionSession", session_id) from None

    def discard(self, session_id: str) -> DeletionSession:
        """Cancel the session if still cancellable, then forget it.

        Raises:
            NotFoundError: If no such session is open.
            InvalidStateTransitionError: If the session is executing.
        """
        session = self.get(session_id)
        if not session.is_terminal:
            session.cancel()
        del self._sessions[session_id]
        return session

    def __len__(self) -> int:
        return len(self._sessions)
