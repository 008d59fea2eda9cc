"""Deletion dialog endpoints.

One session per opened dialog: create it (analysis), read it, flip the
cascade checkbox (totals), confirm (execution) or close it (cancel).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, status

from gmao.foundation.domain.identifiers import EntityRef
from gmao.infra.fastapi.dependencies import Engine, Sessions
from gmao.infra.fastapi.routers.schemas import (
    ConfirmRequest,
    ExecutionResultOut,
    OpenSessionRequest,
    SessionOut,
    TotalsOut,
)
from gmao.infra.observability.logging import bind_deletion_context
from gmao.infra.observability.tracing import deletion_span

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deletions", tags=["deletions"])


@router.post("/sessions", status_code=status.HTTP_201_CREATED, response_model=SessionOut)
async def open_session(body: OpenSessionRequest, engine: Engine, sessions: Sessions) -> SessionOut:
    """Analyze a target and open its deletion session (state PLAN_READY)."""
    entity = EntityRef(body.entity_type, body.entity_id)
    with bind_deletion_context(entity), deletion_span("deletion.analyze", entity) as span:
        session = await engine.open_session(
            entity.entity_id,
            entity.entity_type,
            cascade_empty_groups=body.cascade_empty_groups,
        )
        if session.plan is not None:
            span.set_attribute("deletion.can_delete", session.plan.can_delete)
            span.set_attribute("deletion.warnings", len(session.plan.warnings))
    sessions.add(session)
    return SessionOut.model_validate(session)


@router.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: str, sessions: Sessions) -> SessionOut:
    return SessionOut.model_validate(sessions.get(session_id))


@router.get("/sessions/{session_id}/totals", response_model=TotalsOut)
async def get_totals(
    session_id: str,
    sessions: Sessions,
    cascade: bool = Query(default=True, description="Delete the groups left empty"),
) -> TotalsOut:
    """Totals for one position of the cascade checkbox, without re-analysis."""
    return TotalsOut.model_validate(sessions.get(session_id).totals(cascade))


@router.post("/sessions/{session_id}/confirm", response_model=ExecutionResultOut)
async def confirm_session(
    session_id: str,
    body: ConfirmRequest,
    sessions: Sessions,
) -> ExecutionResultOut:
    """Execute the session's plan with the operator's final cascade choice.

    A failed step is reported in the body (status FAILED), not as an HTTP error.
    """
    session = sessions.get(session_id)
    with (
        bind_deletion_context(session.entity, session_id=session_id),
        deletion_span(
            "deletion.execute",
            session.entity,
            cascade_empty_groups=body.cascade_empty_groups,
        ) as span,
    ):
        result = await session.confirm(body.cascade_empty_groups)
        span.set_attribute("deletion.status", result.status.value)
        span.set_attribute("deletion.steps", len(result.steps))
    return ExecutionResultOut.model_validate(result)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, sessions: Sessions) -> None:
    """Close the dialog: cancel the session if still pending and forget it."""
    session = sessions.discard(session_id)
    logger.info(
        "deletion_session_closed",
        extra={"session_id": session_id, "state": session.state.value},
    )
