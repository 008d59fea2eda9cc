"""FastAPI dependencies resolving the engine and session registry from app state."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from gmao.domain.deletion import DeletionEngine, DeletionSessionRegistry


def get_deletion_engine(request: Request) -> DeletionEngine:
    return request.app.state.deletion_engine


def get_session_registry(request: Request) -> DeletionSessionRegistry:
    return request.app.state.deletion_sessions


Engine = Annotated[DeletionEngine, Depends(get_deletion_engine)]
Sessions = Annotated[DeletionSessionRegistry, Depends(get_session_registry)]
