"""API routers of the deletion service."""

from gmao.infra.fastapi.routers.deletions import router as deletions_router

__all__ = ["deletions_router"]
