"""GMAO Infra FastAPI -- HTTP surface of the deletion engine."""

from gmao.infra.fastapi.app_factory import create_app
from gmao.infra.fastapi.error_handlers import ProblemDetail, register_exception_handlers
from gmao.infra.fastapi.lifespan import compose_lifespan
from gmao.infra.fastapi.middleware import RequestIdMiddleware, get_request_id
from gmao.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "RequestIdMiddleware",
    "compose_lifespan",
    "create_app",
    "get_request_id",
    "register_exception_handlers",
]
