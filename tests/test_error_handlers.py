"""Unit tests for gmao.infra.fastapi.error_handlers."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gmao.foundation.domain.exceptions import (
    DeletionBlockedError,
    DomainError,
    EntityLockedError,
    NotFoundError,
    StoreQueryError,
    ValidationError,
)
from gmao.infra.fastapi.error_handlers import register_exception_handlers
from gmao.infra.fastapi.middleware import RequestIdMiddleware


def _client(exc: Exception) -> TestClient:
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom() -> None:
        raise exc

    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.unit
class TestProblemDetails:
    @pytest.mark.parametrize(
        ("exc", "status", "error_code"),
        [
            (NotFoundError("DeletionSession", "s-1"), 404, "RESOURCE_NOT_FOUND"),
            (ValidationError("entity_type", "unknown"), 422, "VALIDATION_ERROR"),
            (EntityLockedError("part", "p1"), 409, "ENTITY_LOCKED"),
            (DeletionBlockedError("Cette pièce est encore utilisée"), 409, "DELETION_BLOCKED"),
            (StoreQueryError("parts", "delete", "timeout"), 503, "STORE_QUERY_ERROR"),
            (DomainError("odd"), 400, "DOMAIN_ERROR"),
        ],
    )
    def test_status_mapping(self, exc: Exception, status: int, error_code: str) -> None:
        response = _client(exc).get("/boom")
        assert response.status_code == status
        assert response.headers["content-type"] == "application/problem+json"
        body = response.json()
        assert body["error_code"] == error_code
        assert body["instance"] == "/boom"

    def test_correlation_id_only_on_server_errors(self) -> None:
        not_found = _client(NotFoundError("Part", "p1")).get("/boom").json()
        unavailable = _client(StoreQueryError("parts", "count", "timeout")).get("/boom")
        assert "correlation_id" not in not_found
        assert unavailable.json()["correlation_id"] == unavailable.headers["x-request-id"]

    def test_dsn_is_redacted(self) -> None:
        exc = StoreQueryError(
            "equipments", "select", "could not connect to postgresql+psycopg://gmao:pw@db/gmao"
        )
        body = _client(exc).get("/boom").json()
        assert "pw@db" not in body["detail"]
        assert "postgresql://[REDACTED]" in body["detail"]

    def test_sensitive_context_keys_are_dropped(self) -> None:
        exc = DomainError("odd", context={"dsn": "sqlite:///x", "table": "parts"})
        assert _client(exc).get("/boom").json()["context"] == {"table": "parts"}

    def test_unhandled_exception_is_sanitized(self) -> None:
        response = _client(RuntimeError("secret internals")).get("/boom")
        assert response.status_code == 500
        assert "secret internals" not in response.json()["detail"]
        assert response.json()["error_code"] == "INTERNAL_ERROR"

