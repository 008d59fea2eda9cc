"""Integration tests for create_app() wiring: router, middleware and error handlers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from uuid import UUID

import pytest
from conftest import plant_tables
from fastapi.testclient import TestClient

from gmao.domain.deletion import DeletionEngine, DeletionSettings
from gmao.domain.deletion.session import DeletionSessionRegistry
from gmao.foundation.application import LifespanContribution
from gmao.infra.fastapi import create_app
from gmao.infra.fastapi.settings import AppSettings, CORSSettings
from gmao.infra.persistence import InMemoryDataStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from fastapi import FastAPI


@pytest.fixture()
def client(deletion_settings: DeletionSettings) -> Iterator[TestClient]:
    app = create_app(
        AppSettings(),
        store=InMemoryDataStore(plant_tables()),
        deletion_settings=deletion_settings,
    )
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.mark.integration
class TestWiring:
    def test_engine_and_registry_on_state(self, client: TestClient) -> None:
        assert isinstance(client.app.state.deletion_engine, DeletionEngine)  # type: ignore[attr-defined]
        assert isinstance(client.app.state.deletion_sessions, DeletionSessionRegistry)  # type: ignore[attr-defined]

    def test_deletion_routes_in_openapi(self, client: TestClient) -> None:
        paths = client.get("/openapi.json").json()["paths"]
        assert "/deletions/sessions" in paths
        assert "/deletions/sessions/{session_id}/confirm" in paths

    def test_unknown_session_is_problem_json(self, client: TestClient) -> None:
        response = client.get("/deletions/sessions/nope")
        assert response.status_code == 404
        assert response.headers["content-type"].startswith("application/problem+json")
        assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"

    def test_missing_field_is_request_validation_problem(self, client: TestClient) -> None:
        response = client.post("/deletions/sessions", json={"entity_type": "equipment"})
        assert response.status_code == 422
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["error_code"] == "REQUEST_VALIDATION_ERROR"
        assert any(err["loc"][-1] == "entity_id" for err in body["context"]["errors"])

    def test_extra_lifespan_hook_runs(self, deletion_settings: DeletionSettings) -> None:
        events: list[str] = []

        @asynccontextmanager
        async def hook(_app: FastAPI) -> AsyncIterator[None]:
            events.append("start")
            yield
            events.append("stop")

        app = create_app(
            AppSettings(),
            store=InMemoryDataStore(plant_tables()),
            deletion_settings=deletion_settings,
            extra_lifespan_hooks=[LifespanContribution(hook=hook, priority=200)],
        )
        with TestClient(app):
            assert events == ["start"]
        assert events == ["start", "stop"]


@pytest.mark.integration
class TestRequestId:
    def test_generates_request_id(self, client: TestClient) -> None:
        response = client.get("/deletions/sessions/nope")
        UUID(response.headers["X-Request-ID"])

    def test_propagates_provided_request_id(self, client: TestClient) -> None:
        provided = "12345678-1234-5678-1234-567812345678"
        response = client.get("/deletions/sessions/nope", headers={"X-Request-ID": provided})
        assert response.headers["X-Request-ID"] == provided


@pytest.mark.integration
class TestCors:
    def test_preflight_allows_any_origin_by_default(self, client: TestClient) -> None:
        response = client.options(
            "/deletions/sessions",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert "access-control-allow-origin" in response.headers

    def test_preflight_rejects_unlisted_origin(self, deletion_settings: DeletionSettings) -> None:
        settings = AppSettings(cors=CORSSettings(allow_origins=["https://gmao.example"]))
        app = create_app(
            settings,
            store=InMemoryDataStore(plant_tables()),
            deletion_settings=deletion_settings,
        )
        with TestClient(app) as c:
            response = c.options(
                "/deletions/sessions",
                headers={
                    "Origin": "http://evil.example",
                    "Access-Control-Request-Method": "POST",
                },
            )
        assert "access-control-allow-origin" not in response.headers
