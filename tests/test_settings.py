"""Unit tests for the pydantic-settings configuration objects."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from gmao.domain.deletion import DeletionSettings, get_deletion_settings
from gmao.infra.fastapi.settings import AppSettings, CORSSettings
from gmao.infra.persistence import DatabaseManager, DatabaseSettings


class TestDeletionSettings:
    @pytest.mark.unit
    def test_defaults(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = DeletionSettings(_env_file=None)  # type: ignore[call-arg]
        assert settings.block_on_interventions is True
        assert settings.default_cascade_empty_groups is True
        assert settings.max_concurrent_queries == 8
        assert settings.lock_timeout_seconds == 0.0
        assert settings.session_ttl_seconds == 1800.0

    @pytest.mark.unit
    def test_from_env_vars(self) -> None:
        env = {
            "GMAO_DELETION_BLOCK_ON_INTERVENTIONS": "false",
            "GMAO_DELETION_MAX_CONCURRENT_QUERIES": "2",
        }
        with patch.dict("os.environ", env, clear=True):
            get_deletion_settings.cache_clear()
            try:
                settings = get_deletion_settings()
                assert settings.block_on_interventions is False
                assert settings.max_concurrent_queries == 2
            finally:
                get_deletion_settings.cache_clear()

    @pytest.mark.unit
    def test_concurrency_bounds(self) -> None:
        with pytest.raises(ValueError):
            DeletionSettings(max_concurrent_queries=0)
        with pytest.raises(ValueError):
            DeletionSettings(session_ttl_seconds=0)


class TestDatabaseSettings:
    @pytest.mark.unit
    def test_postgres_url_from_parts(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = DatabaseSettings(_env_file=None, host="db", password="pw")  # type: ignore[call-arg]
        assert settings.database_url == "postgresql+psycopg://postgres:pw@db:5432/gmao"
        assert not settings.is_sqlite

    @pytest.mark.unit
    def test_url_override(self) -> None:
        settings = DatabaseSettings(url="sqlite+aiosqlite:///gmao.db")
        assert settings.database_url == "sqlite+aiosqlite:///gmao.db"
        assert settings.is_sqlite

    @pytest.mark.unit
    def test_invalid_url(self) -> None:
        with pytest.raises(ValueError, match="Invalid database connection URL"):
            DatabaseSettings(url="not a url")

    @pytest.mark.unit
    def test_password_not_in_repr(self) -> None:
        assert "s3cret" not in repr(DatabaseSettings(password="s3cret"))

    @pytest.mark.unit
    @pytest.mark.asyncio(loop_scope="function")
    async def test_manager_caches_engine_and_disposes(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        manager = DatabaseManager(DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}"))
        engine = manager.get_engine()
        assert manager.get_engine() is engine
        assert manager.get_session_factory() is manager.get_session_factory()
        await manager.dispose()
        await manager.dispose()
        assert manager.get_engine() is not engine
        await manager.dispose()


class TestAppSettings:
    @pytest.mark.unit
    def test_cors_csv_values(self) -> None:
        settings = CORSSettings(allow_origins="https://gmao.example, https://admin.example")  # type: ignore[arg-type]
        assert settings.allow_origins == ["https://gmao.example", "https://admin.example"]

    @pytest.mark.unit
    def test_credentials_require_explicit_origins(self) -> None:
        with pytest.raises(ValueError, match="explicit allow_origins"):
            CORSSettings(allow_origins=["*"], allow_credentials=True)

    @pytest.mark.unit
    def test_app_defaults(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = AppSettings()
        assert settings.title == "GMAO Deletion Service"
        assert settings.docs_url == "/docs"
