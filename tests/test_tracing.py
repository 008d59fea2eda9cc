"""Unit tests for gmao.infra.observability.tracing."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from opentelemetry.sdk.trace.export import ConsoleSpanExporter

from gmao.foundation.domain.identifiers import EntityRef, EntityType
from gmao.infra.observability import tracing
from gmao.infra.observability.tracing import (
    TracingSettings,
    _create_exporter,
    configure_tracing,
    deletion_span,
    shutdown_tracing,
)


class TestTracingSettings:
    @pytest.mark.unit
    def test_defaults(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            settings = TracingSettings()
            assert settings.service_name == "gmao-deletion"
            assert settings.exporter_type == "none"
            assert not settings.is_enabled

    @pytest.mark.unit
    def test_invalid_exporter(self) -> None:
        with pytest.raises(ValueError, match="exporter_type must be one of"):
            TracingSettings(exporter_type="zipkin")

    @pytest.mark.unit
    def test_headers_parsing(self) -> None:
        settings = TracingSettings(otlp_headers="api-key=abc=, tenant = plant-1,broken")
        assert settings.otlp_headers_dict == {"api-key": "abc=", "tenant": "plant-1"}


class TestConfigureTracing:
    @pytest.mark.unit
    def test_disabled_is_noop(self) -> None:
        app = MagicMock()
        configure_tracing(app, TracingSettings(exporter_type="none"))
        assert tracing._tracer_provider is None

    @pytest.mark.unit
    def test_console_exporter(self) -> None:
        assert isinstance(_create_exporter(TracingSettings(exporter_type="console")), ConsoleSpanExporter)

    @pytest.mark.unit
    def test_shutdown_is_idempotent(self) -> None:
        shutdown_tracing()
        shutdown_tracing()
        assert tracing._tracer_provider is None


class TestDeletionSpan:
    @pytest.mark.unit
    def test_span_tags_target_and_reraises(self) -> None:
        entity = EntityRef(EntityType.EQUIPMENT, "e1")
        with pytest.raises(RuntimeError):
            with deletion_span("deletion.execute", entity, cascade_empty_groups=True) as span:
                assert span is not None
                raise RuntimeError("boom")
