"""OpenTelemetry tracing for the deletion service.

``configure_tracing`` installs a TracerProvider and instruments the FastAPI
app when an exporter is configured; with the default ``none`` exporter the
global no-op tracer stays in place and ``deletion_span`` costs nothing.

Usage:
    with deletion_span("deletion.analyze", entity) as span:
        plan = await engine.plan(entity)
        span.set_attribute("deletion.can_delete", plan.can_delete)
"""

from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.trace import Status, StatusCode
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import FastAPI

    from gmao.foundation.domain.identifiers import EntityRef

_tracer_provider: TracerProvider | None = None

_EXPORTER_TYPES = frozenset({"otlp", "console", "none"})


class TracingSettings(BaseSettings):
    """Tracing settings from the standard ``OTEL_*`` variables.

    - OTEL_SERVICE_NAME (default: gmao-deletion)
    - OTEL_SERVICE_VERSION (default: unknown)
    - OTEL_EXPORTER_TYPE: otlp, console or none (default: none)
    - OTEL_EXPORTER_OTLP_ENDPOINT, OTEL_EXPORTER_OTLP_HEADERS (key=val,key=val)
    """

    model_config = SettingsConfigDict(env_prefix="", extra="ignore", populate_by_name=True)

    service_name: str = Field(default="gmao-deletion", alias="OTEL_SERVICE_NAME")
    service_version: str = Field(default="unknown", alias="OTEL_SERVICE_VERSION")
    exporter_type: str = Field(default="none", alias="OTEL_EXPORTER_TYPE")
    otlp_endpoint: str = Field(default="http://localhost:4317", alias="OTEL_EXPORTER_OTLP_ENDPOINT")
    otlp_headers: str = Field(default="", alias="OTEL_EXPORTER_OTLP_HEADERS")

    @field_validator("exporter_type", mode="before")
    @classmethod
    def normalize_exporter_type(cls, v: Any) -> str:
        return str(v).strip().lower()

    @field_validator("exporter_type")
    @classmethod
    def validate_exporter_type(cls, v: str) -> str:
        if v not in _EXPORTER_TYPES:
            msg = f"exporter_type must be one of {sorted(_EXPORTER_TYPES)}"
            raise ValueError(msg)
        return v

    @property
    def is_enabled(self) -> bool:
        return self.exporter_type != "none"

    @property
    def otlp_headers_dict(self) -> dict[str, str]:
        """Parse ``key1=val1,key2=val2``; values may contain ``=``."""
        headers: dict[str, str] = {}
        for pair in self.otlp_headers.split(","):
            if "=" in pair:
                key, value = pair.split("=", 1)
                headers[key.strip()] = value.strip()
        return headers


@lru_cache(maxsize=1)
def get_tracing_settings() -> TracingSettings:
    """Get cached TracingSettings. Clear with ``cache_clear()`` in tests."""
    return TracingSettings()


def _create_exporter(settings: TracingSettings) -> SpanExporter:
    if settings.exporter_type == "otlp":
        # optional extra: gmao[otlp]
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # type: ignore[import-not-found]
            OTLPSpanExporter,
        )

        return OTLPSpanExporter(  # type: ignore[no-any-return]
            endpoint=settings.otlp_endpoint,
            headers=settings.otlp_headers_dict or None,
        )
    if settings.exporter_type == "console":
        return ConsoleSpanExporter()
    msg = f"Unknown exporter type: {settings.exporter_type}"
    raise ValueError(msg)


def configure_tracing(app: FastAPI, settings: TracingSettings | None = None) -> None:
    """Install the tracer provider and instrument ``app``.

    No-op when the exporter type is ``none``. Call after ``configure_logging``.
    """
    global _tracer_provider

    if settings is None:
        settings = get_tracing_settings()
    if not settings.is_enabled:
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.service_name,
                "service.version": settings.service_version,
            }
        )
    )
    provider.add_span_processor(BatchSpanProcessor(_create_exporter(settings)))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider

    from opentelemetry.instrumentation.fastapi import (  # type: ignore[import-not-found]
        FastAPIInstrumentor,
    )

    FastAPIInstrumentor.instrument_app(app)


def shutdown_tracing() -> None:
    """Flush pending spans and shut the provider down. Idempotent."""
    global _tracer_provider

    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None


@contextmanager
def deletion_span(name: str, entity: EntityRef, **attributes: Any) -> Iterator[trace.Span]:
    """Span around one deletion operation, tagged with the target.

    Exceptions are recorded on the span and re-raised.
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(name, record_exception=False) as span:
        span.set_attribute("deletion.entity_type", entity.entity_type.value)
        span.set_attribute("deletion.entity_id", entity.entity_id)
        for key, value in attributes.items():
            span.set_attribute(f"deletion.{key}", value)
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
        span.set_status(Status(StatusCode.OK))
