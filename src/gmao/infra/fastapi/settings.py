"""Settings for the deletion service app factory."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CORSSettings(BaseSettings):
    """CORS policy from ``CORS_`` variables; lists accept comma-separated strings."""

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: list[str] = Field(default=["*"])
    allow_methods: list[str] = Field(default=["GET", "POST", "DELETE"])
    allow_headers: list[str] = Field(default=["*"])
    allow_credentials: bool = Field(default=False)
    expose_headers: list[str] = Field(default=["X-Request-ID"])

    @field_validator(
        "allow_origins",
        "allow_methods",
        "allow_headers",
        "expose_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def _reject_credentials_with_wildcard(self) -> CORSSettings:
        if self.allow_credentials and "*" in self.allow_origins:
            msg = "CORS allow_credentials=True requires explicit allow_origins, not '*'"
            raise ValueError(msg)
        return self


def _default_version() -> str:
    try:
        return version("gmao")
    except PackageNotFoundError:
        return "0.0.0"


class AppSettings(BaseSettings):
    """App factory settings from ``APP_`` variables (e.g. ``APP_TITLE``)."""

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    title: str = Field(default="GMAO Deletion Service")
    version: str = Field(default_factory=_default_version)
    description: str = Field(default="Deletion-impact analysis and cascading cleanup")
    docs_url: str | None = Field(default="/docs")
    openapi_url: str | None = Field(default="/openapi.json")
    debug: bool = Field(default=False)
    cors: CORSSettings = Field(default_factory=CORSSettings)
