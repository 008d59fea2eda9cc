"""Deletion engine settings from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeletionSettings(BaseSettings):
    """Policy knobs for impact analysis and cascade execution.

    Loads configuration from environment variables with ``GMAO_DELETION_`` prefix:
    - GMAO_DELETION_BLOCK_ON_INTERVENTIONS: refuse to delete equipment that
      still has interventions (default: true)
    - GMAO_DELETION_DEFAULT_CASCADE_EMPTY_GROUPS: initial state of the
      "delete empty groups" choice (default: true)
    - GMAO_DELETION_MAX_CONCURRENT_QUERIES: per-analysis fan-out limit (default: 8)
    - GMAO_DELETION_LOCK_TIMEOUT_SECONDS: how long a confirmation waits for
      another deletion of the same entity (default: 0, fail immediately)
    - GMAO_DELETION_SESSION_TTL_SECONDS: age after which an idle or finished
      deletion session is dropped from the registry (default: 1800)

    Example:
        >>> settings = DeletionSettings(block_on_interventions=False)
        >>> settings.max_concurrent_queries
        8
    """

    model_config = SettingsConfigDict(
        env_prefix="GMAO_DELETION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    block_on_interventions: bool = Field(
        default=True,
        description="Interventions are irreducible dependents that block equipment deletion",
    )
    default_cascade_empty_groups: bool = Field(
        default=True,
        description="Initial value of the cascade choice offered to the operator",
    )
    max_concurrent_queries: int = Field(
        default=8, ge=1, le=64, description="Concurrent store queries per analysis"
    )
    lock_timeout_seconds: float = Field(
        default=0.0, ge=0.0, le=60.0, description="Seconds to wait for an entity lock"
    )
    session_ttl_seconds: float = Field(
        default=1800.0, gt=0.0, description="Seconds an open deletion session is kept"
    )


@lru_cache(maxsize=1)
def get_deletion_settings() -> DeletionSettings:
    """Get cached DeletionSettings instance.

    Clear cache with ``get_deletion_settings.cache_clear()`` for testing.
    """
    return DeletionSettings()
