"""Best-effort degradation of failed lookups during analysis."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from gmao.domain.deletion.models import AnalysisWarning
from gmao.foundation.domain.exceptions import StoreQueryError

if TYPE_CHECKING:
    from collections.abc import Awaitable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AnalysisWarnings:
    """Collects the lookups of one analysis that had to be degraded.

    One instance lives for exactly one analysis. Readers that are given no
    collector propagate store errors instead of degrading them, which is
    what the cascade executor wants.
    """

    def __init__(self) -> None:
        self._items: list[AnalysisWarning] = []

    def record(self, query: str, error: StoreQueryError, *, critical: bool = False) -> None:
        self._items.append(AnalysisWarning(query=query, detail=str(error), critical=critical))
        logger.warning(
            "analysis_lookup_degraded",
            extra={"query": query, "critical": critical, "error": str(error)},
        )

    @property
    def has_critical(self) -> bool:
        return any(item.critical for item in self._items)

    def freeze(self) -> tuple[AnalysisWarning, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)


async def degrade(
    warnings: AnalysisWarnings | None,
    query: str,
    lookup: Awaitable[T],
    default: T,
    *,
    critical: bool = False,
) -> T:
    """Await ``lookup``; on a store failure record a warning and return ``default``.

    With no collector the StoreQueryError propagates.
    """
    try:
        return await lookup
    except StoreQueryError as exc:
        if warnings is None:
            raise
        warnings.record(query, exc, critical=critical)
        return default
