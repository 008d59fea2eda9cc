"""Composition of lifespan contributions into one FastAPI lifespan."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from fastapi import FastAPI

    from gmao.foundation.application import LifespanContribution

logger = logging.getLogger(__name__)


def compose_lifespan(
    hooks: list[LifespanContribution],
) -> Callable[[FastAPI], Any]:
    """Chain hooks by ascending priority.

    Lower priorities start first and stop last (AsyncExitStack order).
    """
    ordered = sorted(hooks, key=lambda h: h.priority)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for contribution in ordered:
                logger.info(
                    "lifespan_hook_entering",
                    extra={"priority": contribution.priority, "hook": repr(contribution.hook)},
                )
                await stack.enter_async_context(contribution.hook(app))
            yield

    return lifespan
