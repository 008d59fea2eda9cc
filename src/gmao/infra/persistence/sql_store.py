"""SQLAlchemy data store adapter.

Predicates compile to SQLAlchemy Core expressions over the tables of
:mod:`gmao.infra.persistence.schema`. Outside a transaction every call runs
in its own short session and commits; inside ``transaction()`` all calls of
the current task share one session, committed or rolled back as a whole.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, assert_never

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError

from gmao.foundation.domain.exceptions import StoreQueryError
from gmao.foundation.domain.predicates import Operator
from gmao.infra.persistence.schema import metadata

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence

    from sqlalchemy import ColumnElement, Table
    from sqlalchemy.ext.asyncio import AsyncSession

    from gmao.foundation.domain.ports import Row
    from gmao.foundation.domain.predicates import Predicate
    from gmao.infra.persistence.database import DatabaseManager

logger = logging.getLogger(__name__)

# (session, lock): tasks gathered inside a transaction share the session,
# and an AsyncSession runs one statement at a time
_current_session: ContextVar[tuple[AsyncSession, asyncio.Lock] | None] = ContextVar(
    "gmao_store_session", default=None
)


class SqlAlchemyDataStore:
    """DataStorePort over an async SQLAlchemy engine.

    Args:
        manager: Database manager owning the engine and session factory.
    """

    def __init__(self, manager: DatabaseManager) -> None:
        self._manager = manager

    @property
    def supports_transactions(self) -> bool:
        return True

    async def create_schema(self) -> None:
        """Create the store tables if missing (local runs and tests)."""
        async with self._manager.get_engine().begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def select_where(
        self,
        table: str,
        predicate: Predicate,
        columns: Sequence[str] | None = None,
    ) -> list[Row]:
        sa_table = self._table(table, "select")
        projected = (
            [self._column(sa_table, name, "select") for name in columns]
            if columns is not None
            else list(sa_table.columns)
        )
        # primary key order keeps membership resolution stable across calls
        statement = (
            select(*projected)
            .where(*self._where(sa_table, predicate, "select"))
            .order_by(*sa_table.primary_key.columns)
        )

        async def run(session: AsyncSession) -> list[Row]:
            result = await session.execute(statement)
            return [dict(row) for row in result.mappings().all()]

        return await self._run("select", table, run, mutates=False)

    async def count(self, table: str, predicate: Predicate) -> int:
        sa_table = self._table(table, "count")
        statement = (
            select(func.count())
            .select_from(sa_table)
            .where(*self._where(sa_table, predicate, "count"))
        )

        async def run(session: AsyncSession) -> int:
            return int((await session.execute(statement)).scalar_one())

        return await self._run("count", table, run, mutates=False)

    async def delete_where(self, table: str, predicate: Predicate) -> int:
        sa_table = self._table(table, "delete")
        statement = delete(sa_table).where(*self._where(sa_table, predicate, "delete"))

        async def run(session: AsyncSession) -> int:
            result = await session.execute(statement)
            return int(result.rowcount)  # type: ignore[attr-defined]

        return await self._run("delete", table, run, mutates=True)

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        sa_table = self._table(table, "insert")
        if not rows:
            return 0
        payload = [dict(row) for row in rows]

        async def run(session: AsyncSession) -> int:
            await session.execute(insert(sa_table), payload)
            return len(payload)

        return await self._run("insert", table, run, mutates=True)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Share one session across the block; nested blocks join the outer one."""
        if _current_session.get() is not None:
            yield
            return
        async with self._manager.get_session_factory()() as session:
            token = _current_session.set((session, asyncio.Lock()))
            try:
                async with session.begin():
                    yield
            except SQLAlchemyError as exc:
                raise StoreQueryError("*", "commit", str(exc)) from exc
            finally:
                _current_session.reset(token)

    # -- Internals -----------------------------------------------------------

    async def _run(
        self,
        operation: str,
        table: str,
        work: Callable[[AsyncSession], Awaitable[Any]],
        *,
        mutates: bool,
    ) -> Any:
        try:
            shared = _current_session.get()
            if shared is not None:
                session, lock = shared
                async with lock:
                    return await work(session)
            async with self._manager.get_session_factory()() as own:
                result = await work(own)
                if mutates:
                    await own.commit()
                return result
        except SQLAlchemyError as exc:
            logger.warning(
                "store_query_failed",
                extra={"table": str(table), "operation": operation, "error": str(exc)},
            )
            raise StoreQueryError(str(table), operation, str(exc)) from exc

    @staticmethod
    def _table(table: str, operation: str) -> Table:
        try:
            return metadata.tables[str(table)]
        except KeyError:
            raise StoreQueryError(str(table), operation, "unknown table") from None

    @staticmethod
    def _column(sa_table: Table, name: str, operation: str) -> Any:
        try:
            return sa_table.columns[name]
        except KeyError:
            raise StoreQueryError(sa_table.name, operation, f"unknown column {name!r}") from None

    def _where(self, sa_table: Table, predicate: Predicate, operation: str) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        for condition in predicate.conditions:
            column = self._column(sa_table, condition.column, operation)
            match condition.op:
                case Operator.EQ:
                    clauses.append(column == condition.value)
                case Operator.NE:
                    clauses.append(column != condition.value)
                case Operator.IN:
                    clauses.append(column.in_(list(condition.value)))
                case Operator.NOT_NULL:
                    clauses.append(column.is_not(None))
                case _:
                    assert_never(condition.op)
        return clauses
