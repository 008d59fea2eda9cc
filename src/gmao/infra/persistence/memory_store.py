"""In-process data store adapter.

Tables are lists of row dicts. Transactions snapshot every table on entry
and restore the snapshot when the block raises, so the adapter gives the
same all-or-nothing behavior as a database. Tests use the failure
injection hooks to exercise the degraded analysis and failed-step paths.

Example:
    >>> store = InMemoryDataStore({"equipments": [{"id": "eq-1", "name": "Pump"}]})
    >>> store.fail_on("count", "interventions")
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from gmao.foundation.domain.exceptions import StoreQueryError
from gmao.foundation.domain.tables import Table

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Mapping, Sequence

    from gmao.foundation.domain.ports import Row
    from gmao.foundation.domain.predicates import Predicate

logger = logging.getLogger(__name__)


class InMemoryDataStore:
    """DataStorePort over Python lists.

    Args:
        tables: Initial rows per table name. Every known table exists, empty
            unless seeded.
        transactional: When False, ``transaction()`` does nothing and
            ``supports_transactions`` is False, like a plain REST backend.

    Attributes:
        calls: ``(operation, table)`` of every call, in order.
    """

    def __init__(
        self,
        tables: Mapping[str, Iterable[Mapping[str, Any]]] | None = None,
        *,
        transactional: bool = True,
    ) -> None:
        self._tables: dict[str, list[Row]] = {table.value: [] for table in Table}
        self._transactional = transactional
        self._failures: dict[tuple[str, str | None], int | None] = {}
        self.calls: list[tuple[str, str]] = []
        for name, rows in (tables or {}).items():
            self.seed(name, rows)

    @property
    def supports_transactions(self) -> bool:
        return self._transactional

    # -- Test helpers --------------------------------------------------------

    def seed(self, table: str, rows: Iterable[Mapping[str, Any]]) -> None:
        """Append rows to a table, creating unknown tables."""
        self._tables.setdefault(str(table), []).extend(dict(row) for row in rows)

    def rows(self, table: str) -> list[Row]:
        """Copy of the current rows of ``table``."""
        return [dict(row) for row in self._table(str(table), "read")]

    def fail_on(self, operation: str, table: str | None = None, *, times: int | None = None) -> None:
        """Make ``operation`` raise StoreQueryError.

        Args:
            operation: ``select``, ``count``, ``delete`` or ``insert``.
            table: Only fail for this table; ``None`` fails on every table.
            times: Fail this many calls, then succeed. ``None`` fails forever.
        """
        self._failures[(operation, None if table is None else str(table))] = times

    def clear_failures(self) -> None:
        self._failures.clear()

    # -- DataStorePort -------------------------------------------------------

    async def select_where(
        self,
        table: str,
        predicate: Predicate,
        columns: Sequence[str] | None = None,
    ) -> list[Row]:
        rows = self._enter("select", table)
        matched = [row for row in rows if predicate.matches(row)]
        if columns is None:
            return [dict(row) for row in matched]
        return [{column: row.get(column) for column in columns} for row in matched]

    async def count(self, table: str, predicate: Predicate) -> int:
        rows = self._enter("count", table)
        return sum(1 for row in rows if predicate.matches(row))

    async def delete_where(self, table: str, predicate: Predicate) -> int:
        rows = self._enter("delete", table)
        kept = [row for row in rows if not predicate.matches(row)]
        deleted = len(rows) - len(kept)
        rows[:] = kept
        return deleted

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        target = self._enter("insert", table)
        target.extend(dict(row) for row in rows)
        return len(rows)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if not self._transactional:
            yield
            return
        snapshot = {name: [dict(row) for row in rows] for name, rows in self._tables.items()}
        try:
            yield
        except BaseException:
            self._tables = snapshot
            logger.info("memory_store_rolled_back")
            raise

    # -- Internals -----------------------------------------------------------

    def _table(self, table: str, operation: str) -> list[Row]:
        try:
            return self._tables[table]
        except KeyError:
            raise StoreQueryError(table, operation, "unknown table") from None

    def _enter(self, operation: str, table: str) -> list[Row]:
        table = str(table)
        self.calls.append((operation, table))
        for key in ((operation, table), (operation, None)):
            if key not in self._failures:
                continue
            remaining = self._failures[key]
            if remaining is not None:
                if remaining <= 0:
                    continue
                self._failures[key] = remaining - 1
            raise StoreQueryError(table, operation, "injected failure")
        return self._table(table, operation)
