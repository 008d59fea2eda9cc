"""Port interface for the hosted relational data store.

This module defines the DataStorePort protocol: the only way the deletion
engine reads or mutates records. Adapters (in-memory, SQLAlchemy) live in
``gmao.infra.persistence``.

Example:
    >>> from gmao.foundation.domain.ports import DataStorePort
    >>> from gmao.foundation.domain.predicates import eq
    >>> async def count_members(store: DataStorePort, group_id: str) -> int:
    ...     return await store.count("equipment_group_members", eq("group_id", group_id))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from contextlib import AbstractAsyncContextManager

    from gmao.foundation.domain.predicates import Predicate

Row = dict[str, Any]


@runtime_checkable
class DataStorePort(Protocol):
    """Port for query and delete primitives over named tables.

    Every method raises :class:`~gmao.foundation.domain.exceptions.StoreQueryError`
    when the underlying store fails. Row order returned by ``select_where``
    must be stable between calls when the store has not changed.

    The protocol is runtime_checkable to enable isinstance() verification
    in tests and dependency injection validation.
    """

    @property
    def supports_transactions(self) -> bool:
        """True when ``transaction()`` gives all-or-nothing semantics."""
        ...

    async def select_where(
        self,
        table: str,
        predicate: Predicate,
        columns: Sequence[str] | None = None,
    ) -> list[Row]:
        """Return the rows of ``table`` matching ``predicate``.

        Args:
            table: Table name.
            predicate: Row filter.
            columns: Columns to project. ``None`` returns every column.

        Returns:
            Matching rows as dictionaries.
        """
        ...

    async def count(self, table: str, predicate: Predicate) -> int:
        """Return the number of rows of ``table`` matching ``predicate``."""
        ...

    async def delete_where(self, table: str, predicate: Predicate) -> int:
        """Delete matching rows and return the affected row count."""
        ...

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> int:
        """Insert rows and return how many were written."""
        ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Open a unit of work.

        Stores without transactional support return a context manager that
        does nothing; callers check ``supports_transactions`` to know whether
        a failure inside the block was undone.
        """
        ...
