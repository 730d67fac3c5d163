"""Catalog row sources and the collaborator protocols the engine depends on.

A ``CatalogSource`` answers metadata queries with fully drained lists of
generic row mappings.  Sources raise ``FeatureNotSupportedError`` when the
backend cannot answer a query and ``CatalogError`` for any other failure.

Usage:
    from db_catalog.catalog.source import InMemorySource

    source = InMemorySource(
        tables=[{"TABLE_NAME": "authors", "TABLE_SCHEM": "public"}],
        columns={"authors": [{"COLUMN_NAME": "id", "TYPE_NAME": "INTEGER"}]},
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from db_catalog.exceptions import FeatureNotSupportedError

if TYPE_CHECKING:
    from db_catalog.schema.models import Table

Row = Mapping[str, Any]


class CatalogSource(Protocol):
    """Supplier of raw catalog rows.  All methods block until drained."""

    def fetch_tables(self, catalog: str | None, schema: str) -> list[Row]:
        """Table rows (``TableRow`` shape) for one schema."""
        ...

    def fetch_columns(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        """Column rows (``ColumnRow`` shape) for one table."""
        ...

    def fetch_unique_keys(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        """Primary/unique key column rows (``UniqueKeyRow`` shape)."""
        ...

    def fetch_foreign_keys(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        """Foreign key column rows (``ForeignKeyRow`` shape) owned by *table*."""
        ...

    def fetch_indexes(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        """Index column rows (``IndexRow`` shape)."""
        ...

    def fetch_triggers(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        """Trigger rows (``TriggerRow`` shape)."""
        ...


class TableResolver(Protocol):
    """Looks up tables referenced by catalog rows."""

    def find_table(
        self, catalog: str | None, schema: str | None, name: str
    ) -> Table | None:
        ...


class ProgressMonitor(Protocol):
    """Caller-supplied cancellation handle, polled cooperatively."""

    def is_canceled(self) -> bool:
        ...

    def sub_task(self, name: str) -> None:
        ...


class NullProgressMonitor:
    """Monitor that never cancels."""

    def is_canceled(self) -> bool:
        return False

    def sub_task(self, name: str) -> None:
        pass


class InMemorySource:
    """Dictionary-backed ``CatalogSource`` for tests and offline use.

    Per-table row lists are keyed by table name.  Kinds listed in
    *unsupported* (``"columns"``, ``"foreign_keys"`` ...) raise
    ``FeatureNotSupportedError`` to mimic drivers lacking that query.
    """

    def __init__(
        self,
        tables: list[Row] | None = None,
        columns: dict[str, list[Row]] | None = None,
        unique_keys: dict[str, list[Row]] | None = None,
        foreign_keys: dict[str, list[Row]] | None = None,
        indexes: dict[str, list[Row]] | None = None,
        triggers: dict[str, list[Row]] | None = None,
        unsupported: set[str] | None = None,
    ) -> None:
        self._tables = list(tables or [])
        self._rows: dict[str, dict[str, list[Row]]] = {
            "columns": dict(columns or {}),
            "unique_keys": dict(unique_keys or {}),
            "foreign_keys": dict(foreign_keys or {}),
            "indexes": dict(indexes or {}),
            "triggers": dict(triggers or {}),
        }
        self._unsupported = set(unsupported or ())
        self.queries: list[tuple[str, str | None]] = []

    def _check(self, kind: str, table: str | None) -> None:
        self.queries.append((kind, table))
        if kind in self._unsupported:
            raise FeatureNotSupportedError(f"{kind} metadata is not supported")

    def _table_rows(self, kind: str, table: str) -> list[Row]:
        self._check(kind, table)
        return list(self._rows[kind].get(table, []))

    def fetch_tables(self, catalog: str | None, schema: str) -> list[Row]:
        self._check("tables", None)
        return [
            row
            for row in self._tables
            if row.get("TABLE_SCHEM") in (None, schema)
        ]

    def fetch_columns(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        return self._table_rows("columns", table)

    def fetch_unique_keys(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        return self._table_rows("unique_keys", table)

    def fetch_foreign_keys(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        return self._table_rows("foreign_keys", table)

    def fetch_indexes(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        return self._table_rows("indexes", table)

    def fetch_triggers(self, catalog: str | None, schema: str, table: str) -> list[Row]:
        return self._table_rows("triggers", table)
