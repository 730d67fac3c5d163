"""Build the schema object graph from catalog rows.

Loading runs in two phases per batch: first every table gets its columns,
unique keys, indexes and triggers; then foreign keys are reconciled, so a
key may reference any table of the batch regardless of load order.

Each table produces a ``TableLoadResult``.  A fatal catalog error fails only
that table; the rest of the batch continues.  Cancellation, checked before
every catalog sub-query, aborts the whole batch.

Usage:
    from db_catalog.catalog import InMemorySource, SchemaLoader
    from db_catalog.schema.models import DatabaseCatalog

    loader = SchemaLoader(source, DatabaseCatalog())
    results = loader.load_container(None, "public")
    for result in results:
        print(result.name, result.status.value, result.warnings)
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from db_catalog.catalog.codes import (
    trigger_action_type_from_code,
    trigger_event_from_code,
    trigger_time_from_code,
)
from db_catalog.catalog.foreign_keys import ForeignKeyReconciler, ForeignKeyReconciliation
from db_catalog.catalog.rows import (
    ColumnRow,
    IndexRow,
    TableRow,
    TriggerRow,
    UniqueKeyRow,
    decode_rows,
)
from db_catalog.catalog.source import CatalogSource, NullProgressMonitor, ProgressMonitor
from db_catalog.config.models import Capabilities
from db_catalog.exceptions import (
    CatalogEngineError,
    FeatureNotSupportedError,
    OperationCancelledError,
)
from db_catalog.schema.models import (
    Column,
    ConstraintType,
    DatabaseCatalog,
    DataKind,
    Index,
    SchemaContainer,
    Table,
    TableType,
    Trigger,
    UniqueKey,
)

logger = logging.getLogger(__name__)


class LoadStatus(str, Enum):
    """Outcome of loading one table."""

    SUCCESS = "success"
    SUCCESS_WITH_WARNINGS = "success_with_warnings"
    FAILED = "failed"


@dataclass
class TableLoadResult:
    """Per-table result of a load batch."""

    name: str
    table: Table | None = None
    status: LoadStatus = LoadStatus.SUCCESS
    warnings: list[str] = field(default_factory=list)
    error: CatalogEngineError | None = None
    foreign_keys: ForeignKeyReconciliation | None = None

    @property
    def ok(self) -> bool:
        return self.status != LoadStatus.FAILED

    def warn(self, messages: Iterable[str]) -> None:
        for message in messages:
            self.warnings.append(message)
            if self.status == LoadStatus.SUCCESS:
                self.status = LoadStatus.SUCCESS_WITH_WARNINGS

    def fail(self, error: CatalogEngineError) -> None:
        self.status = LoadStatus.FAILED
        self.error = error


# ============================================================================
# Row -> object builders
# ============================================================================


def _note(warnings: list[str], message: str) -> None:
    logger.warning(message)
    warnings.append(message)


def build_table(container: SchemaContainer, info: TableRow) -> Table:
    """Create a persisted Table from a table row."""
    table_type = (
        TableType.VIEW
        if (info.table_type or "").upper().endswith("VIEW")
        else TableType.TABLE
    )
    return Table(
        container=container,
        name=info.table_name,
        table_type=table_type,
        owner=container.match_owner(info.owner),
        collation=container.match_collation(info.collation),
        comment=info.remarks,
        # Drivers without the flag reuse identifiers
        reuse_oid=info.reuse_oid is not False,
        persisted=True,
    )


def build_columns(table: Table, rows: Iterable[Mapping[str, Any]]) -> list[str]:
    """Add columns from column rows; returns warnings for unusable rows."""
    warnings = []
    for info in decode_rows(rows, ColumnRow):
        if not info.column_name:
            _note(warnings, f"Column row without name in {table.full_name}")
            continue
        column = Column(
            table=table,
            name=info.column_name,
            type_name=info.type_name or "UNKNOWN",
            default_value=info.column_default,
            shared=info.is_shared,
            auto_increment=info.is_autoincrement,
            initial_value=info.initial_value,
            increment_value=info.increment_value,
            comment=info.remarks,
            ordinal_position=info.ordinal_position or 0,
        )
        # columnNoNulls == 0
        column.required = info.nullable == 0 or info.is_nullable is False
        if column.data_kind == DataKind.NUMERIC:
            column.precision = info.column_size
            column.scale = info.decimal_digits
        else:
            column.max_length = info.column_size
        if column.data_kind == DataKind.STRING:
            column.collation = table.container.match_collation(info.collation)
        table.add_column(column)
    return warnings


def build_unique_keys(table: Table, rows: Iterable[Mapping[str, Any]]) -> list[str]:
    """Group key column rows by constraint name into UniqueKey objects."""
    warnings = []
    for info in decode_rows(rows, UniqueKeyRow):
        if not info.constraint_name:
            _note(warnings, f"Unnamed key row for column {info.column_name} in {table.full_name}")
            continue
        column = table.get_column(info.column_name)
        if column is None:
            _note(
                warnings,
                f"Can't find column {info.column_name} of key "
                f"{info.constraint_name} in {table.full_name}"
            )
            continue
        key = table.get_constraint(info.constraint_name)
        if key is None:
            constraint_type = (
                ConstraintType.PRIMARY_KEY
                if (info.constraint_type or "").upper() in ("PRIMARY KEY", "P", "PRI")
                else ConstraintType.UNIQUE_KEY
            )
            key = UniqueKey(table=table, name=info.constraint_name, constraint_type=constraint_type)
            table.add_unique_key(key)
        key.add_column(column, info.key_seq or len(key.columns) + 1)
        column.in_unique_key = True
    return warnings


def build_indexes(table: Table, rows: Iterable[Mapping[str, Any]]) -> list[str]:
    """Group index column rows by index name into Index objects."""
    warnings = []
    for info in decode_rows(rows, IndexRow):
        if not info.index_name:
            # Table statistic rows carry no index
            continue
        index = table.get_index(info.index_name)
        if index is None:
            index = Index(
                table=table,
                name=info.index_name,
                unique=not info.non_unique,
                index_type=info.index_type or "OTHER",
            )
            table.add_index(index)
        if info.cardinality is not None:
            index.cardinality = max(index.cardinality, info.cardinality)
        column = table.get_column(info.column_name)
        if column is None:
            _note(
                warnings,
                f"Can't find column {info.column_name} of index "
                f"{info.index_name} in {table.full_name}"
            )
            continue
        ascending = (info.asc_or_desc or "A").upper() != "D"
        index.add_column(column, info.ordinal_position or len(index.columns) + 1, ascending)
    return warnings


def build_triggers(table: Table, rows: Iterable[Mapping[str, Any]]) -> list[str]:
    warnings = []
    for info in decode_rows(rows, TriggerRow):
        if not info.name:
            _note(warnings, f"Unnamed trigger row in {table.full_name}")
            continue
        table.triggers.append(
            Trigger(
                name=info.name,
                table=table,
                owner=info.owner_name,
                target_owner=info.target_owner_name,
                target_class=info.target_class_name,
                priority=info.priority,
                event=trigger_event_from_code(info.event),
                condition_time=trigger_time_from_code(info.condition_time),
                condition=info.condition,
                action_time=trigger_time_from_code(info.action_time),
                action_type=trigger_action_type_from_code(info.action_type),
                action_definition=info.action_definition,
                comment=info.comment,
            )
        )
    return warnings


# ============================================================================
# Loader
# ============================================================================


class SchemaLoader:
    """Loads tables of a container from a ``CatalogSource``.

    Args:
        source: Supplier of raw catalog rows.
        catalog: Graph the loaded containers are registered in; also resolves
            referenced tables for foreign keys.
        capabilities: Driver capability flags (defaults: everything supported).
        monitor: Cancellation handle polled before each catalog query.
    """

    def __init__(
        self,
        source: CatalogSource,
        catalog: DatabaseCatalog | None = None,
        capabilities: Capabilities | None = None,
        monitor: ProgressMonitor | None = None,
    ):
        self._source = source
        self.catalog = catalog or DatabaseCatalog()
        self._capabilities = capabilities or Capabilities()
        self._monitor = monitor or NullProgressMonitor()
        self._reconciler = ForeignKeyReconciler(self.catalog)

    def load_container(
        self, catalog_name: str | None, schema: str, names: Iterable[str] | None = None
    ) -> list[TableLoadResult]:
        """Register (or reuse) the container for *schema* and load its tables."""
        container = self.catalog.get_container(catalog_name, schema)
        if container is None:
            container = self.catalog.add_container(
                SchemaContainer(name=schema, catalog=catalog_name)
            )
        return self.load_tables(container, names)

    def load_tables(
        self, container: SchemaContainer, names: Iterable[str] | None = None
    ) -> list[TableLoadResult]:
        """Load tables of *container* (all of them, or only *names*).

        Returns:
            One TableLoadResult per table row, in catalog order.

        Raises:
            OperationCancelledError: If the monitor reports cancellation.
            CatalogError: If the table list itself can't be read.
        """
        if self.catalog.get_container(container.catalog, container.name) is None:
            self.catalog.add_container(container)

        wanted = {n.lower() for n in names} if names is not None else None
        rows = self._fetch("tables", self._source.fetch_tables, container.catalog, container.name)

        results: list[TableLoadResult] = []
        for info in decode_rows(rows, TableRow):
            if not info.table_name:
                logger.warning(f"Table row without name in {container.name}")
                continue
            if wanted is not None and info.table_name.lower() not in wanted:
                continue
            result = TableLoadResult(name=info.table_name)
            results.append(result)
            table = build_table(container, info)
            container.add_table(table)
            try:
                self._load_structure(table, result)
            except OperationCancelledError:
                raise
            except CatalogEngineError as e:
                logger.error(f"Failed to load table {table.full_name}: {e}")
                container.remove_table(table)
                result.fail(e)
                continue
            result.table = table

        # Second phase: every table of the batch is now resolvable
        for result in results:
            if not result.ok:
                continue
            try:
                self._load_foreign_keys(result.table, result)
            except OperationCancelledError:
                raise
            except CatalogEngineError as e:
                logger.error(f"Failed to load foreign keys of {result.name}: {e}")
                result.fail(e)

        return results

    def reload_table(self, table: Table) -> TableLoadResult:
        """Refresh keys and indexes of one already-loaded table."""
        table.invalidate()
        result = TableLoadResult(name=table.name, table=table)
        try:
            container = table.container
            self._load_keys_and_indexes(table, container, result)
            self._load_foreign_keys(table, result)
        except OperationCancelledError:
            raise
        except CatalogEngineError as e:
            result.fail(e)
        return result

    # ------------------------------------------------------------------------

    def _load_structure(self, table: Table, result: TableLoadResult) -> None:
        container = table.container
        args = (container.catalog, container.name, table.name)
        result.warn(build_columns(table, self._fetch("columns", self._source.fetch_columns, *args)))
        self._load_keys_and_indexes(table, container, result)
        result.warn(build_triggers(table, self._fetch("triggers", self._source.fetch_triggers, *args)))

    def _load_keys_and_indexes(
        self, table: Table, container: SchemaContainer, result: TableLoadResult
    ) -> None:
        args = (container.catalog, container.name, table.name)
        if table.is_view:
            return
        result.warn(
            build_unique_keys(table, self._fetch("unique keys", self._source.fetch_unique_keys, *args))
        )
        if self._capabilities.supports_indexes:
            result.warn(build_indexes(table, self._fetch("indexes", self._source.fetch_indexes, *args)))

    def _load_foreign_keys(self, table: Table, result: TableLoadResult) -> None:
        if (
            table.is_view
            or not table.persisted
            or not self._capabilities.supports_referential_integrity
        ):
            return
        container = table.container
        rows = self._fetch(
            "foreign keys",
            self._source.fetch_foreign_keys,
            container.catalog, container.name, table.name,
        )
        reconciliation = self._reconciler.reconcile(table, rows)
        result.foreign_keys = reconciliation
        result.warn(reconciliation.warnings)

    def _fetch(
        self, kind: str, query: Callable[..., list[Mapping[str, Any]]], *args: Any
    ) -> list[Mapping[str, Any]]:
        """Run one catalog query after a cancellation check.

        Unsupported queries degrade to an empty list.
        """
        if self._monitor.is_canceled():
            raise OperationCancelledError(f"Loading {kind} was canceled")
        self._monitor.sub_task(f"Load {kind}")
        try:
            return list(query(*args))
        except FeatureNotSupportedError as e:
            logger.debug(f"Error reading {kind}: {e}")
            return []
