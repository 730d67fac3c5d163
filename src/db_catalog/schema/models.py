"""Schema object graph: containers, tables, columns, keys, indexes, triggers.

Objects are plain dataclasses compared by identity.  A ``Table`` exclusively
owns its columns, unique keys, foreign keys, indexes and triggers, each held
in a name-keyed dict; a ``ForeignKey`` holds a non-owning reference to a
``UniqueKey`` that may live on another table.

Name lookups try an exact match first, then a case-insensitive one, because
catalog drivers disagree on identifier case.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from db_catalog.config.models import Capabilities

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# Enumerations
# ============================================================================


class TableType(str, Enum):
    """Kind of relation held in a container."""

    TABLE = "TABLE"
    VIEW = "VIEW"


class DataKind(str, Enum):
    """Broad data category of a column type."""

    NUMERIC = "numeric"
    STRING = "string"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    BINARY = "binary"
    OTHER = "other"


class ConstraintType(str, Enum):
    """Unique constraint flavours."""

    PRIMARY_KEY = "PRIMARY KEY"
    UNIQUE_KEY = "UNIQUE"

    @property
    def is_unique(self) -> bool:
        return True


class ModifyRule(str, Enum):
    """Referential action for ON DELETE / ON UPDATE."""

    CASCADE = "CASCADE"
    RESTRICT = "RESTRICT"
    SET_NULL = "SET NULL"
    NO_ACTION = "NO ACTION"
    SET_DEFAULT = "SET DEFAULT"
    UNKNOWN = "UNKNOWN"


class Deferability(str, Enum):
    """Whether constraint enforcement may be deferred to commit."""

    INITIALLY_DEFERRED = "INITIALLY DEFERRED"
    INITIALLY_IMMEDIATE = "INITIALLY IMMEDIATE"
    NOT_DEFERRABLE = "NOT DEFERRABLE"
    UNKNOWN = "UNKNOWN"


class TriggerEvent(str, Enum):
    UPDATE = "UPDATE"
    UPDATE_STATEMENT = "UPDATE STATEMENT"
    DELETE = "DELETE"
    DELETE_STATEMENT = "DELETE STATEMENT"
    INSERT = "INSERT"
    INSERT_STATEMENT = "INSERT STATEMENT"
    COMMIT = "COMMIT"
    ROLLBACK = "ROLLBACK"
    UNKNOWN = "UNKNOWN"


class TriggerTime(str, Enum):
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    DEFERRED = "DEFERRED"
    UNKNOWN = "UNKNOWN"


class TriggerActionType(str, Enum):
    STATEMENT = "INSERT, UPDATE, DELETE, CALL"
    REJECT = "REJECT"
    INVALIDATE_TRANSACTION = "INVALIDATE_TRANSACTION"
    PRINT = "PRINT"
    UNKNOWN = "UNKNOWN"


# Type name -> data kind.  Keys are upper-case base names without length.
_TYPE_KINDS: dict[str, DataKind] = {
    "SMALLINT": DataKind.NUMERIC,
    "SHORT": DataKind.NUMERIC,
    "INTEGER": DataKind.NUMERIC,
    "INT": DataKind.NUMERIC,
    "BIGINT": DataKind.NUMERIC,
    "NUMERIC": DataKind.NUMERIC,
    "DECIMAL": DataKind.NUMERIC,
    "FLOAT": DataKind.NUMERIC,
    "REAL": DataKind.NUMERIC,
    "DOUBLE": DataKind.NUMERIC,
    "DOUBLE PRECISION": DataKind.NUMERIC,
    "MONETARY": DataKind.NUMERIC,
    "CHAR": DataKind.STRING,
    "CHARACTER": DataKind.STRING,
    "VARCHAR": DataKind.STRING,
    "CHARACTER VARYING": DataKind.STRING,
    "NCHAR": DataKind.STRING,
    "NCHAR VARYING": DataKind.STRING,
    "STRING": DataKind.STRING,
    "TEXT": DataKind.STRING,
    "CLOB": DataKind.STRING,
    "ENUM": DataKind.STRING,
    "DATE": DataKind.DATETIME,
    "TIME": DataKind.DATETIME,
    "TIMESTAMP": DataKind.DATETIME,
    "TIMESTAMPTZ": DataKind.DATETIME,
    "TIMESTAMPLTZ": DataKind.DATETIME,
    "DATETIME": DataKind.DATETIME,
    "DATETIMETZ": DataKind.DATETIME,
    "DATETIMELTZ": DataKind.DATETIME,
    "BOOLEAN": DataKind.BOOLEAN,
    "BOOL": DataKind.BOOLEAN,
    "BIT": DataKind.BINARY,
    "BIT VARYING": DataKind.BINARY,
    "BLOB": DataKind.BINARY,
    "BYTEA": DataKind.BINARY,
}


def base_type_name(type_name: str) -> str:
    """Strip any length/precision suffix and normalize case.

    Example:
        >>> base_type_name("varchar(255)")
        'VARCHAR'
    """
    return re.sub(r"\s*\(.*\)\s*$", "", type_name).strip().upper()


def data_kind_for(type_name: str) -> DataKind:
    """Map a declared type name to its data kind (``OTHER`` if unrecognized)."""
    return _TYPE_KINDS.get(base_type_name(type_name), DataKind.OTHER)


def find_named(objects: dict[str, T], name: str | None) -> T | None:
    """Look up *name* exactly, then case-insensitively."""
    if not name:
        return None
    found = objects.get(name)
    if found is not None:
        return found
    lowered = name.lower()
    for key, value in objects.items():
        if key.lower() == lowered:
            return value
    return None


def unique_name(base: str, taken: set[str]) -> str:
    """Return *base*, or *base* suffixed with ``_1``, ``_2``... if taken."""
    lowered = {t.lower() for t in taken}
    if base.lower() not in lowered:
        return base
    counter = 1
    while f"{base}_{counter}".lower() in lowered:
        counter += 1
    return f"{base}_{counter}"


# ============================================================================
# Containers
# ============================================================================


@dataclass(eq=False)
class SchemaContainer:
    """A schema (optionally inside a catalog) owning a set of tables."""

    name: str
    catalog: str | None = None
    owners: list[str] = field(default_factory=list)
    collations: list[str] = field(default_factory=list)
    tables: dict[str, Table] = field(default_factory=dict, repr=False)

    @property
    def key(self) -> tuple[str | None, str]:
        return (self.catalog, self.name)

    def get_table(self, name: str | None) -> Table | None:
        return find_named(self.tables, name)

    def add_table(self, table: Table) -> None:
        if table.container is not self:
            raise ValueError(f"Table {table.name} belongs to another container")
        self.tables[table.name] = table

    def remove_table(self, table: Table) -> None:
        self.tables.pop(table.name, None)

    def match_owner(self, name: str | None) -> str | None:
        """Return the known owner named *name* (``None`` when not listed)."""
        return _match_listed(self.owners, name)

    def match_collation(self, name: str | None) -> str | None:
        """Return the known collation named *name* (``None`` when not listed)."""
        return _match_listed(self.collations, name)


def _match_listed(known: list[str], name: str | None) -> str | None:
    if not name:
        return None
    if not known:
        return name
    for candidate in known:
        if candidate == name:
            return candidate
    logger.debug(f"'{name}' is not among the known names {known}")
    return None


@dataclass(eq=False)
class DatabaseCatalog:
    """All schema containers of one connection, keyed by (catalog, schema).

    Implements the ``TableResolver`` protocol used by the foreign-key
    reconciler.
    """

    containers: dict[tuple[str | None, str], SchemaContainer] = field(
        default_factory=dict
    )

    def add_container(self, container: SchemaContainer) -> SchemaContainer:
        self.containers[container.key] = container
        return container

    def get_container(
        self, catalog: str | None, schema: str
    ) -> SchemaContainer | None:
        container = self.containers.get((catalog, schema))
        if container is not None:
            return container
        for (cat, name), candidate in self.containers.items():
            if name.lower() == schema.lower() and (catalog is None or cat == catalog):
                return candidate
        return None

    def find_table(
        self, catalog: str | None, schema: str | None, name: str
    ) -> Table | None:
        """Locate a table by (catalog, schema, name); ``None`` if unknown.

        A missing *schema* searches every container of the catalog.
        """
        if schema:
            container = self.get_container(catalog, schema)
            return container.get_table(name) if container else None
        for (cat, _), container in self.containers.items():
            if catalog is not None and cat != catalog:
                continue
            table = container.get_table(name)
            if table is not None:
                return table
        return None


# ============================================================================
# Tables and columns
# ============================================================================


@dataclass(eq=False)
class Table:
    """A table or view with its owned child objects."""

    container: SchemaContainer
    name: str
    table_type: TableType = TableType.TABLE
    owner: str | None = None
    collation: str | None = None
    comment: str | None = None
    reuse_oid: bool = True
    persisted: bool = True
    old_owner: str | None = None
    columns: dict[str, Column] = field(default_factory=dict, repr=False)
    unique_keys: dict[str, UniqueKey] = field(default_factory=dict, repr=False)
    foreign_keys: dict[str, ForeignKey] = field(default_factory=dict, repr=False)
    indexes: dict[str, Index] = field(default_factory=dict, repr=False)
    triggers: list[Trigger] = field(default_factory=list, repr=False)
    _row_count: int | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.old_owner is None:
            self.old_owner = self.owner

    @property
    def is_view(self) -> bool:
        return self.table_type == TableType.VIEW

    @property
    def full_name(self) -> str:
        """Unquoted ``owner.name`` (or just the name when owner is unknown)."""
        return f"{self.owner}.{self.name}" if self.owner else self.name

    # -- columns ------------------------------------------------------------

    def get_column(self, name: str | None) -> Column | None:
        return find_named(self.columns, name)

    def add_column(self, column: Column) -> None:
        if column.table is not self:
            raise ValueError(f"Column {column.name} belongs to another table")
        if not column.ordinal_position:
            column.ordinal_position = len(self.columns) + 1
        self.columns[column.name] = column

    def ordered_columns(self) -> list[Column]:
        return sorted(self.columns.values(), key=lambda c: c.ordinal_position)

    # -- unique keys --------------------------------------------------------

    def get_constraint(self, name: str | None) -> UniqueKey | None:
        return find_named(self.unique_keys, name)

    def add_unique_key(self, key: UniqueKey) -> None:
        if key.name in self.unique_keys and self.unique_keys[key.name] is not key:
            raise ValueError(f"Table {self.name} already has constraint {key.name}")
        self.unique_keys[key.name] = key

    @property
    def primary_key(self) -> UniqueKey | None:
        for key in self.unique_keys.values():
            if key.constraint_type == ConstraintType.PRIMARY_KEY:
                return key
        return None

    def find_unique_key_for_column(self, column: Column) -> UniqueKey | None:
        """First unique constraint that contains *column*, if any."""
        for key in self.unique_keys.values():
            if key.constraint_type.is_unique and key.has_column(column):
                return key
        return None

    # -- foreign keys and indexes -------------------------------------------

    def get_foreign_key(self, name: str | None) -> ForeignKey | None:
        return find_named(self.foreign_keys, name)

    def add_foreign_key(self, foreign_key: ForeignKey) -> None:
        self.foreign_keys[foreign_key.name] = foreign_key

    def get_index(self, name: str | None) -> Index | None:
        return find_named(self.indexes, name)

    def add_index(self, index: Index) -> None:
        self.indexes[index.name] = index

    # -- statistics ---------------------------------------------------------

    def get_row_count(
        self,
        counter: Callable[[Table], int],
        capabilities: Capabilities | None = None,
    ) -> int | None:
        """Return the cached row count, computing it with *counter* once.

        Views, unpersisted tables and drivers without row counting yield
        ``None``.  A failing counter caches ``-1`` meaning "unknown".
        """
        if self._row_count is not None:
            return self._row_count
        if self.is_view or not self.persisted:
            return None
        if capabilities is not None and not capabilities.supports_row_count:
            return None
        try:
            self._row_count = counter(self)
        except Exception as e:
            # Row count is optional information; some backends fail on it
            logger.debug(f"Can't fetch row count for {self.full_name}: {e}")
            self._row_count = -1
        return self._row_count

    def row_count_from_indexes(self) -> int | None:
        """Approximate the row count from the first unique index cardinality."""
        for index in self.indexes.values():
            if index.unique and index.cardinality > 0:
                return index.cardinality
        return None

    def invalidate(self) -> None:
        """Drop cached child objects and statistics (cache refresh)."""
        self.unique_keys.clear()
        self.foreign_keys.clear()
        self.indexes.clear()
        # Key membership is re-marked when unique keys are rebuilt
        for column in self.columns.values():
            column.in_unique_key = False
        self._row_count = None


@dataclass(eq=False)
class Column:
    """A table column."""

    table: Table
    name: str
    type_name: str = "INTEGER"
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None
    required: bool = False
    default_value: str | None = None
    shared: bool = False
    auto_increment: bool = False
    initial_value: int | None = None
    increment_value: int | None = None
    collation: str | None = None
    comment: str | None = None
    in_unique_key: bool = False
    ordinal_position: int = 0
    persisted: bool = True

    @property
    def data_kind(self) -> DataKind:
        return data_kind_for(self.type_name)

    @property
    def nullable(self) -> bool:
        return not self.required


# ============================================================================
# Keys and indexes
# ============================================================================


@dataclass(eq=False)
class ConstraintColumn:
    column: Column
    sequence: int


@dataclass(eq=False)
class UniqueKey:
    """Primary key or unique constraint.

    ``synthesized`` marks keys fabricated by the foreign-key reconciler when
    the catalog offered no matching constraint.
    """

    table: Table
    name: str
    constraint_type: ConstraintType = ConstraintType.UNIQUE_KEY
    columns: list[ConstraintColumn] = field(default_factory=list, repr=False)
    persisted: bool = True
    synthesized: bool = False

    def add_column(self, column: Column, sequence: int) -> None:
        """Insert *column* keeping the list ordered by sequence."""
        if any(c.column is column for c in self.columns):
            return
        self.columns.append(ConstraintColumn(column, sequence))
        self.columns.sort(key=lambda c: c.sequence)

    def has_column(self, column: Column) -> bool:
        return any(c.column is column for c in self.columns)

    @property
    def column_names(self) -> list[str]:
        return [c.column.name for c in self.columns]


@dataclass(eq=False)
class ForeignKeyColumn:
    column: Column
    referenced_column: Column
    sequence: int


@dataclass(eq=False)
class ForeignKey:
    """Foreign key owned by ``table`` referencing ``referenced_key``."""

    table: Table
    name: str
    referenced_key: UniqueKey | None = None
    delete_rule: ModifyRule = ModifyRule.NO_ACTION
    update_rule: ModifyRule = ModifyRule.NO_ACTION
    deferability: Deferability = Deferability.NOT_DEFERRABLE
    columns: list[ForeignKeyColumn] = field(default_factory=list, repr=False)
    persisted: bool = True
    synthesized_name: bool = False

    @property
    def referenced_table(self) -> Table | None:
        return self.referenced_key.table if self.referenced_key else None

    def add_column(
        self, column: Column, referenced_column: Column, sequence: int
    ) -> bool:
        """Add a column pair in sequence order.

        Returns ``False`` (and changes nothing) when the pair is already
        present, so reconciling the same rows twice is harmless.
        """
        for existing in self.columns:
            if existing.column is column and existing.referenced_column is referenced_column:
                return False
        self.columns.append(ForeignKeyColumn(column, referenced_column, sequence))
        self.columns.sort(key=lambda c: c.sequence)
        return True

    @property
    def column_names(self) -> list[str]:
        return [c.column.name for c in self.columns]

    @property
    def referenced_column_names(self) -> list[str]:
        return [c.referenced_column.name for c in self.columns]


@dataclass(eq=False)
class IndexColumn:
    column: Column
    position: int
    ascending: bool = True


@dataclass(eq=False)
class Index:
    """Table index."""

    table: Table
    name: str
    unique: bool = False
    index_type: str = "OTHER"
    columns: list[IndexColumn] = field(default_factory=list, repr=False)
    cardinality: int = 0
    persisted: bool = True

    def add_column(self, column: Column, position: int, ascending: bool = True) -> None:
        self.columns.append(IndexColumn(column, position, ascending))
        self.columns.sort(key=lambda c: c.position)


@dataclass(eq=False)
class Trigger:
    """Trigger attached to a table."""

    name: str
    table: Table | None = None
    owner: str | None = None
    target_owner: str | None = None
    target_class: str | None = None
    priority: float | None = None
    event: TriggerEvent = TriggerEvent.UNKNOWN
    condition_time: TriggerTime = TriggerTime.UNKNOWN
    condition: str | None = None
    action_time: TriggerTime = TriggerTime.UNKNOWN
    action_type: TriggerActionType = TriggerActionType.UNKNOWN
    action_definition: str | None = None
    comment: str | None = None
