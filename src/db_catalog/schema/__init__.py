"""Schema object graph and editors for new objects."""

from db_catalog.schema.editors import (
    ForeignKeyOptions,
    IndexOptions,
    configure_foreign_key,
    configure_index,
    new_column,
    new_table,
)
from db_catalog.schema.models import (
    Column,
    ConstraintType,
    DatabaseCatalog,
    DataKind,
    Deferability,
    ForeignKey,
    Index,
    ModifyRule,
    SchemaContainer,
    Table,
    TableType,
    Trigger,
    TriggerActionType,
    TriggerEvent,
    TriggerTime,
    UniqueKey,
)

__all__ = [
    "Column",
    "ConstraintType",
    "DataKind",
    "DatabaseCatalog",
    "Deferability",
    "ForeignKey",
    "ForeignKeyOptions",
    "Index",
    "IndexOptions",
    "ModifyRule",
    "SchemaContainer",
    "Table",
    "TableType",
    "Trigger",
    "TriggerActionType",
    "TriggerEvent",
    "TriggerTime",
    "UniqueKey",
    "configure_foreign_key",
    "configure_index",
    "new_column",
    "new_table",
]
