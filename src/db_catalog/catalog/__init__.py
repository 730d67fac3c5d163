"""Catalog row sources, decoding and graph loading."""

from db_catalog.catalog.codes import (
    deferability_from_code,
    modify_rule_from_code,
    trigger_action_type_from_code,
    trigger_event_from_code,
    trigger_time_from_code,
)
from db_catalog.catalog.foreign_keys import (
    ForeignKeyReconciler,
    ForeignKeyReconciliation,
    KeyResolution,
    SkippedRow,
)
from db_catalog.catalog.loader import LoadStatus, SchemaLoader, TableLoadResult
from db_catalog.catalog.rows import (
    CatalogRow,
    ColumnRow,
    ForeignKeyRow,
    IndexRow,
    TableRow,
    TriggerRow,
    UniqueKeyRow,
    decode_row,
    decode_rows,
)
from db_catalog.catalog.source import (
    CatalogSource,
    InMemorySource,
    NullProgressMonitor,
    ProgressMonitor,
    TableResolver,
)

__all__ = [
    "CatalogRow",
    "CatalogSource",
    "ColumnRow",
    "ForeignKeyReconciler",
    "ForeignKeyReconciliation",
    "ForeignKeyRow",
    "InMemorySource",
    "IndexRow",
    "KeyResolution",
    "LoadStatus",
    "NullProgressMonitor",
    "ProgressMonitor",
    "SchemaLoader",
    "SkippedRow",
    "TableLoadResult",
    "TableResolver",
    "TableRow",
    "TriggerRow",
    "UniqueKeyRow",
    "decode_row",
    "decode_rows",
    "deferability_from_code",
    "modify_rule_from_code",
    "trigger_action_type_from_code",
    "trigger_event_from_code",
    "trigger_time_from_code",
]
