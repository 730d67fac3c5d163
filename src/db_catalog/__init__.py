"""db-catalog: schema metadata reconciliation and DDL synthesis.

Turns flat catalog rows into a cross-referenced schema graph (tables,
columns, unique keys, foreign keys, indexes, triggers) and renders pending
edits against that graph as CREATE/ALTER/DROP/RENAME statements.

Usage:
    from db_catalog import DDLGenerator, InMemorySource, SchemaLoader

    loader = SchemaLoader(InMemorySource(tables=[...], columns={...}))
    results = loader.load_container(None, "public")
    ddl = DDLGenerator().generate_table_ddl(results[0].table)
"""

from db_catalog.catalog import (
    ForeignKeyReconciler,
    ForeignKeyReconciliation,
    InMemorySource,
    LoadStatus,
    SchemaLoader,
    TableLoadResult,
)
from db_catalog.config import Capabilities, DialectSettings, EngineConfig, load_engine_config
from db_catalog.ddl import (
    DDLGenerator,
    DDLPlan,
    PersistAction,
    alter_command,
    create_command,
    delete_command,
    generate_table_ddl,
    rename_command,
)
from db_catalog.exceptions import (
    CatalogEngineError,
    CatalogError,
    ConfigurationError,
    DDLValidationError,
    FeatureNotSupportedError,
    MissingInitialValueError,
    OperationCancelledError,
    ProfileNotFoundError,
)
from db_catalog.schema import DatabaseCatalog, SchemaContainer, Table

__version__ = "0.1.0"

__all__ = [
    "Capabilities",
    "CatalogEngineError",
    "CatalogError",
    "ConfigurationError",
    "DDLGenerator",
    "DDLPlan",
    "DDLValidationError",
    "DatabaseCatalog",
    "DialectSettings",
    "EngineConfig",
    "FeatureNotSupportedError",
    "ForeignKeyReconciler",
    "ForeignKeyReconciliation",
    "InMemorySource",
    "LoadStatus",
    "MissingInitialValueError",
    "OperationCancelledError",
    "PersistAction",
    "ProfileNotFoundError",
    "SchemaContainer",
    "SchemaLoader",
    "Table",
    "TableLoadResult",
    "alter_command",
    "create_command",
    "delete_command",
    "generate_table_ddl",
    "load_engine_config",
    "rename_command",
]
