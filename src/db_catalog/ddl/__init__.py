"""DDL synthesis from pending schema edits."""

from db_catalog.ddl.columns import add_column_declaration, column_declaration, type_clause
from db_catalog.ddl.commands import (
    CommandKind,
    NestedCommand,
    ObjectKind,
    PersistAction,
    alter_command,
    create_command,
    delete_command,
    object_kind,
    rename_command,
)
from db_catalog.ddl.constraints import (
    foreign_key_declaration,
    index_statement,
    unique_key_declaration,
)
from db_catalog.ddl.dialect import SQLDialect
from db_catalog.ddl.generator import DDLFailure, DDLGenerator, DDLPlan, generate_table_ddl
from db_catalog.ddl.planner import AlterPlanner
from db_catalog.ddl.table_builder import TableDDLBuilder, append_declaration

__all__ = [
    "AlterPlanner",
    "CommandKind",
    "DDLFailure",
    "DDLGenerator",
    "DDLPlan",
    "NestedCommand",
    "ObjectKind",
    "PersistAction",
    "SQLDialect",
    "TableDDLBuilder",
    "add_column_declaration",
    "alter_command",
    "append_declaration",
    "column_declaration",
    "create_command",
    "delete_command",
    "foreign_key_declaration",
    "generate_table_ddl",
    "index_statement",
    "object_kind",
    "rename_command",
    "type_clause",
    "unique_key_declaration",
]
