"""Column declarations for CREATE TABLE and ALTER TABLE statements.

Two forms exist.  The create form is embedded in a CREATE TABLE body:

    name TYPE [COLLATE 'c'] [NOT NULL] [UNIQUE] [DEFAULT|SHARED 'v']
        [AUTO_INCREMENT(start,step)] [COMMENT 'text']

The add/modify form follows ALTER TABLE ... ADD/MODIFY COLUMN:

    name TYPE [NULL|NOT NULL] [UNIQUE] [DEFAULT|SHARED 'v']
        [AUTO_INCREMENT] [COLLATE 'c'] [COMMENT 'text']
"""

from db_catalog.ddl.commands import CommandKind, NestedCommand
from db_catalog.ddl.dialect import SQLDialect
from db_catalog.exceptions import MissingInitialValueError
from db_catalog.schema.models import Column, DataKind, base_type_name

# Types that take a length suffix when one is known
_SIZED_TYPES = {"CHAR", "CHARACTER", "VARCHAR", "CHARACTER VARYING", "NCHAR", "NCHAR VARYING", "BIT", "BIT VARYING"}
_SCALED_TYPES = {"NUMERIC", "DECIMAL"}


def check_auto_increment(column: Column) -> None:
    """Raise ``MissingInitialValueError`` for auto-increment without a start."""
    if column.auto_increment and column.initial_value is None:
        raise MissingInitialValueError(column.table.name, column.name)


def type_clause(column: Column) -> str:
    """Declared type with its length or precision suffix."""
    type_name = column.type_name
    if "(" in type_name:
        return type_name
    base = base_type_name(type_name)
    if base in _SIZED_TYPES and column.max_length and column.max_length > 0:
        return f"{type_name}({column.max_length})"
    if base in _SCALED_TYPES and column.precision:
        if column.scale is not None:
            return f"{type_name}({column.precision},{column.scale})"
        return f"{type_name}({column.precision})"
    return type_name


def _default_clause(column: Column, dialect: SQLDialect) -> str:
    if not column.default_value:
        return ""
    keyword = "SHARED" if column.shared else "DEFAULT"
    return f" {keyword} {dialect.quote_string(column.default_value)}"


def column_declaration(
    column: Column, dialect: SQLDialect, name: str | None = None
) -> str:
    """Render the CREATE TABLE form of *column*.

    Args:
        column: Column to declare.
        dialect: Quoting rules.
        name: Name to declare instead of the current one (pending rename).

    Raises:
        MissingInitialValueError: Auto-increment column without initial value.
    """
    check_auto_increment(column)

    decl = dialect.quote_identifier(name or column.name)
    decl += " " + type_clause(column)
    if column.data_kind == DataKind.STRING and column.collation:
        decl += f" COLLATE {dialect.quote_string(column.collation)}"
    if column.required:
        decl += " NOT NULL"
    if column.in_unique_key:
        decl += " UNIQUE"
    decl += _default_clause(column, dialect)
    if column.auto_increment and column.data_kind == DataKind.NUMERIC:
        increment = column.increment_value if column.increment_value is not None else 1
        decl += f" AUTO_INCREMENT({column.initial_value},{increment})"
    if column.comment:
        decl += f" COMMENT {dialect.quote_string(column.comment)}"
    return decl


def add_column_declaration(
    column: Column,
    dialect: SQLDialect,
    command: NestedCommand | None = None,
    name: str | None = None,
) -> str:
    """Render the ADD/MODIFY COLUMN form of *column*.

    The nullability clause is always present for new columns; for an alter
    command it appears only when ``required`` is among the changed
    properties.

    Raises:
        MissingInitialValueError: Auto-increment column without initial value.
    """
    check_auto_increment(column)

    decl = dialect.quote_identifier(name or column.name)
    decl += " " + type_clause(column)
    if command is None or command.kind != CommandKind.ALTER or command.has_property("required"):
        decl += " NOT NULL" if column.required else " NULL"
    if column.in_unique_key:
        decl += " UNIQUE"
    decl += _default_clause(column, dialect)
    if column.auto_increment:
        decl += " AUTO_INCREMENT"
    if column.data_kind == DataKind.STRING and column.collation:
        decl += f" COLLATE {dialect.quote_string(column.collation)}"
    if column.comment:
        decl += f" COMMENT {dialect.quote_string(column.comment)}"
    return decl
