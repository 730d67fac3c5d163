"""Constraint declarations and index statements."""

from db_catalog.ddl.dialect import SQLDialect
from db_catalog.exceptions import DDLValidationError
from db_catalog.schema.models import ForeignKey, Index, ModifyRule, UniqueKey


def _column_list(names: list[str], dialect: SQLDialect) -> str:
    return ", ".join(dialect.quote_identifier(n) for n in names)


def unique_key_declaration(key: UniqueKey, dialect: SQLDialect) -> str:
    """``CONSTRAINT name PRIMARY KEY|UNIQUE (cols)``."""
    return (
        f"CONSTRAINT {dialect.quote_identifier(key.name)} "
        f"{key.constraint_type.value} ({_column_list(key.column_names, dialect)})"
    )


def foreign_key_declaration(foreign_key: ForeignKey, dialect: SQLDialect) -> str:
    """``[CONSTRAINT name] FOREIGN KEY (cols) REFERENCES t (cols) [ON ...]``.

    Fabricated names are left out so the database picks its own.
    """
    ref_table = foreign_key.referenced_table
    if ref_table is None:
        raise DDLValidationError(
            f"Foreign key {foreign_key.name} has no referenced key",
            object_name=foreign_key.name,
        )
    decl = ""
    if not foreign_key.synthesized_name:
        decl = f"CONSTRAINT {dialect.quote_identifier(foreign_key.name)} "
    decl += (
        f"FOREIGN KEY ({_column_list(foreign_key.column_names, dialect)}) "
        f"REFERENCES {dialect.table_name(ref_table)} "
        f"({_column_list(foreign_key.referenced_column_names, dialect)})"
    )
    for clause, rule in (("ON DELETE", foreign_key.delete_rule), ("ON UPDATE", foreign_key.update_rule)):
        if rule not in (ModifyRule.NO_ACTION, ModifyRule.UNKNOWN):
            decl += f" {clause} {rule.value}"
    return decl


def index_statement(index: Index, dialect: SQLDialect) -> str:
    """``CREATE [UNIQUE] INDEX name ON owner.t (c ASC, d DESC)``."""
    columns = ", ".join(
        f"{dialect.quote_identifier(c.column.name)} {'ASC' if c.ascending else 'DESC'}"
        for c in index.columns
    )
    unique = "UNIQUE " if index.unique else ""
    return (
        f"CREATE {unique}INDEX {dialect.quote_identifier(index.name)} "
        f"ON {dialect.table_name(index.table)} ({columns})"
    )
