"""Identifier and literal quoting for generated DDL."""

import re

from db_catalog.config.models import DialectSettings
from db_catalog.schema.models import Table

_SIMPLE_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$#]*$")

RESERVED_WORDS = frozenset(
    {
        "ALL", "ALTER", "AND", "AS", "ATTRIBUTE", "BY", "CASE", "CHECK",
        "CLASS", "COLUMN", "COMMENT", "CONSTRAINT", "CREATE", "DATE",
        "DEFAULT", "DELETE", "DISTINCT", "DROP", "ELSE", "END", "FOREIGN",
        "FROM", "GROUP", "IN", "INDEX", "INSERT", "INTO", "IS", "JOIN", "KEY",
        "LIMIT", "NOT", "NULL", "OBJECT", "ON", "OR", "ORDER", "PRIMARY",
        "REFERENCES", "SELECT", "SHARED", "TABLE", "THEN", "TIME",
        "TIMESTAMP", "TO", "TRIGGER", "UNION", "UNIQUE", "UPDATE", "USER",
        "VALUES", "VIEW", "WHEN", "WHERE",
    }
)


class SQLDialect:
    """Renders names and literals according to ``DialectSettings``.

    Identifiers are quoted only when they are not plain words or collide
    with a reserved word.
    """

    def __init__(self, settings: DialectSettings | None = None):
        self.settings = settings or DialectSettings()

    @property
    def line_separator(self) -> str:
        return self.settings.line_separator

    @property
    def single_line_comment(self) -> str:
        return self.settings.single_line_comment

    def quote_identifier(self, name: str) -> str:
        if _SIMPLE_IDENTIFIER.match(name) and name.upper() not in RESERVED_WORDS:
            return name
        quote = self.settings.identifier_quote
        return f"{quote}{name.replace(quote, quote * 2)}{quote}"

    def quote_string(self, value: str | None) -> str:
        return "'" + (value or "").replace("'", "''") + "'"

    def table_name(
        self, table: Table, name: str | None = None, owner: str | None = None
    ) -> str:
        """``owner.name`` for *table*, with optional overrides for either part."""
        qualifier = owner if owner is not None else table.owner
        quoted = self.quote_identifier(name or table.name)
        return f"{qualifier}.{quoted}" if qualifier else quoted
