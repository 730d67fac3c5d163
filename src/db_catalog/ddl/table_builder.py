"""CREATE TABLE statement assembly.

The builder walks the pending nested commands of a new table in order.
Columns and constraints become inline declarations inside the CREATE
statement; indexes become standalone statements run after it.  Trailing
table clauses (``DONT_REUSE_OID``, ``COMMENT``, ``COLLATE``) are added only
for new tables or when the matching property changed.

Usage:
    from db_catalog.ddl.table_builder import TableDDLBuilder

    builder = TableDDLBuilder()
    actions = builder.build_create(table, commands)
    print(actions[0].sql)
"""

import logging
from collections.abc import Sequence

from db_catalog.config.models import Capabilities
from db_catalog.ddl.columns import column_declaration
from db_catalog.ddl.commands import (
    CommandKind,
    NestedCommand,
    ObjectKind,
    PersistAction,
)
from db_catalog.ddl.constraints import (
    foreign_key_declaration,
    index_statement,
    unique_key_declaration,
)
from db_catalog.ddl.dialect import SQLDialect
from db_catalog.schema.models import Index, Table, UniqueKey

logger = logging.getLogger(__name__)


def append_declaration(
    ddl: str, declaration: str, first: bool, dialect: SQLDialect
) -> str:
    """Append one nested declaration to a CREATE TABLE body.

    Adjacent declarations are separated by exactly one comma.  When the
    previous declaration ends in a single-line comment, the comma goes in
    front of the comment (and the whitespace before it) so the comment does
    not swallow it.

    Example:
        >>> append_declaration("CREATE TABLE t (\\n\\tid INTEGER -- key", "name VARCHAR", False, SQLDialect())
        'CREATE TABLE t (\\n\\tid INTEGER, -- key\\n\\tname VARCHAR'
    """
    if not first:
        separator = dialect.line_separator
        last_line = ddl.rfind(separator)
        line_start = 0 if last_line == -1 else last_line + len(separator)
        comment_pos = _comment_start(ddl, line_start, dialect.single_line_comment)
        if comment_pos == -1:
            ddl += ","
        else:
            while comment_pos > line_start and ddl[comment_pos - 1].isspace():
                comment_pos -= 1
            ddl = ddl[:comment_pos] + "," + ddl[comment_pos:]
        ddl += separator
    return ddl + "\t" + declaration


def _comment_start(ddl: str, start: int, marker: str) -> int:
    """Position of the first *marker* at or after *start* outside a string literal.

    A doubled quote inside a literal toggles the state twice, so escaped
    quotes need no special case.
    """
    in_literal = False
    for pos in range(start, len(ddl)):
        if ddl[pos] == "'":
            in_literal = not in_literal
        elif not in_literal and ddl.startswith(marker, pos):
            return pos
    return -1


class TableDDLBuilder:
    """Builds CREATE TABLE scripts for new tables.

    Args:
        dialect: Quoting and line-separator rules.
        capabilities: Driver flags gating foreign keys, indexes and
            ``DONT_REUSE_OID``.
    """

    def __init__(
        self,
        dialect: SQLDialect | None = None,
        capabilities: Capabilities | None = None,
    ):
        self.dialect = dialect or SQLDialect()
        self.capabilities = capabilities or Capabilities()

    def excluded_from_ddl(
        self, command: NestedCommand, commands: Sequence[NestedCommand]
    ) -> bool:
        """True for an index named like a unique constraint in the same batch.

        A unique constraint already implies its backing index.
        """
        index = command.target
        if not isinstance(index, Index):
            return False
        for other in commands:
            key = other.target
            if (
                isinstance(key, UniqueKey)
                and key is not index
                and key.constraint_type.is_unique
                and key.name == index.name
            ):
                return True
        return False

    def nested_declaration(
        self, command: NestedCommand, renames: dict[int, str] | None = None
    ) -> str:
        """Inline declaration text for *command*; empty if it can't be inline."""
        target = command.target
        kind = command.object_kind
        if kind == ObjectKind.COLUMN:
            name = (renames or {}).get(id(target))
            return column_declaration(target, self.dialect, name=name)
        if kind == ObjectKind.UNIQUE_KEY:
            return unique_key_declaration(target, self.dialect)
        if kind == ObjectKind.FOREIGN_KEY:
            if not self.capabilities.supports_referential_integrity:
                logger.debug(f"Foreign key {target.name} skipped: no referential integrity")
                return ""
            return foreign_key_declaration(target, self.dialect)
        return ""

    def standalone_actions(self, command: NestedCommand) -> list[PersistAction]:
        """Statements for a nested command that has no inline form."""
        if command.object_kind == ObjectKind.INDEX:
            if not self.capabilities.supports_indexes:
                logger.debug(f"Index {command.target.name} skipped: indexes not supported")
                return []
            return [PersistAction("Create index", index_statement(command.target, self.dialect))]
        return []

    def build_create(
        self,
        table: Table,
        commands: Sequence[NestedCommand],
        table_command: NestedCommand | None = None,
        name: str | None = None,
        script_properties: bool = False,
    ) -> list[PersistAction]:
        """Build the CREATE statement and any standalone statements.

        Args:
            table: Table being created.
            commands: Ordered nested commands; commands on the table itself,
                deletes and renames are not declarations.  Renames change the
                declared name of their column.
            table_command: The table's own command (changed properties).
            name: Table name to create instead of the current one.
            script_properties: Emit every trailing clause, as for a new table.

        Returns:
            The CREATE action first, then standalone actions in order.

        Raises:
            DDLValidationError: If a nested declaration can't be rendered.
        """
        dialect = self.dialect
        renames = {
            id(c.target): c.new_name
            for c in commands
            if c.kind == CommandKind.RENAME and c.target is not table
        }
        nested = [
            c for c in commands
            if c.target is not table and c.kind in (CommandKind.CREATE, CommandKind.ALTER)
        ]

        table_type = "VIEW" if table.is_view else "TABLE"
        ddl = f"CREATE {table_type} {dialect.table_name(table, name=name)} ({dialect.line_separator}"
        standalone: list[PersistAction] = []
        has_declarations = False
        seen: set[int] = set()
        for command in nested:
            if id(command.target) in seen:
                continue
            seen.add(id(command.target))
            if self.excluded_from_ddl(command, nested):
                continue
            declaration = self.nested_declaration(command, renames)
            if declaration:
                ddl = append_declaration(ddl, declaration, not has_declarations, dialect)
                has_declarations = True
            else:
                standalone.extend(self.standalone_actions(command))

        ddl += f"{dialect.line_separator})"
        ddl += self._trailing_clauses(table, table_command, script_properties)
        return [PersistAction("Create new table", ddl)] + standalone

    def _trailing_clauses(
        self, table: Table, table_command: NestedCommand | None, script_properties: bool
    ) -> str:
        def wanted(prop: str) -> bool:
            return (
                script_properties
                or not table.persisted
                or (table_command is not None and table_command.has_property(prop))
            )

        clauses = ""
        if not table.reuse_oid and self.capabilities.supports_reuse_oid and wanted("reuse_oid"):
            clauses += " DONT_REUSE_OID"
        if table.comment is not None and wanted("comment"):
            clauses += f"{self.dialect.line_separator}COMMENT = {self.dialect.quote_string(table.comment)}"
        if table.collation and wanted("collation"):
            clauses += f"{self.dialect.line_separator}COLLATE {table.collation}"
        return clauses
