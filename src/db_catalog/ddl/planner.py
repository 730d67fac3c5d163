"""ALTER/RENAME/DROP statements for existing tables and their children.

Changed properties are compared against a fixed checklist so statements
always come out in the same order:

- table: owner -> comment -> collation
- column: MODIFY COLUMN -> AUTO_INCREMENT restart (initial value changed)
- rename: always a separate statement from the pre-rename name to the new one

Usage:
    from db_catalog.ddl.planner import AlterPlanner

    planner = AlterPlanner()
    for action in planner.actions_for(alter_command(column, required=True)):
        print(action.sql)
"""

import logging

from db_catalog.config.models import Capabilities
from db_catalog.ddl.columns import add_column_declaration, check_auto_increment
from db_catalog.ddl.commands import CommandKind, NestedCommand, ObjectKind, PersistAction
from db_catalog.ddl.constraints import (
    foreign_key_declaration,
    index_statement,
    unique_key_declaration,
)
from db_catalog.ddl.dialect import SQLDialect
from db_catalog.exceptions import DDLValidationError
from db_catalog.schema.models import ConstraintType, Table

logger = logging.getLogger(__name__)


class AlterPlanner:
    """Plans statements for one command against an existing object.

    Args:
        dialect: Quoting rules.
        capabilities: Driver flags for DROP/ADD COLUMN syntax and for
            skipping foreign keys or indexes.
    """

    def __init__(
        self,
        dialect: SQLDialect | None = None,
        capabilities: Capabilities | None = None,
    ):
        self.dialect = dialect or SQLDialect()
        self.capabilities = capabilities or Capabilities()

    def actions_for(self, command: NestedCommand) -> list[PersistAction]:
        """Dispatch *command* to the planner for its object and change kind.

        Raises:
            DDLValidationError: If the object can't be rendered as it stands.
        """
        handlers = {
            (ObjectKind.TABLE, CommandKind.ALTER): self.table_modify_actions,
            (ObjectKind.TABLE, CommandKind.RENAME): self.table_rename_actions,
            (ObjectKind.TABLE, CommandKind.DELETE): self.table_drop_actions,
            (ObjectKind.COLUMN, CommandKind.CREATE): self.column_add_actions,
            (ObjectKind.COLUMN, CommandKind.ALTER): self.column_modify_actions,
            (ObjectKind.COLUMN, CommandKind.RENAME): self.column_rename_actions,
            (ObjectKind.COLUMN, CommandKind.DELETE): self.column_drop_actions,
            (ObjectKind.UNIQUE_KEY, CommandKind.CREATE): self.unique_key_add_actions,
            (ObjectKind.UNIQUE_KEY, CommandKind.DELETE): self.unique_key_drop_actions,
            (ObjectKind.FOREIGN_KEY, CommandKind.CREATE): self.foreign_key_add_actions,
            (ObjectKind.FOREIGN_KEY, CommandKind.DELETE): self.foreign_key_drop_actions,
            (ObjectKind.INDEX, CommandKind.CREATE): self.index_create_actions,
            (ObjectKind.INDEX, CommandKind.DELETE): self.index_drop_actions,
        }
        handler = handlers.get((command.object_kind, command.kind))
        if handler is None:
            raise DDLValidationError(
                f"Can't {command.kind.value} a {command.object_kind.value.replace('_', ' ')} "
                f"of an existing table",
                object_name=command.target.name,
            )
        return handler(command)

    # ------------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------------

    def _old_table_name(self, table: Table) -> str:
        return self.dialect.table_name(table, owner=table.old_owner)

    def table_modify_actions(self, command: NestedCommand) -> list[PersistAction]:
        table: Table = command.target
        name = self._old_table_name(table)
        actions = []
        if command.has_property("owner"):
            actions.append(
                PersistAction("Change Owner", f"ALTER TABLE {name} OWNER TO {table.owner}")
            )
        if command.has_property("comment"):
            actions.append(
                PersistAction(
                    "Change Comment",
                    f"ALTER TABLE {name} COMMENT = {self.dialect.quote_string(table.comment)}",
                )
            )
        if command.has_property("collation") and table.collation:
            actions.append(
                PersistAction("Change Collation", f"ALTER TABLE {name} COLLATE {table.collation}")
            )
        return actions

    def table_rename_actions(self, command: NestedCommand) -> list[PersistAction]:
        table: Table = command.target
        old = self.dialect.table_name(table, name=command.old_name, owner=table.old_owner)
        new = self.dialect.table_name(table, name=command.new_name, owner=table.old_owner)
        return [PersistAction("Rename table", f"RENAME TABLE {old} TO {new}")]

    def table_drop_actions(self, command: NestedCommand) -> list[PersistAction]:
        table: Table = command.target
        kind = "VIEW" if table.is_view else "TABLE"
        cascade = " CASCADE" if command.cascade and not table.is_view else ""
        return [
            PersistAction(
                f"Drop {kind.lower()}",
                f"DROP {kind} {self.dialect.table_name(table)}{cascade}",
            )
        ]

    # ------------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------------

    def column_add_actions(self, command: NestedCommand) -> list[PersistAction]:
        column = command.target
        keyword = "ADD COLUMN" if self.capabilities.alter_table_add_column else "ADD"
        decl = add_column_declaration(column, self.dialect, command)
        return [
            PersistAction(
                "Add column",
                f"ALTER TABLE {self.dialect.table_name(column.table)} {keyword} {decl}",
            )
        ]

    def column_modify_actions(self, command: NestedCommand) -> list[PersistAction]:
        column = command.target
        check_auto_increment(column)
        table_name = self.dialect.table_name(column.table)
        actions = [
            PersistAction(
                "Modify column",
                f"ALTER TABLE {table_name} MODIFY COLUMN "
                f"{add_column_declaration(column, self.dialect, command)}",
            )
        ]
        if column.auto_increment and command.has_property("initial_value"):
            actions.append(
                PersistAction(
                    "Alter Auto Increment",
                    f"ALTER TABLE {table_name} AUTO_INCREMENT = {column.initial_value}",
                )
            )
        return actions

    def column_rename_actions(self, command: NestedCommand) -> list[PersistAction]:
        column = command.target
        return [
            PersistAction(
                "Rename column",
                f"ALTER TABLE {self.dialect.table_name(column.table)} RENAME COLUMN "
                f"{self.dialect.quote_identifier(command.old_name)} AS "
                f"{self.dialect.quote_identifier(command.new_name)}",
            )
        ]

    def column_drop_actions(self, command: NestedCommand) -> list[PersistAction]:
        column = command.target
        name = self.dialect.quote_identifier(column.name)
        if self.capabilities.drop_column_brackets:
            name = f"({name})"
        keyword = "DROP" if self.capabilities.drop_column_short else "DROP COLUMN"
        return [
            PersistAction(
                "Drop column",
                f"ALTER TABLE {self.dialect.table_name(column.table)} {keyword} {name}",
            )
        ]

    # ------------------------------------------------------------------------
    # Constraints and indexes
    # ------------------------------------------------------------------------

    def unique_key_add_actions(self, command: NestedCommand) -> list[PersistAction]:
        key = command.target
        return [
            PersistAction(
                "Add constraint",
                f"ALTER TABLE {self.dialect.table_name(key.table)} "
                f"ADD {unique_key_declaration(key, self.dialect)}",
            )
        ]

    def unique_key_drop_actions(self, command: NestedCommand) -> list[PersistAction]:
        key = command.target
        if key.constraint_type == ConstraintType.PRIMARY_KEY:
            clause = "DROP PRIMARY KEY"
        else:
            clause = f"DROP CONSTRAINT {self.dialect.quote_identifier(key.name)}"
        return [
            PersistAction(
                "Drop constraint",
                f"ALTER TABLE {self.dialect.table_name(key.table)} {clause}",
            )
        ]

    def foreign_key_add_actions(self, command: NestedCommand) -> list[PersistAction]:
        foreign_key = command.target
        if not self.capabilities.supports_referential_integrity:
            logger.debug(f"Foreign key {foreign_key.name} skipped: no referential integrity")
            return []
        return [
            PersistAction(
                "Add foreign key",
                f"ALTER TABLE {self.dialect.table_name(foreign_key.table)} "
                f"ADD {foreign_key_declaration(foreign_key, self.dialect)}",
            )
        ]

    def foreign_key_drop_actions(self, command: NestedCommand) -> list[PersistAction]:
        foreign_key = command.target
        if not self.capabilities.supports_referential_integrity:
            return []
        return [
            PersistAction(
                "Drop foreign key",
                f"ALTER TABLE {self.dialect.table_name(foreign_key.table)} "
                f"DROP FOREIGN KEY {self.dialect.quote_identifier(foreign_key.name)}",
            )
        ]

    def index_create_actions(self, command: NestedCommand) -> list[PersistAction]:
        if not self.capabilities.supports_indexes:
            logger.debug(f"Index {command.target.name} skipped: indexes not supported")
            return []
        return [PersistAction("Create index", index_statement(command.target, self.dialect))]

    def index_drop_actions(self, command: NestedCommand) -> list[PersistAction]:
        index = command.target
        if not self.capabilities.supports_indexes:
            return []
        return [
            PersistAction(
                "Drop index",
                f"DROP INDEX {self.dialect.quote_identifier(index.name)} "
                f"ON {self.dialect.table_name(index.table)}",
            )
        ]
