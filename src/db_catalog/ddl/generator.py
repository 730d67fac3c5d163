"""Turn a batch of pending commands into an ordered DDL plan.

Commands are grouped by owning table.  A new table becomes one CREATE
statement (plus its index statements); an existing table gets ALTER
statements in a fixed order:

1. table property changes (owner, comment, collation)
2. drops of foreign keys, indexes, unique keys, then columns
3. per object: create, alter, rename - columns, unique keys, foreign keys,
   then indexes
4. table rename

A ``DDLValidationError`` discards only the statements of the object that
raised it; it is reported as a ``DDLFailure`` and the rest of the plan is
kept.

Usage:
    from db_catalog.ddl import DDLGenerator, alter_command, rename_command

    plan = DDLGenerator().generate([
        alter_command(column, required=True),
        rename_command(column, "customer_ref"),
    ])
    print(plan.script())
    for failure in plan.failures:
        print(failure.object_name, failure.error)
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from db_catalog.config.models import Capabilities
from db_catalog.ddl.commands import (
    CommandKind,
    NestedCommand,
    ObjectKind,
    PersistAction,
    create_command,
)
from db_catalog.ddl.dialect import SQLDialect
from db_catalog.ddl.planner import AlterPlanner
from db_catalog.ddl.table_builder import TableDDLBuilder
from db_catalog.exceptions import DDLValidationError
from db_catalog.schema.models import Table

logger = logging.getLogger(__name__)

_DROP_ORDER = (ObjectKind.FOREIGN_KEY, ObjectKind.INDEX, ObjectKind.UNIQUE_KEY, ObjectKind.COLUMN)
_CHANGE_ORDER = (ObjectKind.COLUMN, ObjectKind.UNIQUE_KEY, ObjectKind.FOREIGN_KEY, ObjectKind.INDEX)
_KIND_RANK = {kind: rank for rank, kind in enumerate(_CHANGE_ORDER)}


@dataclass
class DDLFailure:
    """Statements for one object that could not be generated."""

    object_name: str
    error: DDLValidationError


@dataclass
class DDLPlan:
    """Ordered statements of a generation pass plus per-object failures."""

    actions: list[PersistAction] = field(default_factory=list)
    failures: list[DDLFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def statements(self) -> list[str]:
        return [action.sql for action in self.actions]

    def script(self, delimiter: str = ";") -> str:
        """All statements as one script, separated by blank lines."""
        return "\n\n".join(f"{action.sql}{delimiter}" for action in self.actions)


class DDLGenerator:
    """Generates DDL for pending commands.

    Args:
        dialect: Quoting and line-separator rules.
        capabilities: Driver flags gating optional clauses.
    """

    def __init__(
        self,
        dialect: SQLDialect | None = None,
        capabilities: Capabilities | None = None,
    ):
        self.dialect = dialect or SQLDialect()
        self.capabilities = capabilities or Capabilities()
        self.builder = TableDDLBuilder(self.dialect, self.capabilities)
        self.planner = AlterPlanner(self.dialect, self.capabilities)

    def generate(self, commands: Iterable[NestedCommand]) -> DDLPlan:
        """Plan statements for *commands*, grouped by owning table.

        Tables are processed in the order they first appear in *commands*.
        """
        groups: dict[int, tuple[Table, list[NestedCommand]]] = {}
        for command in commands:
            table = command.table
            groups.setdefault(id(table), (table, []))[1].append(command)

        plan = DDLPlan()
        for table, table_commands in groups.values():
            self._plan_table(table, table_commands, plan)

        logger.debug(
            f"Generated {len(plan.actions)} statement(s), {len(plan.failures)} failure(s)"
        )
        return plan

    def generate_table_ddl(self, table: Table) -> list[PersistAction]:
        """Script an already-loaded table as CREATE plus index statements.

        Keys synthesized during foreign-key reconciliation are left out
        because they don't exist in the database.
        """
        nested = self._nested_commands(table, [])
        return self.builder.build_create(table, nested, script_properties=True)

    # ------------------------------------------------------------------------

    def _plan_table(
        self, table: Table, commands: list[NestedCommand], plan: DDLPlan
    ) -> None:
        own = [c for c in commands if c.target is table]
        children = [c for c in commands if c.target is not table]

        delete = next((c for c in own if c.kind == CommandKind.DELETE), None)
        if delete is not None:
            if table.persisted:
                plan.actions.extend(self.planner.table_drop_actions(delete))
            return

        rename = next((c for c in reversed(own) if c.kind == CommandKind.RENAME), None)
        is_new = not table.persisted or any(c.kind == CommandKind.CREATE for c in own)
        if is_new:
            self._guarded(
                plan,
                table.full_name,
                lambda: self.builder.build_create(
                    table,
                    self._nested_commands(table, children),
                    name=rename.new_name if rename else None,
                ),
            )
            return

        for command in own:
            if command.kind == CommandKind.ALTER:
                self._guarded(plan, table.full_name, lambda c=command: self.planner.actions_for(c))

        by_object: dict[int, list[NestedCommand]] = {}
        for command in children:
            by_object.setdefault(id(command.target), []).append(command)

        for kind in _DROP_ORDER:
            for object_commands in by_object.values():
                target = object_commands[0].target
                delete = next((c for c in object_commands if c.kind == CommandKind.DELETE), None)
                if object_commands[0].object_kind != kind or delete is None:
                    continue
                if getattr(target, "persisted", True):
                    self._guarded(
                        plan, f"{table.full_name}.{target.name}",
                        lambda c=delete: self.planner.actions_for(c),
                    )

        for kind in _CHANGE_ORDER:
            for object_commands in by_object.values():
                if object_commands[0].object_kind != kind:
                    continue
                if any(c.kind == CommandKind.DELETE for c in object_commands):
                    continue
                target = object_commands[0].target
                self._guarded(
                    plan, f"{table.full_name}.{target.name}",
                    lambda cs=object_commands: self._object_actions(cs),
                )

        if rename is not None:
            self._guarded(plan, table.full_name, lambda: self.planner.actions_for(rename))

    def _object_actions(self, commands: list[NestedCommand]) -> list[PersistAction]:
        """Create, then alter, then rename statements for one child object."""
        target = commands[0].target
        creates = [c for c in commands if c.kind == CommandKind.CREATE]
        if not creates and not getattr(target, "persisted", True):
            creates = [create_command(target)]
        actions: list[PersistAction] = []
        if creates:
            # The create statement already reflects every altered property
            actions.extend(self.planner.actions_for(creates[0]))
        else:
            for command in commands:
                if command.kind == CommandKind.ALTER:
                    actions.extend(self.planner.actions_for(command))
        for command in commands:
            if command.kind == CommandKind.RENAME:
                actions.extend(self.planner.actions_for(command))
        return actions

    def _nested_commands(
        self, table: Table, commands: list[NestedCommand]
    ) -> list[NestedCommand]:
        """Commands for every child of a new table, in declaration order.

        Explicit commands keep their order within a kind; children without a
        command get an implicit create.  Deleted children are left out.
        """
        deleted = {id(c.target) for c in commands if c.kind == CommandKind.DELETE}
        nested = [c for c in commands if c.kind != CommandKind.DELETE]
        covered = {
            id(c.target) for c in nested if c.kind in (CommandKind.CREATE, CommandKind.ALTER)
        }

        children = [
            *table.ordered_columns(),
            *(k for k in table.unique_keys.values() if not k.synthesized),
            *table.foreign_keys.values(),
            *table.indexes.values(),
        ]
        for child in children:
            if id(child) not in covered and id(child) not in deleted:
                nested.append(create_command(child))

        nested.sort(key=lambda c: _KIND_RANK[c.object_kind])
        return nested

    @staticmethod
    def _guarded(
        plan: DDLPlan, object_name: str, produce: Callable[[], list[PersistAction]]
    ) -> None:
        """Add the statements from *produce*, or a failure if it can't render."""
        try:
            actions = produce()
        except DDLValidationError as e:
            logger.warning(f"Can't generate DDL for {object_name}: {e}")
            plan.failures.append(DDLFailure(object_name=object_name, error=e))
            return
        plan.actions.extend(actions)


def generate_table_ddl(
    table: Table,
    dialect: SQLDialect | None = None,
    capabilities: Capabilities | None = None,
) -> list[PersistAction]:
    """Script *table* as a CREATE statement plus its index statements."""
    return DDLGenerator(dialect, capabilities).generate_table_ddl(table)
