"""Pending edits against schema objects and the statements they produce.

A ``NestedCommand`` names one object, the kind of change and (for alters)
the properties that changed.  Objects are dispatched on an ``ObjectKind``
tag rather than through per-type editor classes.

Usage:
    from db_catalog.ddl.commands import alter_command, rename_command

    commands = [
        alter_command(column, type_name="BIGINT", required=True),
        rename_command(column, "customer_ref"),
    ]
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from db_catalog.schema.models import Column, ForeignKey, Index, Table, UniqueKey

SchemaObject = Table | Column | UniqueKey | ForeignKey | Index


class CommandKind(str, Enum):
    CREATE = "create"
    ALTER = "alter"
    RENAME = "rename"
    DELETE = "delete"


class ObjectKind(str, Enum):
    """Object kinds in the order their DDL is emitted."""

    TABLE = "table"
    COLUMN = "column"
    UNIQUE_KEY = "unique_key"
    FOREIGN_KEY = "foreign_key"
    INDEX = "index"


_OBJECT_KINDS: dict[type, ObjectKind] = {
    Table: ObjectKind.TABLE,
    Column: ObjectKind.COLUMN,
    UniqueKey: ObjectKind.UNIQUE_KEY,
    ForeignKey: ObjectKind.FOREIGN_KEY,
    Index: ObjectKind.INDEX,
}


def object_kind(obj: SchemaObject) -> ObjectKind:
    kind = _OBJECT_KINDS.get(type(obj))
    if kind is None:
        raise TypeError(f"Not a schema object: {obj!r}")
    return kind


@dataclass
class NestedCommand:
    """One pending change against a schema object.

    Attributes:
        kind: Create, alter, rename or delete.
        target: The object being changed.
        properties: Changed property name -> value (alters only).
        old_name: Name before a rename.
        new_name: Name after a rename.
        cascade: Drop dependent objects too (table deletes only).
    """

    kind: CommandKind
    target: SchemaObject
    properties: dict[str, Any] = field(default_factory=dict)
    old_name: str | None = None
    new_name: str | None = None
    cascade: bool = False

    @property
    def object_kind(self) -> ObjectKind:
        return object_kind(self.target)

    @property
    def table(self) -> Table:
        """Table owning the target (the target itself for tables)."""
        if isinstance(self.target, Table):
            return self.target
        return self.target.table

    def has_property(self, name: str) -> bool:
        return name in self.properties


@dataclass(frozen=True)
class PersistAction:
    """A titled DDL statement ready for an executor."""

    title: str
    sql: str


def create_command(target: SchemaObject) -> NestedCommand:
    return NestedCommand(CommandKind.CREATE, target)


def alter_command(target: SchemaObject, **changes: Any) -> NestedCommand:
    """Apply *changes* to *target* and record them as an alter command.

    Example:
        >>> cmd = alter_command(table, comment="Customer orders")
        >>> cmd.has_property("comment")
        True
    """
    for name, value in changes.items():
        if not hasattr(target, name):
            raise AttributeError(f"{type(target).__name__} has no property '{name}'")
        setattr(target, name, value)
    return NestedCommand(CommandKind.ALTER, target, properties=dict(changes))


def rename_command(target: SchemaObject, new_name: str) -> NestedCommand:
    """Record a rename; the object keeps its current name until applied."""
    return NestedCommand(
        CommandKind.RENAME, target, old_name=target.name, new_name=new_name
    )


def delete_command(target: SchemaObject, cascade: bool = False) -> NestedCommand:
    return NestedCommand(CommandKind.DELETE, target, cascade=cascade)
