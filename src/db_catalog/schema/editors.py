"""Factories for new, not-yet-persisted schema objects.

An editor layer (wizard, form, script) collects the choices and passes them
here as options.  Options are trusted apart from null checks; the objects
returned are registered on their owners and marked ``persisted=False`` so
the DDL generator scripts them as creations.

Example:
    >>> table = new_table(container)
    >>> table.name
    'new_table'
    >>> fk = configure_foreign_key(orders, ForeignKeyOptions(
    ...     referenced_key=customers.primary_key,
    ...     columns=[(orders.get_column("customer_id"), customers.get_column("id"))],
    ...     delete_rule=ModifyRule.CASCADE,
    ... ))
"""

import re
from dataclasses import dataclass, field

from db_catalog.schema.models import (
    Column,
    Deferability,
    ForeignKey,
    Index,
    ModifyRule,
    SchemaContainer,
    Table,
    TableType,
    UniqueKey,
    unique_name,
)


@dataclass
class ForeignKeyOptions:
    """Choices for a new foreign key.

    Attributes:
        referenced_key: Unique key on the referenced table.
        columns: (own column, referenced column) pairs, in key order.
        delete_rule: ON DELETE action.
        update_rule: ON UPDATE action.
        name: Explicit constraint name; generated when omitted.
    """

    referenced_key: UniqueKey | None
    columns: list[tuple[Column, Column]] = field(default_factory=list)
    delete_rule: ModifyRule = ModifyRule.NO_ACTION
    update_rule: ModifyRule = ModifyRule.NO_ACTION
    name: str | None = None


@dataclass
class IndexOptions:
    """Choices for a new index: (column, descending) pairs plus flags."""

    columns: list[tuple[Column, bool]] = field(default_factory=list)
    unique: bool = False
    index_type: str = "OTHER"


def escape_identifier(name: str) -> str:
    """Replace characters that can't appear in a plain identifier with ``_``."""
    return re.sub(r"[^\w$]", "_", name)


def new_table(container: SchemaContainer, is_view: bool = False) -> Table:
    """Create and register a new table (or view) with a free default name."""
    base = "new_view" if is_view else "new_table"
    table = Table(
        container=container,
        name=unique_name(base, set(container.tables)),
        table_type=TableType.VIEW if is_view else TableType.TABLE,
        reuse_oid=True,
        persisted=False,
    )
    container.add_table(table)
    return table


def new_column(table: Table) -> Column:
    """Create and register a nullable INTEGER column named ``columnN``."""
    taken = {name.lower() for name in table.columns}
    counter = len(table.columns) + 1
    while f"column{counter}" in taken:
        counter += 1
    column = Column(
        table=table,
        name=f"column{counter}",
        type_name="INTEGER",
        required=False,
        persisted=False,
    )
    table.add_column(column)
    return column


def configure_foreign_key(table: Table, options: ForeignKeyOptions) -> ForeignKey:
    """Build a new foreign key on *table* from editor options.

    Sequence numbers start at 1 in the given column order.  Deferability is
    always NOT DEFERRABLE.

    Raises:
        ValueError: If no referenced key or no columns were chosen.
    """
    if options is None or options.referenced_key is None:
        raise ValueError("Foreign key needs a referenced unique key")
    if not options.columns:
        raise ValueError("Foreign key needs at least one column")

    ref_table = options.referenced_key.table
    name = options.name or unique_name(
        f"{table.name}_{ref_table.name}_FK", set(table.foreign_keys)
    )
    foreign_key = ForeignKey(
        table=table,
        name=name,
        referenced_key=options.referenced_key,
        delete_rule=options.delete_rule,
        update_rule=options.update_rule,
        deferability=Deferability.NOT_DEFERRABLE,
        persisted=False,
    )
    for sequence, (own, referenced) in enumerate(options.columns, start=1):
        foreign_key.add_column(own, referenced, sequence)
    table.add_foreign_key(foreign_key)
    return foreign_key


def configure_index(table: Table, options: IndexOptions) -> Index:
    """Build a new index named ``<table>_<first column>_IDX``.

    Raises:
        ValueError: If no columns were chosen.
    """
    if options is None or not options.columns:
        raise ValueError("Index needs at least one column")

    first_column = options.columns[0][0]
    name = f"{escape_identifier(table.name)}_{escape_identifier(first_column.name)}_IDX"
    index = Index(
        table=table,
        name=name,
        unique=options.unique,
        index_type=options.index_type,
        persisted=False,
    )
    for position, (column, descending) in enumerate(options.columns, start=1):
        index.add_column(column, position, ascending=not descending)
    table.add_index(index)
    return index
