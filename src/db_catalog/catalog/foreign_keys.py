"""Foreign-key topology reconciliation.

Catalog drivers return one row per foreign-key column, unordered and
sometimes incomplete.  ``ForeignKeyReconciler`` folds those rows into
``ForeignKey`` objects on the owning table, resolving each referenced unique
key by name, then by column membership, and finally synthesizing a
primary key on the referenced table when neither lookup succeeds.

Everything fabricated along the way is reported in the returned
``ForeignKeyReconciliation`` instead of only being logged.

Usage:
    from db_catalog.catalog.foreign_keys import ForeignKeyReconciler

    reconciler = ForeignKeyReconciler(catalog)
    result = reconciler.reconcile(orders, source.fetch_foreign_keys(None, "public", "orders"))
    for fk in result.foreign_keys:
        print(fk.name, fk.column_names, "->", fk.referenced_table.name)
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from db_catalog.catalog.codes import deferability_from_code, modify_rule_from_code
from db_catalog.catalog.rows import ForeignKeyRow, decode_rows
from db_catalog.catalog.source import TableResolver
from db_catalog.schema.models import (
    Column,
    ConstraintType,
    ForeignKey,
    Table,
    UniqueKey,
    unique_name,
)

logger = logging.getLogger(__name__)


class KeyResolution(str, Enum):
    """How a foreign key's referenced unique key was found."""

    BY_NAME = "by_name"
    BY_COLUMN = "by_column"
    SYNTHESIZED = "synthesized"


@dataclass
class SkippedRow:
    """A catalog row dropped because it referenced something unknown."""

    row: ForeignKeyRow
    reason: str


@dataclass
class ForeignKeyReconciliation:
    """Outcome of reconciling the foreign-key rows of one table.

    Attributes:
        foreign_keys: Keys touched by the rows, in discovery order, each once.
        synthesized_keys: Fallback primary keys registered on referenced tables.
        synthesized_foreign_keys: Keys whose name was fabricated because the
            catalog supplied none.
        key_resolutions: Foreign key name -> how its target key was resolved.
        skipped: Rows dropped with the reason.
    """

    foreign_keys: list[ForeignKey] = field(default_factory=list)
    synthesized_keys: list[UniqueKey] = field(default_factory=list)
    synthesized_foreign_keys: list[ForeignKey] = field(default_factory=list)
    key_resolutions: dict[str, KeyResolution] = field(default_factory=dict)
    skipped: list[SkippedRow] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        messages = [s.reason for s in self.skipped]
        for key in self.synthesized_keys:
            messages.append(
                f"Synthesized primary key {key.name} on {key.table.full_name} "
                f"({', '.join(key.column_names)})"
            )
        return messages

    @property
    def has_warnings(self) -> bool:
        return bool(self.skipped or self.synthesized_keys)

    def _collect(self, foreign_key: ForeignKey) -> None:
        if not any(fk is foreign_key for fk in self.foreign_keys):
            self.foreign_keys.append(foreign_key)


class ForeignKeyReconciler:
    """Builds foreign keys for a table from flat per-column catalog rows.

    Args:
        resolver: Looks up referenced tables by (catalog, schema, name).
    """

    def __init__(self, resolver: TableResolver):
        self._resolver = resolver

    def reconcile(
        self, table: Table, rows: Iterable[Mapping[str, Any]]
    ) -> ForeignKeyReconciliation:
        """Fold the foreign-key rows owned by *table* into ForeignKey objects.

        The rows are fully decoded into memory before any referenced table
        is looked up.  Created keys are registered on *table*; existing keys
        of the same name are reused and extended.

        Args:
            table: Table owning the foreign keys (the referencing side).
            rows: Raw catalog rows in ``ForeignKeyRow`` shape, any order.

        Returns:
            ForeignKeyReconciliation with keys, fallbacks and skipped rows.
        """
        infos = decode_rows(rows, ForeignKeyRow)
        # Keys keep the order they were first seen in; within a key, rows
        # are applied in sequence order whatever order the driver returned
        first_seen: dict[str, int] = {}
        for info in infos:
            first_seen.setdefault(info.fk_name or "", len(first_seen))
        infos.sort(key=lambda info: (first_seen[info.fk_name or ""], info.key_seq or 0))

        result = ForeignKeyReconciliation()
        for info in infos:
            self._apply(table, info, result)
        return result

    # ------------------------------------------------------------------------

    def _apply(
        self, table: Table, info: ForeignKeyRow, result: ForeignKeyReconciliation
    ) -> None:
        sequence = info.key_seq if info.key_seq is not None else 0

        if not info.pktable_name:
            self._skip(result, info, f"Foreign key row of {table.full_name} has no referenced table")
            return
        ref_table = self._find_referenced_table(table, info)
        if ref_table is None:
            self._skip(result, info, f"Can't find referenced table {info.pktable_name}")
            return
        ref_column = ref_table.get_column(info.pkcolumn_name)
        if ref_column is None:
            self._skip(
                result, info,
                f"Can't find referenced column {info.pkcolumn_name} in {ref_table.full_name}",
            )
            return
        fk_column = table.get_column(info.fkcolumn_name)
        if fk_column is None:
            self._skip(
                result, info,
                f"Can't find column {info.fkcolumn_name} in {table.full_name}",
            )
            return

        fk_name = info.fk_name
        synthesized_name = not fk_name
        if synthesized_name:
            fk_name = f"{table.name.upper()}_FK{sequence}"

        foreign_key = table.get_foreign_key(fk_name)
        if foreign_key is None:
            referenced_key = self._resolve_key(ref_table, ref_column, info, sequence, fk_name, result)
            foreign_key = ForeignKey(
                table=table,
                name=fk_name,
                referenced_key=referenced_key,
                delete_rule=modify_rule_from_code(info.delete_rule),
                update_rule=modify_rule_from_code(info.update_rule),
                deferability=deferability_from_code(info.deferrability),
                synthesized_name=synthesized_name,
            )
            table.add_foreign_key(foreign_key)
            if synthesized_name:
                result.synthesized_foreign_keys.append(foreign_key)
        elif foreign_key.referenced_key is None:
            foreign_key.referenced_key = self._resolve_key(
                ref_table, ref_column, info, sequence, fk_name, result
            )
        else:
            self._extend_key(foreign_key.referenced_key, ref_column, sequence)

        foreign_key.add_column(fk_column, ref_column, sequence)
        result._collect(foreign_key)

    def _find_referenced_table(self, table: Table, info: ForeignKeyRow) -> Table | None:
        container = table.container
        catalog = info.pktable_catalog or container.catalog
        schema = info.pktable_schema or container.name
        ref_table = self._resolver.find_table(catalog, schema, info.pktable_name)
        if ref_table is None and schema.lower() == container.name.lower():
            ref_table = container.get_table(info.pktable_name)
        return ref_table

    def _resolve_key(
        self,
        ref_table: Table,
        ref_column: Column,
        info: ForeignKeyRow,
        sequence: int,
        fk_name: str,
        result: ForeignKeyReconciliation,
    ) -> UniqueKey:
        """Find the unique key a foreign key points at, synthesizing one if needed."""
        if info.pk_name:
            key = ref_table.unique_keys.get(info.pk_name)
            if key is None:
                # Catalogs that fold identifier case report the key name in
                # a different case than the one it was registered under
                key = ref_table.get_constraint(info.pk_name)
            if key is not None:
                result.key_resolutions[fk_name] = KeyResolution.BY_NAME
                self._extend_key(key, ref_column, sequence)
                return key
            logger.debug(
                f"Unique key '{info.pk_name}' not found in table "
                f"{ref_table.full_name} for FK {fk_name}"
            )

        key = ref_table.find_unique_key_for_column(ref_column)
        if key is not None:
            result.key_resolutions[fk_name] = KeyResolution.BY_COLUMN
            return key

        logger.warning(
            f"Can't find unique key for table {ref_table.full_name} "
            f"column {ref_column.name}"
        )
        key_name = info.pk_name or unique_name(
            f"{ref_table.name.upper()}_PK", set(ref_table.unique_keys)
        )
        key = UniqueKey(
            table=ref_table,
            name=key_name,
            constraint_type=ConstraintType.PRIMARY_KEY,
            persisted=False,
            synthesized=True,
        )
        key.add_column(ref_column, sequence)
        ref_table.add_unique_key(key)
        result.synthesized_keys.append(key)
        result.key_resolutions[fk_name] = KeyResolution.SYNTHESIZED
        return key

    @staticmethod
    def _extend_key(key: UniqueKey, column: Column, sequence: int) -> None:
        # Only fabricated keys grow; catalog keys are already complete
        if key.synthesized and not key.has_column(column):
            key.add_column(column, sequence)

    @staticmethod
    def _skip(result: ForeignKeyReconciliation, info: ForeignKeyRow, reason: str) -> None:
        logger.warning(reason)
        result.skipped.append(SkippedRow(row=info, reason=reason))
