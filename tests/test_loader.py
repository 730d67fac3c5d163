"""Tests for the two-phase schema loader."""

import pytest

from db_catalog.catalog.loader import LoadStatus, SchemaLoader
from db_catalog.catalog.source import InMemorySource
from db_catalog.config.models import Capabilities
from db_catalog.exceptions import CatalogError, OperationCancelledError
from db_catalog.schema.models import (
    ConstraintType,
    DatabaseCatalog,
    SchemaContainer,
    TableType,
    TriggerActionType,
    TriggerEvent,
    TriggerTime,
)


def _tables(*names, schema="public", table_type="TABLE"):
    return [
        {"TABLE_SCHEM": schema, "TABLE_NAME": name, "TABLE_TYPE": table_type, "OWNER": "dba"}
        for name in names
    ]


def _col(name, type_name="INTEGER", position=1, nullable=1, size=None, digits=None, **extra):
    row = {
        "COLUMN_NAME": name,
        "TYPE_NAME": type_name,
        "ORDINAL_POSITION": position,
        "NULLABLE": nullable,
        "COLUMN_SIZE": size,
        "DECIMAL_DIGITS": digits,
    }
    row.update(extra)
    return row


@pytest.fixture
def shop_rows() -> dict:
    """Rows for orders -> customers, with orders listed first."""
    return {
        "tables": _tables("orders", "customers"),
        "columns": {
            "customers": [
                _col("id", position=1, nullable=0),
                _col("email", "VARCHAR", position=2, size=100, COLLATION="utf8_bin"),
            ],
            "orders": [
                _col("id", position=1, nullable=0),
                _col("customer_id", position=2),
                _col("total", "NUMERIC", position=3, size=10, digits=2),
            ],
        },
        "unique_keys": {
            "customers": [
                {"COLUMN_NAME": "id", "KEY_SEQ": 1, "PK_NAME": "pk_customers",
                 "CONSTRAINT_TYPE": "PRIMARY KEY"},
            ],
        },
        "foreign_keys": {
            "orders": [
                {"PKTABLE_NAME": "customers", "PKCOLUMN_NAME": "id", "FKTABLE_NAME": "orders",
                 "FKCOLUMN_NAME": "customer_id", "KEY_SEQ": 1, "FK_NAME": "fk_orders_customer",
                 "PK_NAME": "pk_customers", "DELETE_RULE": 0, "UPDATE_RULE": 3,
                 "DEFERRABILITY": 7},
            ],
        },
    }


def _by_name(results):
    return {r.name: r for r in results}


class TestLoadContainer:
    """Loading a whole schema."""

    def test_builds_tables_and_columns(self, shop_rows) -> None:
        """Tables, columns and column attributes come from their rows."""
        loader = SchemaLoader(InMemorySource(**shop_rows))

        results = _by_name(loader.load_container(None, "public"))

        orders = results["orders"].table
        assert [c.name for c in orders.ordered_columns()] == ["id", "customer_id", "total"]
        assert orders.get_column("id").required is True
        assert orders.get_column("customer_id").required is False
        total = orders.get_column("total")
        assert (total.precision, total.scale, total.max_length) == (10, 2, None)
        email = results["customers"].table.get_column("email")
        assert email.max_length == 100
        assert email.collation == "utf8_bin"
        assert orders.owner == "dba"
        assert orders.persisted is True

    def test_foreign_keys_resolve_regardless_of_load_order(self, shop_rows) -> None:
        """orders loads before customers yet its key resolves."""
        loader = SchemaLoader(InMemorySource(**shop_rows))

        results = _by_name(loader.load_container(None, "public"))

        fk = results["orders"].table.foreign_keys["fk_orders_customer"]
        customers = results["customers"].table
        assert fk.referenced_table is customers
        assert fk.referenced_key is customers.unique_keys["pk_customers"]
        assert results["orders"].status == LoadStatus.SUCCESS
        assert results["orders"].foreign_keys.foreign_keys == [fk]

    def test_registers_container_in_catalog(self, shop_rows) -> None:
        """The container becomes resolvable through the catalog."""
        catalog = DatabaseCatalog()
        SchemaLoader(InMemorySource(**shop_rows), catalog).load_container(None, "public")

        assert catalog.find_table(None, "public", "orders") is not None

    def test_name_filter(self, shop_rows) -> None:
        """Only the requested tables are loaded."""
        loader = SchemaLoader(InMemorySource(**shop_rows))

        results = loader.load_container(None, "public", names=["CUSTOMERS"])

        assert [r.name for r in results] == ["customers"]

    def test_views_skip_keys(self) -> None:
        """Views load columns but no key, index or foreign key queries."""
        source = InMemorySource(
            tables=_tables("v_orders", table_type="SYSTEM VIEW"),
            columns={"v_orders": [_col("id")]},
        )

        results = SchemaLoader(source).load_container(None, "public")

        assert results[0].table.table_type == TableType.VIEW
        kinds = {kind for kind, _ in source.queries}
        assert kinds == {"tables", "columns", "triggers"}

    def test_missing_reuse_flag_defaults_to_reuse(self, shop_rows) -> None:
        """Tables without REUSE_OID reuse identifiers; an explicit NO does not."""
        shop_rows["tables"][0]["REUSE_OID"] = "NO"
        results = _by_name(SchemaLoader(InMemorySource(**shop_rows)).load_container(None, "public"))

        assert results["orders"].table.reuse_oid is False
        assert results["customers"].table.reuse_oid is True


class TestKeysAndIndexes:
    """Unique keys and indexes."""

    def test_unique_keys_grouped_by_name(self) -> None:
        """Key column rows group into one key with in_unique_key flags."""
        source = InMemorySource(
            tables=_tables("t"),
            columns={"t": [_col("a", position=1), _col("b", position=2), _col("c", position=3)]},
            unique_keys={
                "t": [
                    {"COLUMN_NAME": "b", "KEY_SEQ": 2, "PK_NAME": "uq_ab", "CONSTRAINT_TYPE": "UNIQUE"},
                    {"COLUMN_NAME": "a", "KEY_SEQ": 1, "PK_NAME": "uq_ab", "CONSTRAINT_TYPE": "UNIQUE"},
                    {"COLUMN_NAME": "c", "KEY_SEQ": 1, "PK_NAME": "pk_t", "CONSTRAINT_TYPE": "P"},
                ]
            },
        )

        table = SchemaLoader(source).load_container(None, "public")[0].table

        assert table.unique_keys["uq_ab"].column_names == ["a", "b"]
        assert table.unique_keys["uq_ab"].constraint_type == ConstraintType.UNIQUE_KEY
        assert table.primary_key is table.unique_keys["pk_t"]
        assert all(c.in_unique_key for c in table.columns.values())

    def test_indexes(self) -> None:
        """Index rows group by name with direction, uniqueness and cardinality."""
        source = InMemorySource(
            tables=_tables("t"),
            columns={"t": [_col("a", position=1), _col("b", position=2)]},
            indexes={
                "t": [
                    {"INDEX_NAME": None, "CARDINALITY": 999},
                    {"INDEX_NAME": "idx_ab", "NON_UNIQUE": "1", "ORDINAL_POSITION": 2,
                     "COLUMN_NAME": "b", "ASC_OR_DESC": "D", "CARDINALITY": 10},
                    {"INDEX_NAME": "idx_ab", "NON_UNIQUE": "1", "ORDINAL_POSITION": 1,
                     "COLUMN_NAME": "a", "ASC_OR_DESC": "A", "CARDINALITY": 7},
                    {"INDEX_NAME": "uq_a", "NON_UNIQUE": False, "ORDINAL_POSITION": 1,
                     "COLUMN_NAME": "a", "CARDINALITY": 120},
                ]
            },
        )

        table = SchemaLoader(source).load_container(None, "public")[0].table

        idx = table.indexes["idx_ab"]
        assert [c.column.name for c in idx.columns] == ["a", "b"]
        assert [c.ascending for c in idx.columns] == [True, False]
        assert idx.unique is False
        assert idx.cardinality == 10
        assert table.indexes["uq_a"].unique is True
        assert set(table.indexes) == {"idx_ab", "uq_a"}
        assert table.row_count_from_indexes() == 120

    def test_index_query_skipped_without_capability(self, shop_rows) -> None:
        """Drivers without index support are never asked for indexes."""
        source = InMemorySource(**shop_rows)

        SchemaLoader(source, capabilities=Capabilities(supports_indexes=False)).load_container(
            None, "public"
        )

        assert all(kind != "indexes" for kind, _ in source.queries)

    def test_unknown_key_column_is_a_warning(self) -> None:
        """A key row naming a missing column warns but loads the table."""
        source = InMemorySource(
            tables=_tables("t"),
            columns={"t": [_col("a")]},
            unique_keys={"t": [{"COLUMN_NAME": "zz", "KEY_SEQ": 1, "PK_NAME": "pk_t"}]},
        )

        result = SchemaLoader(source).load_container(None, "public")[0]

        assert result.status == LoadStatus.SUCCESS_WITH_WARNINGS
        assert "zz" in result.warnings[0]


class TestTriggers:
    """Trigger rows."""

    def test_codes_are_decoded(self) -> None:
        """Numeric trigger codes become enum values."""
        source = InMemorySource(
            tables=_tables("t"),
            columns={"t": [_col("a")]},
            triggers={
                "t": [
                    {"NAME": "trg_audit", "EVENT": 4, "CONDITION_TIME": 1, "ACTION_TIME": 2,
                     "ACTION_TYPE": 1, "PRIORITY": "0.0", "ACTION_DEFINITION": "CALL audit()"},
                ]
            },
        )

        table = SchemaLoader(source).load_container(None, "public")[0].table

        trigger = table.triggers[0]
        assert trigger.name == "trg_audit"
        assert trigger.table is table
        assert trigger.event == TriggerEvent.INSERT
        assert trigger.condition_time == TriggerTime.BEFORE
        assert trigger.action_time == TriggerTime.AFTER
        assert trigger.action_type == TriggerActionType.STATEMENT
        assert trigger.priority == 0.0


class _BrokenColumnsSource(InMemorySource):
    def fetch_columns(self, catalog, schema, table):
        if table == "broken":
            raise CatalogError("relation vanished")
        return super().fetch_columns(catalog, schema, table)


class TestFailuresAndWarnings:
    """Per-table outcomes."""

    def test_failing_table_does_not_abort_batch(self, shop_rows) -> None:
        """One table fails; the others load and resolve their keys."""
        shop_rows["tables"] = _tables("broken", "orders", "customers")
        source = _BrokenColumnsSource(**shop_rows)
        container = SchemaContainer(name="public")

        results = _by_name(SchemaLoader(source).load_tables(container))

        assert results["broken"].status == LoadStatus.FAILED
        assert isinstance(results["broken"].error, CatalogError)
        assert results["broken"].table is None
        assert container.get_table("broken") is None
        assert results["orders"].ok
        assert "fk_orders_customer" in results["orders"].table.foreign_keys

    def test_unresolved_foreign_key_is_a_warning(self, shop_rows) -> None:
        """A key to a table outside the batch loads with warnings."""
        shop_rows["foreign_keys"]["orders"][0]["PKTABLE_NAME"] = "suppliers"

        results = _by_name(SchemaLoader(InMemorySource(**shop_rows)).load_container(None, "public"))

        assert results["orders"].status == LoadStatus.SUCCESS_WITH_WARNINGS
        assert results["orders"].table.foreign_keys == {}
        assert any("suppliers" in w for w in results["orders"].warnings)

    def test_synthesized_key_is_a_warning(self, shop_rows) -> None:
        """Fabricating a referenced key is reported on the owning table."""
        shop_rows["unique_keys"] = {}

        results = _by_name(SchemaLoader(InMemorySource(**shop_rows)).load_container(None, "public"))

        assert results["orders"].status == LoadStatus.SUCCESS_WITH_WARNINGS
        assert results["orders"].foreign_keys.synthesized_keys[0].name == "pk_customers"

    def test_unsupported_queries_degrade_to_empty(self, shop_rows) -> None:
        """Unsupported metadata kinds load as empty lists."""
        source = InMemorySource(**shop_rows, unsupported={"foreign_keys", "triggers"})

        results = _by_name(SchemaLoader(source).load_container(None, "public"))

        assert results["orders"].status == LoadStatus.SUCCESS
        assert results["orders"].table.foreign_keys == {}
        assert results["orders"].table.triggers == []

    def test_referential_integrity_disabled(self, shop_rows) -> None:
        """Without referential integrity, foreign keys are never queried."""
        source = InMemorySource(**shop_rows)

        SchemaLoader(
            source, capabilities=Capabilities(supports_referential_integrity=False)
        ).load_container(None, "public")

        assert all(kind != "foreign_keys" for kind, _ in source.queries)


class _CancelAfter:
    def __init__(self, calls: int) -> None:
        self.calls = calls
        self.tasks: list[str] = []

    def is_canceled(self) -> bool:
        self.calls -= 1
        return self.calls < 0

    def sub_task(self, name: str) -> None:
        self.tasks.append(name)


class TestCancellation:
    """Cooperative cancellation."""

    def test_cancel_before_first_query(self, shop_rows) -> None:
        """A canceled monitor aborts before any query runs."""
        source = InMemorySource(**shop_rows)

        with pytest.raises(OperationCancelledError):
            SchemaLoader(source, monitor=_CancelAfter(0)).load_container(None, "public")

        assert source.queries == []

    def test_cancel_mid_batch_propagates(self, shop_rows) -> None:
        """Cancellation inside a table load is not turned into a table failure."""
        monitor = _CancelAfter(3)

        with pytest.raises(OperationCancelledError):
            SchemaLoader(InMemorySource(**shop_rows), monitor=monitor).load_container(None, "public")

        assert monitor.tasks == ["Load tables", "Load columns", "Load unique keys"]


class TestReloadTable:
    """Refreshing an already loaded table."""

    def test_reload_rebuilds_keys(self, shop_rows) -> None:
        """Keys are cleared and rebuilt from fresh rows."""
        source = InMemorySource(**shop_rows)
        loader = SchemaLoader(source)
        customers = _by_name(loader.load_container(None, "public"))["customers"].table
        old_key = customers.unique_keys["pk_customers"]

        result = loader.reload_table(customers)

        assert result.ok
        assert customers.unique_keys["pk_customers"] is not old_key

    def test_reload_clears_dropped_key_flags(self, shop_rows) -> None:
        """Columns lose their key flag when the key is gone from the catalog."""
        loader = SchemaLoader(InMemorySource(**shop_rows))
        customers = _by_name(loader.load_container(None, "public"))["customers"].table
        assert customers.get_column("id").in_unique_key is True

        shop_rows["unique_keys"]["customers"].clear()
        result = loader.reload_table(customers)

        assert result.ok
        assert customers.unique_keys == {}
        assert customers.get_column("id").in_unique_key is False
