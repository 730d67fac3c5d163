"""Tests for the schema object graph."""

from unittest.mock import Mock

import pytest

from db_catalog.config.models import Capabilities
from db_catalog.schema.models import (
    DataKind,
    ForeignKey,
    Index,
    SchemaContainer,
    Table,
    TableType,
    UniqueKey,
    base_type_name,
    data_kind_for,
    find_named,
    unique_name,
)


class TestNameHelpers:
    """Lookup and naming helpers."""

    def test_find_named_prefers_exact_match(self) -> None:
        """An exact key wins over a case-insensitive one."""
        objects = {"Orders": 1, "orders": 2}
        assert find_named(objects, "orders") == 2
        assert find_named(objects, "ORDERS") in (1, 2)
        assert find_named(objects, "missing") is None
        assert find_named(objects, None) is None

    def test_unique_name(self) -> None:
        """Taken names get _1, _2 ... suffixes, compared case-insensitively."""
        assert unique_name("T_PK", set()) == "T_PK"
        assert unique_name("T_PK", {"t_pk"}) == "T_PK_1"
        assert unique_name("T_PK", {"T_PK", "T_PK_1"}) == "T_PK_2"

    @pytest.mark.parametrize(
        ("type_name", "base", "kind"),
        [
            ("varchar(255)", "VARCHAR", DataKind.STRING),
            ("NUMERIC(10,2)", "NUMERIC", DataKind.NUMERIC),
            ("INTEGER", "INTEGER", DataKind.NUMERIC),
            ("timestamp", "TIMESTAMP", DataKind.DATETIME),
            ("SET", "SET", DataKind.OTHER),
        ],
    )
    def test_type_names(self, type_name: str, base: str, kind: DataKind) -> None:
        """Type names are normalized and classified."""
        assert base_type_name(type_name) == base
        assert data_kind_for(type_name) == kind


class TestContainers:
    """Containers and the catalog."""

    def test_match_owner_with_known_list(self) -> None:
        """Listed owners match exactly; unlisted ones resolve to None."""
        container = SchemaContainer(name="public", owners=["DBA", "PUBLIC"])
        assert container.match_owner("DBA") == "DBA"
        assert container.match_owner("ghost") is None
        assert container.match_owner(None) is None

    def test_match_owner_without_list(self) -> None:
        """With no known owners the name is taken as is."""
        assert SchemaContainer(name="public").match_owner("dba") == "dba"

    def test_add_table_from_other_container(self) -> None:
        """A table can only be added to its own container."""
        a = SchemaContainer(name="a")
        b = SchemaContainer(name="b")
        with pytest.raises(ValueError):
            b.add_table(Table(container=a, name="t"))

    def test_find_table_without_schema(self, shop) -> None:
        """A missing schema searches every container."""
        assert shop.catalog.find_table(None, None, "ORDERS") is shop.orders
        assert shop.catalog.find_table(None, "public", "customers") is shop.customers
        assert shop.catalog.find_table(None, "nowhere", "orders") is None


class TestTable:
    """Table behaviour."""

    def test_identity_semantics(self, shop) -> None:
        """Two equal-looking tables are distinct objects."""
        twin = Table(container=shop.container, name="orders", owner="dba")
        assert twin != shop.orders

    def test_old_owner_defaults_to_owner(self, shop) -> None:
        """old_owner remembers the owner at load time."""
        shop.orders.owner = "sales"
        assert shop.orders.old_owner == "dba"

    def test_column_positions(self, shop) -> None:
        """Columns added without a position are numbered in order."""
        assert [c.ordinal_position for c in shop.orders.ordered_columns()] == [1, 2, 3, 4]

    def test_duplicate_constraint_name(self, shop) -> None:
        """A second constraint of the same name is rejected."""
        shop.customers.add_unique_key(UniqueKey(table=shop.customers, name="uq"))
        with pytest.raises(ValueError):
            shop.customers.add_unique_key(UniqueKey(table=shop.customers, name="uq"))

    def test_foreign_key_add_column_is_idempotent(self, shop) -> None:
        """Adding the same pair twice keeps one entry."""
        fk = ForeignKey(table=shop.orders, name="fk")
        own = shop.orders.get_column("customer_id")
        ref = shop.customers.get_column("id")
        assert fk.add_column(own, ref, 1) is True
        assert fk.add_column(own, ref, 1) is False
        assert len(fk.columns) == 1

    def test_invalidate(self, shop) -> None:
        """Cached children and statistics are dropped."""
        shop.orders.add_index(Index(table=shop.orders, name="idx"))
        shop.orders.get_row_count(lambda t: 5)
        shop.orders.invalidate()
        assert shop.orders.indexes == {}
        assert shop.orders.get_row_count(lambda t: 7) == 7


class TestRowCount:
    """Cached row counts."""

    def test_computed_once(self, shop) -> None:
        """The counter runs once and the value is cached."""
        counter = Mock(return_value=42)
        assert shop.orders.get_row_count(counter) == 42
        assert shop.orders.get_row_count(counter) == 42
        counter.assert_called_once_with(shop.orders)

    def test_failure_caches_unknown(self, shop) -> None:
        """A failing counter yields -1 and is not retried."""
        counter = Mock(side_effect=RuntimeError("permission denied"))
        assert shop.orders.get_row_count(counter) == -1
        assert shop.orders.get_row_count(counter) == -1
        assert counter.call_count == 1

    def test_not_applicable(self, shop) -> None:
        """Views, new tables and unsupported drivers have no count."""
        counter = Mock(return_value=1)
        view = Table(container=shop.container, name="v", table_type=TableType.VIEW)
        fresh = Table(container=shop.container, name="n", persisted=False)
        assert view.get_row_count(counter) is None
        assert fresh.get_row_count(counter) is None
        assert shop.orders.get_row_count(counter, Capabilities(supports_row_count=False)) is None
        counter.assert_not_called()

    def test_from_indexes(self, shop) -> None:
        """The first unique index with a positive cardinality wins."""
        shop.orders.add_index(Index(table=shop.orders, name="idx", unique=False, cardinality=9))
        shop.orders.add_index(Index(table=shop.orders, name="uq0", unique=True, cardinality=0))
        assert shop.orders.row_count_from_indexes() is None
        shop.orders.add_index(Index(table=shop.orders, name="uq", unique=True, cardinality=30))
        assert shop.orders.row_count_from_indexes() == 30
