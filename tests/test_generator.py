"""Tests for batch DDL generation."""

from db_catalog.config.models import Capabilities
from db_catalog.ddl.commands import (
    PersistAction,
    alter_command,
    create_command,
    delete_command,
    rename_command,
)
from db_catalog.ddl.generator import DDLGenerator, DDLPlan, generate_table_ddl
from db_catalog.exceptions import MissingInitialValueError
from db_catalog.schema.editors import (
    ForeignKeyOptions,
    IndexOptions,
    configure_foreign_key,
    configure_index,
    new_column,
    new_table,
)
from db_catalog.schema.models import (
    ConstraintType,
    ForeignKey,
    Index,
    UniqueKey,
)


def _pk(shop) -> UniqueKey:
    key = UniqueKey(
        table=shop.customers, name="pk_customers", constraint_type=ConstraintType.PRIMARY_KEY
    )
    key.add_column(shop.customers.get_column("id"), 1)
    shop.customers.add_unique_key(key)
    return key


class TestNewTables:
    """Tables that don't exist yet."""

    def test_children_are_declared_implicitly(self, shop) -> None:
        """A new table declares every child even without explicit commands."""
        table = new_table(shop.container)
        table.owner = "dba"
        column = new_column(table)

        plan = DDLGenerator().generate([create_command(table)])

        assert plan.ok
        assert plan.statements == ["CREATE TABLE dba.new_table (\n\tcolumn1 INTEGER\n)"]
        assert column.persisted is False

    def test_deleted_child_left_out(self, shop) -> None:
        """A child deleted in the same batch is not declared."""
        table = new_table(shop.container)
        keep = new_column(table)
        drop = new_column(table)

        plan = DDLGenerator().generate([create_command(table), delete_command(drop)])

        assert keep.name in plan.statements[0]
        assert drop.name not in plan.statements[0]

    def test_rename_before_create(self, shop) -> None:
        """Renamed table and column are created under their new names."""
        table = new_table(shop.container)
        column = new_column(table)

        plan = DDLGenerator().generate(
            [rename_command(table, "things"), rename_command(column, "label")]
        )

        assert plan.statements == ["CREATE TABLE things (\n\tlabel INTEGER\n)"]

    def test_declaration_order(self, shop) -> None:
        """Columns, then keys, then foreign keys; indexes follow as statements."""
        table = new_table(shop.container)
        table.owner = "dba"
        ref = new_column(table)
        fk = configure_foreign_key(
            table,
            ForeignKeyOptions(referenced_key=_pk(shop), columns=[(ref, shop.customers.get_column("id"))]),
        )
        index = configure_index(table, IndexOptions(columns=[(ref, False)]))
        key = UniqueKey(table=table, name="uq_ref", persisted=False)
        key.add_column(ref, 1)
        table.add_unique_key(key)

        plan = DDLGenerator().generate(
            [create_command(index), create_command(fk), create_command(key), create_command(ref)]
        )

        create = plan.statements[0]
        assert create.index("column1 INTEGER") < create.index("CONSTRAINT uq_ref")
        assert create.index("CONSTRAINT uq_ref") < create.index("FOREIGN KEY")
        assert plan.statements[1] == f"CREATE INDEX {index.name} ON dba.new_table (column1 ASC)"
        assert [a.title for a in plan.actions] == ["Create new table", "Create index"]

    def test_deleted_new_table_emits_nothing(self, shop) -> None:
        """Dropping a table that was never created is a no-op."""
        table = new_table(shop.container)
        assert DDLGenerator().generate([delete_command(table)]).actions == []


class TestExistingTables:
    """ALTER plans for persisted tables."""

    def test_statement_order(self, shop) -> None:
        """Table changes, drops, per-object changes, then the table rename."""
        fk = ForeignKey(table=shop.orders, name="fk_cust", referenced_key=_pk(shop))
        shop.orders.add_foreign_key(fk)
        qty = shop.orders.get_column("qty")
        index = Index(table=shop.orders, name="idx_qty", persisted=False)
        index.add_column(qty, 1)
        shop.orders.add_index(index)

        plan = DDLGenerator().generate(
            [
                rename_command(shop.orders, "purchases"),
                create_command(index),
                rename_command(qty, "quantity"),
                alter_command(qty, type_name="BIGINT"),
                delete_command(fk),
                alter_command(shop.orders, comment="Orders"),
            ]
        )

        assert [a.title for a in plan.actions] == [
            "Change Comment",
            "Drop foreign key",
            "Modify column",
            "Rename column",
            "Create index",
            "Rename table",
        ]
        assert plan.statements[2] == "ALTER TABLE dba.orders MODIFY COLUMN qty BIGINT"
        assert plan.statements[3] == "ALTER TABLE dba.orders RENAME COLUMN qty AS quantity"

    def test_rename_independent_of_other_changes(self, shop) -> None:
        """A rename is its own statement after every property change."""
        qty = shop.orders.get_column("qty")

        plan = DDLGenerator().generate(
            [
                rename_command(qty, "quantity"),
                alter_command(qty, type_name="BIGINT", required=True, comment="Units"),
            ]
        )

        assert plan.statements == [
            "ALTER TABLE dba.orders MODIFY COLUMN qty BIGINT NOT NULL COMMENT 'Units'",
            "ALTER TABLE dba.orders RENAME COLUMN qty AS quantity",
        ]

    def test_new_column_on_existing_table(self, shop) -> None:
        """An unpersisted child is added even if only altered."""
        column = new_column(shop.orders)

        plan = DDLGenerator().generate([alter_command(column, type_name="VARCHAR", max_length=40)])

        assert plan.statements == ["ALTER TABLE dba.orders ADD COLUMN column5 VARCHAR(40) NULL"]

    def test_drop_of_unpersisted_child_is_skipped(self, shop) -> None:
        """Deleting something that was never created emits nothing."""
        column = new_column(shop.orders)
        assert DDLGenerator().generate([delete_command(column)]).actions == []

    def test_table_delete_wins(self, shop) -> None:
        """Other commands on a dropped table are ignored."""
        plan = DDLGenerator().generate(
            [
                alter_command(shop.orders.get_column("qty"), type_name="BIGINT"),
                delete_command(shop.orders, cascade=True),
            ]
        )
        assert plan.statements == ["DROP TABLE dba.orders CASCADE"]

    def test_indexes_skipped_without_support(self, shop) -> None:
        """Index commands produce nothing when indexes aren't supported."""
        index = Index(table=shop.orders, name="idx_qty")
        generator = DDLGenerator(capabilities=Capabilities(supports_indexes=False))
        assert generator.generate([delete_command(index)]).actions == []


class TestFailureIsolation:
    """A broken object doesn't sink the batch."""

    def test_failing_column_keeps_other_statements(self, shop) -> None:
        """Only the offending column's statements are discarded."""
        qty = shop.orders.get_column("qty")
        customer_id = shop.orders.get_column("customer_id")

        plan = DDLGenerator().generate(
            [
                alter_command(qty, auto_increment=True),
                alter_command(customer_id, required=True),
                alter_command(shop.orders, comment="Orders"),
            ]
        )

        assert not plan.ok
        assert plan.statements == [
            "ALTER TABLE dba.orders COMMENT = 'Orders'",
            "ALTER TABLE dba.orders MODIFY COLUMN customer_id INTEGER NOT NULL",
        ]
        assert len(plan.failures) == 1
        assert plan.failures[0].object_name == "dba.orders.qty"
        assert isinstance(plan.failures[0].error, MissingInitialValueError)

    def test_failing_new_table_keeps_other_tables(self, shop) -> None:
        """A new table that can't be created doesn't affect the next table."""
        table = new_table(shop.container)
        column = new_column(table)
        column.auto_increment = True

        plan = DDLGenerator().generate(
            [create_command(table), alter_command(shop.orders, comment="Orders")]
        )

        assert plan.statements == ["ALTER TABLE dba.orders COMMENT = 'Orders'"]
        assert plan.failures[0].object_name == table.name

    def test_unsupported_change_is_reported(self, shop) -> None:
        """Renaming an existing index is a failure, not an exception."""
        index = Index(table=shop.orders, name="idx_qty")
        shop.orders.add_index(index)

        plan = DDLGenerator().generate([rename_command(index, "idx_quantity")])

        assert plan.actions == []
        assert plan.failures[0].object_name == "dba.orders.idx_qty"


class TestScripting:
    """Scripting loaded tables."""

    def test_synthesized_keys_are_left_out(self, shop) -> None:
        """Keys fabricated during reconciliation aren't scripted."""
        real = _pk(shop)
        fake = UniqueKey(
            table=shop.customers, name="CUSTOMERS_PK", constraint_type=ConstraintType.PRIMARY_KEY,
            persisted=False, synthesized=True,
        )
        fake.add_column(shop.customers.get_column("email"), 1)
        shop.customers.add_unique_key(fake)
        shop.customers.comment = "People"

        actions = generate_table_ddl(shop.customers)

        assert actions[0].sql == (
            "CREATE TABLE dba.customers (\n"
            "\tid INTEGER NOT NULL,\n"
            "\tregion VARCHAR(10) NOT NULL,\n"
            "\temail VARCHAR(100),\n"
            f"\tCONSTRAINT {real.name} PRIMARY KEY (id)\n"
            ")\nCOMMENT = 'People'"
        )

    def test_indexes_follow_table(self, shop) -> None:
        """Loaded indexes are scripted after the CREATE."""
        index = Index(table=shop.orders, name="idx_qty")
        index.add_column(shop.orders.get_column("qty"), 1, ascending=False)
        shop.orders.add_index(index)

        actions = DDLGenerator().generate_table_ddl(shop.orders)

        assert actions[1] == PersistAction("Create index", "CREATE INDEX idx_qty ON dba.orders (qty DESC)")


class TestPlan:
    """Plan rendering."""

    def test_script(self) -> None:
        """Statements are terminated and separated by blank lines."""
        plan = DDLPlan(actions=[PersistAction("a", "SELECT 1"), PersistAction("b", "SELECT 2")])
        assert plan.script() == "SELECT 1;\n\nSELECT 2;"
        assert plan.ok
