"""Shared fixtures: a small customers/orders schema and row factories."""

from dataclasses import dataclass
from typing import Any

import pytest

from db_catalog.ddl.dialect import SQLDialect
from db_catalog.schema.models import Column, DatabaseCatalog, SchemaContainer, Table


@dataclass
class Shop:
    catalog: DatabaseCatalog
    container: SchemaContainer
    customers: Table
    orders: Table


def _column(table: Table, name: str, type_name: str = "INTEGER", **kwargs: Any) -> Column:
    column = Column(table=table, name=name, type_name=type_name, **kwargs)
    table.add_column(column)
    return column


def build_shop() -> Shop:
    """customers(id, region, email) and orders(id, customer_id, customer_region, qty)."""
    catalog = DatabaseCatalog()
    container = catalog.add_container(SchemaContainer(name="public"))

    customers = Table(container=container, name="customers", owner="dba")
    container.add_table(customers)
    _column(customers, "id", required=True)
    _column(customers, "region", "VARCHAR", max_length=10, required=True)
    _column(customers, "email", "VARCHAR", max_length=100)

    orders = Table(container=container, name="orders", owner="dba")
    container.add_table(orders)
    _column(orders, "id", required=True)
    _column(orders, "customer_id")
    _column(orders, "customer_region", "VARCHAR", max_length=10)
    _column(orders, "qty")

    return Shop(catalog=catalog, container=container, customers=customers, orders=orders)


@pytest.fixture
def shop() -> Shop:
    return build_shop()


@pytest.fixture
def make_shop():
    """Factory for independent copies of the shop schema."""
    return build_shop


@pytest.fixture
def add_column():
    return _column


@pytest.fixture
def dialect() -> SQLDialect:
    return SQLDialect()


@pytest.fixture
def fk_row():
    """Factory for one foreign-key catalog row owned by ``orders``."""

    def make(
        fk_name: str | None,
        seq: int,
        fk_column: str,
        pk_column: str,
        pk_table: str = "customers",
        pk_name: str | None = None,
        delete_rule: int = 3,
        update_rule: int = 3,
        deferrability: int = 7,
        pk_schema: str | None = None,
    ) -> dict[str, Any]:
        return {
            "PKTABLE_SCHEM": pk_schema,
            "PKTABLE_NAME": pk_table,
            "PKCOLUMN_NAME": pk_column,
            "FKTABLE_NAME": "orders",
            "FKCOLUMN_NAME": fk_column,
            "KEY_SEQ": seq,
            "FK_NAME": fk_name,
            "PK_NAME": pk_name,
            "UPDATE_RULE": update_rule,
            "DELETE_RULE": delete_rule,
            "DEFERRABILITY": deferrability,
        }

    return make
