"""Typed decoding of raw catalog rows.

A catalog row is a generic mapping of result column name to value.  Each
row shape below is a pydantic model whose field aliases are the JDBC-style
catalog column names (``FKTABLE_NAME``, ``KEY_SEQ`` ...).  ``decode_row``
matches names case-insensitively, drops unknown columns, and leaves absent
or null values at the field default.  Values that do not fit the field type
(``"n/a"`` in a numeric column) decode to ``None`` rather than failing,
because drivers differ in what they populate.

Usage:
    from db_catalog.catalog.rows import ForeignKeyRow, decode_row

    info = decode_row({"fktable_name": "orders", "key_seq": "1"}, ForeignKeyRow)
    info.key_seq
    # 1
"""

import logging
import types
import typing
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"YES", "Y", "TRUE", "T", "1"}
_FALSE_STRINGS = {"NO", "N", "FALSE", "F", "0"}


def _target_type(annotation: Any) -> Any:
    """Unwrap ``X | None`` to ``X``."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        return args[0] if len(args) == 1 else annotation
    return annotation


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return None


def _to_float(value: Any) -> float | None:
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _to_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().upper()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


class CatalogRow(BaseModel):
    """Base class for row shapes: tolerant coercion of every field."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def _coerce(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return None
        target = _target_type(cls.model_fields[info.field_name].annotation)
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        if target is bool:
            coerced = _to_bool(value)
            # Unrecognized flag strings fall back to the field default
            return coerced if coerced is not None else cls.model_fields[info.field_name].default
        if target is int:
            coerced = _to_int(value)
        elif target is float:
            coerced = _to_float(value)
        elif target is str:
            return str(value)
        else:
            return value
        if coerced is None:
            logger.debug(
                f"Catalog value {value!r} for {info.field_name} is not a "
                f"{target.__name__}; treating as null"
            )
        return coerced


RowT = TypeVar("RowT", bound=CatalogRow)


def decode_row(row: Mapping[str, Any], shape: type[RowT]) -> RowT:
    """Decode a raw catalog row into the typed *shape*.

    Args:
        row: Mapping of catalog column name to value (any key case).
        shape: ``CatalogRow`` subclass describing the expected fields.

    Returns:
        Instance of *shape*; missing fields hold their defaults.
    """
    normalized = {str(key).upper(): value for key, value in row.items()}
    values: dict[str, Any] = {}
    for name, info in shape.model_fields.items():
        key = info.alias or name
        value = normalized.get(key.upper())
        if value is not None:
            values[key] = value
    return shape.model_validate(values)


def decode_rows(rows: typing.Iterable[Mapping[str, Any]], shape: type[RowT]) -> list[RowT]:
    """Drain *rows* completely and decode each one."""
    return [decode_row(row, shape) for row in rows]


# ============================================================================
# Row shapes
# ============================================================================


class TableRow(CatalogRow):
    """One row per table or view."""

    table_catalog: str | None = Field(default=None, alias="TABLE_CAT")
    table_schema: str | None = Field(default=None, alias="TABLE_SCHEM")
    table_name: str | None = Field(default=None, alias="TABLE_NAME")
    table_type: str | None = Field(default=None, alias="TABLE_TYPE")
    remarks: str | None = Field(default=None, alias="REMARKS")
    owner: str | None = Field(default=None, alias="OWNER")
    reuse_oid: bool | None = Field(default=None, alias="REUSE_OID")
    collation: str | None = Field(default=None, alias="COLLATION")


class ColumnRow(CatalogRow):
    """One row per table column."""

    table_name: str | None = Field(default=None, alias="TABLE_NAME")
    column_name: str | None = Field(default=None, alias="COLUMN_NAME")
    type_name: str | None = Field(default=None, alias="TYPE_NAME")
    column_size: int | None = Field(default=None, alias="COLUMN_SIZE")
    decimal_digits: int | None = Field(default=None, alias="DECIMAL_DIGITS")
    nullable: int | None = Field(default=None, alias="NULLABLE")
    is_nullable: bool | None = Field(default=None, alias="IS_NULLABLE")
    column_default: str | None = Field(default=None, alias="COLUMN_DEF")
    remarks: str | None = Field(default=None, alias="REMARKS")
    ordinal_position: int | None = Field(default=None, alias="ORDINAL_POSITION")
    is_autoincrement: bool = Field(default=False, alias="IS_AUTOINCREMENT")
    initial_value: int | None = Field(default=None, alias="INITIAL_VALUE")
    increment_value: int | None = Field(default=None, alias="INCREMENT_VALUE")
    collation: str | None = Field(default=None, alias="COLLATION")
    is_shared: bool = Field(default=False, alias="IS_SHARED")


class UniqueKeyRow(CatalogRow):
    """One row per column of a primary key or unique constraint."""

    table_name: str | None = Field(default=None, alias="TABLE_NAME")
    column_name: str | None = Field(default=None, alias="COLUMN_NAME")
    key_seq: int | None = Field(default=None, alias="KEY_SEQ")
    constraint_name: str | None = Field(default=None, alias="PK_NAME")
    constraint_type: str | None = Field(default=None, alias="CONSTRAINT_TYPE")


class ForeignKeyRow(CatalogRow):
    """One row per column of a foreign key (JDBC imported/exported keys)."""

    pktable_catalog: str | None = Field(default=None, alias="PKTABLE_CAT")
    pktable_schema: str | None = Field(default=None, alias="PKTABLE_SCHEM")
    pktable_name: str | None = Field(default=None, alias="PKTABLE_NAME")
    pkcolumn_name: str | None = Field(default=None, alias="PKCOLUMN_NAME")
    fktable_catalog: str | None = Field(default=None, alias="FKTABLE_CAT")
    fktable_schema: str | None = Field(default=None, alias="FKTABLE_SCHEM")
    fktable_name: str | None = Field(default=None, alias="FKTABLE_NAME")
    fkcolumn_name: str | None = Field(default=None, alias="FKCOLUMN_NAME")
    key_seq: int | None = Field(default=None, alias="KEY_SEQ")
    update_rule: int | None = Field(default=None, alias="UPDATE_RULE")
    delete_rule: int | None = Field(default=None, alias="DELETE_RULE")
    fk_name: str | None = Field(default=None, alias="FK_NAME")
    pk_name: str | None = Field(default=None, alias="PK_NAME")
    deferrability: int | None = Field(default=None, alias="DEFERRABILITY")


class IndexRow(CatalogRow):
    """One row per index column (JDBC index info)."""

    table_name: str | None = Field(default=None, alias="TABLE_NAME")
    index_name: str | None = Field(default=None, alias="INDEX_NAME")
    non_unique: bool = Field(default=True, alias="NON_UNIQUE")
    index_type: str | None = Field(default=None, alias="INDEX_TYPE")
    ordinal_position: int | None = Field(default=None, alias="ORDINAL_POSITION")
    column_name: str | None = Field(default=None, alias="COLUMN_NAME")
    asc_or_desc: str | None = Field(default=None, alias="ASC_OR_DESC")
    cardinality: int | None = Field(default=None, alias="CARDINALITY")


class TriggerRow(CatalogRow):
    """One row per trigger."""

    name: str | None = Field(default=None, alias="NAME")
    owner_name: str | None = Field(default=None, alias="OWNER_NAME")
    target_owner_name: str | None = Field(default=None, alias="TARGET_OWNER_NAME")
    target_class_name: str | None = Field(default=None, alias="TARGET_CLASS_NAME")
    priority: float | None = Field(default=None, alias="PRIORITY")
    event: int | None = Field(default=None, alias="EVENT")
    condition_time: int | None = Field(default=None, alias="CONDITION_TIME")
    condition: str | None = Field(default=None, alias="CONDITION")
    action_time: int | None = Field(default=None, alias="ACTION_TIME")
    action_type: int | None = Field(default=None, alias="ACTION_TYPE")
    action_definition: str | None = Field(default=None, alias="ACTION_DEFINITION")
    comment: str | None = Field(default=None, alias="COMMENT")
