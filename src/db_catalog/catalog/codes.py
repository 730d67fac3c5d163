"""Lookup tables from catalog numeric codes to semantic enums.

One table per code domain.  Every lookup is total: a missing or unknown code
maps to the domain's ``UNKNOWN`` member.
"""

from enum import Enum
from typing import TypeVar

from db_catalog.schema.models import (
    Deferability,
    ModifyRule,
    TriggerActionType,
    TriggerEvent,
    TriggerTime,
)

E = TypeVar("E", bound=Enum)

# java.sql.DatabaseMetaData importedKey* rule codes
MODIFY_RULES: dict[int, ModifyRule] = {
    0: ModifyRule.CASCADE,
    1: ModifyRule.RESTRICT,
    2: ModifyRule.SET_NULL,
    3: ModifyRule.NO_ACTION,
    4: ModifyRule.SET_DEFAULT,
}

DEFERABILITIES: dict[int, Deferability] = {
    5: Deferability.INITIALLY_DEFERRED,
    6: Deferability.INITIALLY_IMMEDIATE,
    7: Deferability.NOT_DEFERRABLE,
}

TRIGGER_EVENTS: dict[int, TriggerEvent] = {
    0: TriggerEvent.UPDATE,
    1: TriggerEvent.UPDATE_STATEMENT,
    2: TriggerEvent.DELETE,
    3: TriggerEvent.DELETE_STATEMENT,
    4: TriggerEvent.INSERT,
    5: TriggerEvent.INSERT_STATEMENT,
    8: TriggerEvent.COMMIT,
    9: TriggerEvent.ROLLBACK,
}

TRIGGER_TIMES: dict[int, TriggerTime] = {
    1: TriggerTime.BEFORE,
    2: TriggerTime.AFTER,
    3: TriggerTime.DEFERRED,
}

TRIGGER_ACTION_TYPES: dict[int, TriggerActionType] = {
    1: TriggerActionType.STATEMENT,
    2: TriggerActionType.REJECT,
    3: TriggerActionType.INVALIDATE_TRANSACTION,
    4: TriggerActionType.PRINT,
}


def lookup_code(table: dict[int, E], code: int | None, unknown: E) -> E:
    """Resolve *code* through *table*, returning *unknown* when absent."""
    if code is None:
        return unknown
    return table.get(code, unknown)


def modify_rule_from_code(code: int | None) -> ModifyRule:
    return lookup_code(MODIFY_RULES, code, ModifyRule.UNKNOWN)


def deferability_from_code(code: int | None) -> Deferability:
    return lookup_code(DEFERABILITIES, code, Deferability.UNKNOWN)


def trigger_event_from_code(code: int | None) -> TriggerEvent:
    return lookup_code(TRIGGER_EVENTS, code, TriggerEvent.UNKNOWN)


def trigger_time_from_code(code: int | None) -> TriggerTime:
    return lookup_code(TRIGGER_TIMES, code, TriggerTime.UNKNOWN)


def trigger_action_type_from_code(code: int | None) -> TriggerActionType:
    return lookup_code(TRIGGER_ACTION_TYPES, code, TriggerActionType.UNKNOWN)
