"""
Input relation schema checks.

Every relation the core consumes is validated up front; any missing
relation, missing column, wrong column type, null key or duplicate key
raises InputSchemaError naming the relation and column, before any stage runs.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from numbers import Number

import pandas as pd
from pandas.api import types as ptypes

from entity_mapping.core.exceptions import InputSchemaError

TX_INPUTS = "tx_inputs"
TX_OUTPUTS = "tx_outputs"
TRANSACTIONS = "transactions"
BLOCKS = "blocks"

RELATIONS = (TX_INPUTS, TX_OUTPUTS, TRANSACTIONS, BLOCKS)

KIND_INT = "int"
KIND_STR = "str"
KIND_NUMBER = "number"
KIND_BOOL = "bool"
KIND_TIME = "time"

SCHEMA: dict[str, dict[str, str]] = {
    TX_INPUTS: {"tx_id": KIND_INT, "prevout_tx_id": KIND_INT, "input_index": KIND_INT},
    TX_OUTPUTS: {"tx_id": KIND_INT, "address": KIND_STR, "amount": KIND_NUMBER, "is_spent": KIND_BOOL},
    TRANSACTIONS: {"tx_id": KIND_INT, "block_id": KIND_INT},
    BLOCKS: {"block_id": KIND_INT, "time": KIND_TIME},
}

UNIQUE_KEYS: dict[str, str] = {
    TRANSACTIONS: "tx_id",
    BLOCKS: "block_id",
}


def _is_int(s: pd.Series) -> bool:
    return ptypes.is_integer_dtype(s) and not ptypes.is_bool_dtype(s)


def _is_str(s: pd.Series) -> bool:
    return ptypes.is_string_dtype(s) or ptypes.is_object_dtype(s)


def _is_number(s: pd.Series) -> bool:
    if ptypes.is_bool_dtype(s):
        return False
    if ptypes.is_numeric_dtype(s):
        return True
    if ptypes.is_object_dtype(s):
        # decimal.Decimal values arrive as object columns; strings do not count
        return bool(s.map(lambda v: isinstance(v, Number) and not isinstance(v, bool)).all())
    return False


def _is_bool(s: pd.Series) -> bool:
    if ptypes.is_bool_dtype(s):
        return True
    if _is_int(s):
        return bool(s.isin([0, 1]).all())
    return False


def _is_time(s: pd.Series) -> bool:
    return ptypes.is_datetime64_any_dtype(s)


_CHECKS: dict[str, Callable[[pd.Series], bool]] = {
    KIND_INT: _is_int,
    KIND_STR: _is_str,
    KIND_NUMBER: _is_number,
    KIND_BOOL: _is_bool,
    KIND_TIME: _is_time,
}


def validate_relation(name: str, frame: pd.DataFrame | None) -> None:
    """Check one relation against SCHEMA. Raises InputSchemaError."""
    if frame is None:
        raise InputSchemaError(name, None, "relation is missing")
    if not isinstance(frame, pd.DataFrame):
        raise InputSchemaError(name, None, f"expected a DataFrame, got {type(frame).__name__}")
    for column, kind in SCHEMA[name].items():
        if column not in frame.columns:
            raise InputSchemaError(name, column, "required column is missing")
        series = frame[column]
        if series.isna().any():
            raise InputSchemaError(name, column, "column contains null values")
        if len(series) and not _CHECKS[kind](series):
            raise InputSchemaError(name, column, f"expected {kind} values, got dtype {series.dtype}")
    key = UNIQUE_KEYS.get(name)
    if key is not None and frame[key].duplicated().any():
        raise InputSchemaError(name, key, "key column contains duplicate values")


def validate_relations(frames: Mapping[str, pd.DataFrame | None]) -> None:
    """Validate all four relations; the first offending relation/column is reported."""
    for name in RELATIONS:
        validate_relation(name, frames.get(name))
