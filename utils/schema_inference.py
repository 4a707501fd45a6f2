"""
Column type inference: number | date | text | unknown.
Precedence is fixed: the numeric check always runs before the date check, so
year-like strings such as "2020" are numbers, never dates.
"""
from typing import Any, Dict, List

import pandas as pd

from utils.cells import CellKind, cell_kind, is_empty, to_number

NUMBER = "number"
DATE = "date"
TEXT = "text"
UNKNOWN = "unknown"


def is_number(value: Any) -> bool:
    return to_number(value) is not None


def is_date(value: Any) -> bool:
    """True if the value parses to a valid calendar date (pandas.to_datetime)."""
    if cell_kind(value) is CellKind.NULL:
        return False
    try:
        parsed = pd.to_datetime(value, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return False
    return not pd.isna(parsed)


def column_values(rows: List[Dict[str, Any]], column: str) -> List[Any]:
    """Non-empty values of one column across all rows (missing keys count as empty)."""
    return [row.get(column) for row in rows if not is_empty(row.get(column))]


def infer_column_type(values: List[Any]) -> str:
    if not values:
        return UNKNOWN
    if all(is_number(v) for v in values):
        return NUMBER
    if all(is_date(v) for v in values):
        return DATE
    return TEXT


def infer_column_types(rows: List[Dict[str, Any]], columns: List[str]) -> Dict[str, str]:
    """Map every declared column to its inferred type, in column order."""
    return {c: infer_column_type(column_values(rows, c)) for c in columns}
