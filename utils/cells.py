"""
Cell values: a record cell is exactly one of number, text or null.
Every consumer (schema inference, routing, aggregation) goes through cell_kind()
so the three cases are matched explicitly instead of probing raw values.
"""
import math
from enum import Enum
from typing import Any, Optional


class CellKind(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    NULL = "null"


def cell_kind(value: Any) -> CellKind:
    """Classify a raw cell. NaN counts as null; booleans (TRUE/FALSE cells) are text, not numbers."""
    if value is None:
        return CellKind.NULL
    if isinstance(value, float) and math.isnan(value):
        return CellKind.NULL
    if isinstance(value, bool):
        return CellKind.TEXT
    if isinstance(value, (int, float)):
        return CellKind.NUMBER
    return CellKind.TEXT


def is_empty(value: Any) -> bool:
    """null, NaN or empty string."""
    kind = cell_kind(value)
    if kind is CellKind.NULL:
        return True
    return kind is CellKind.TEXT and str(value) == ""


def to_number(value: Any) -> Optional[float]:
    """
    Strict numeric parse: finite numbers and strings that read as a finite
    number in full ("2020", " 3.5 ", "-1e3"). Returns None otherwise.
    """
    kind = cell_kind(value)
    if kind is CellKind.NULL:
        return None
    if kind is CellKind.NUMBER:
        number = float(value)
        return number if math.isfinite(number) else None
    s = str(value).strip()
    if not s or "_" in s:
        return None
    try:
        number = float(s)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
