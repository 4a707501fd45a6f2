"""
Normalize parsed rows: header text and string cells are cleaned, numbers and
nulls pass through untouched.
"""
import re
from typing import Any, Dict, List, Tuple

from utils.errors import ParseError

_WHITESPACE = re.compile(r"\s+")


def normalize_column_name(name: Any) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    return _WHITESPACE.sub(" ", str(name).strip())


def _clean_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def clean_row(row: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in row.items():
        cleaned[normalize_column_name(key)] = _clean_value(value)
    return cleaned


def normalize(records: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[str]]:
    """
    Clean every row and derive the column list from the first cleaned row.
    Returns (rows, columns). Raises ParseError when there are no data rows.

    Rows whose key set differs from the first row are kept as they are; they are
    not padded or reconciled. Two raw headers that clean to the same name collapse
    into one key (last value wins).
    """
    if not records:
        raise ParseError("No data found in the file", status_code=400)
    rows = [clean_row(r) for r in records]
    columns = list(rows[0].keys())
    return rows, columns
