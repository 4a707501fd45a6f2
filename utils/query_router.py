"""
Query router: maps a free-text question to a chart type and a
(group_by, value) column pair BEFORE aggregation.

Keyword tables are plain data (ordered, first match wins) and can be replaced
from a JSON file named by ROUTING_RULES_PATH:

    {
      "chart_rules": [{"keywords": ["trend", "month"], "chart_type": "line"}],
      "default_chart": "bar",
      "group_by_hints": [{"keywords": ["region"], "column_hint": "region"}],
      "value_hints": [{"keywords": ["sales"], "column_hint": "sales"}]
    }

Keys missing from the file keep their defaults.
"""
import copy
import json
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from utils.cells import CellKind, cell_kind, to_number

load_dotenv()

logger = logging.getLogger(__name__)

ROUTING_RULES_PATH = os.getenv("ROUTING_RULES_PATH")

CHART_TYPES = {"bar", "line", "pie", "scatter"}

# Checked in order; trend keywords win over share keywords
DEFAULT_RULES: Dict[str, Any] = {
    "chart_rules": [
        {"keywords": ["trend", "time", "quarter", "month"], "chart_type": "line"},
        {"keywords": ["share", "percentage", "distribution"], "chart_type": "pie"},
    ],
    "default_chart": "bar",
    "group_by_hints": [
        {"keywords": ["region"], "column_hint": "region"},
        {"keywords": ["category"], "column_hint": "category"},
        {"keywords": ["product"], "column_hint": "product"},
    ],
    "value_hints": [
        {"keywords": ["sales"], "column_hint": "sales"},
        {"keywords": ["profit"], "column_hint": "profit"},
        {"keywords": ["revenue"], "column_hint": "revenue"},
    ],
}

_rules: Optional[Dict[str, Any]] = None


def _validate_rules(rules: Dict[str, Any]) -> None:
    for rule in rules["chart_rules"]:
        if rule.get("chart_type") not in CHART_TYPES:
            raise ValueError(f"unsupported chart_type in routing rules: {rule.get('chart_type')!r}")
        if not rule.get("keywords"):
            raise ValueError("chart rule without keywords")
    if rules["default_chart"] not in CHART_TYPES:
        raise ValueError(f"unsupported default_chart in routing rules: {rules['default_chart']!r}")
    for table in ("group_by_hints", "value_hints"):
        for hint in rules[table]:
            if not hint.get("keywords") or not hint.get("column_hint"):
                raise ValueError(f"{table} entries need keywords and column_hint")


def load_routing_rules(path: Optional[str] = None) -> Dict[str, Any]:
    """Default rule tables, overridden key-by-key from a JSON file when path is given."""
    rules = copy.deepcopy(DEFAULT_RULES)
    if path:
        with open(path, encoding="utf-8") as f:
            overrides = json.load(f)
        for key in DEFAULT_RULES:
            if key in overrides:
                rules[key] = overrides[key]
        logger.info("routing_rules_loaded: path=%s keys=%s", path, sorted(k for k in overrides if k in DEFAULT_RULES))
    _validate_rules(rules)
    return rules


def get_routing_rules() -> Dict[str, Any]:
    """Process-wide rules (loaded once)."""
    global _rules
    if _rules is None:
        _rules = load_routing_rules(ROUTING_RULES_PATH)
    return _rules


def _contains_any(text: str, keywords: List[str]) -> bool:
    return any(str(k).lower() in text for k in keywords)


def select_chart_type(query: str, rules: Optional[Dict[str, Any]] = None) -> str:
    rules = rules or get_routing_rules()
    q = (query or "").lower()
    for rule in rules["chart_rules"]:
        if _contains_any(q, rule["keywords"]):
            return rule["chart_type"]
    return rules["default_chart"]


def _hinted_column(query: str, columns: List[str], hints: List[Dict[str, Any]]) -> Optional[str]:
    """First hint whose keyword is in the query AND whose column_hint is in some column name."""
    q = (query or "").lower()
    for hint in hints:
        if not _contains_any(q, hint["keywords"]):
            continue
        needle = str(hint["column_hint"]).lower()
        for col in columns:
            if needle in col.lower():
                return col
    return None


def is_categorical(rows: List[Dict[str, Any]], column: str) -> bool:
    """1 < distinct values < half the row count (nulls count as a value)."""
    distinct = {row.get(column) for row in rows}
    return 1 < len(distinct) < 0.5 * len(rows)


def is_numeric_column(rows: List[Dict[str, Any]], column: str) -> bool:
    """At least one non-null value, and every non-null value parses as a number."""
    values = [row.get(column) for row in rows if cell_kind(row.get(column)) is not CellKind.NULL]
    return bool(values) and all(to_number(v) is not None for v in values)


def select_group_by(
    query: str,
    rows: List[Dict[str, Any]],
    columns: List[str],
    rules: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    rules = rules or get_routing_rules()
    hinted = _hinted_column(query, columns, rules["group_by_hints"])
    if hinted:
        return hinted
    for col in columns:
        if is_categorical(rows, col):
            return col
    return None


def select_value_column(
    query: str,
    rows: List[Dict[str, Any]],
    columns: List[str],
    rules: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    rules = rules or get_routing_rules()
    hinted = _hinted_column(query, columns, rules["value_hints"])
    if hinted:
        return hinted
    for col in columns:
        if is_numeric_column(rows, col):
            return col
    return None


def route_query(
    query: str,
    rows: List[Dict[str, Any]],
    columns: List[str],
    rules: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Returns {"chart_type", "group_by", "value_column", "has_chart"}.
    has_chart is False when either column could not be resolved; the caller then
    answers without a chart.
    """
    rules = rules or get_routing_rules()
    chart_type = select_chart_type(query, rules)
    group_by = select_group_by(query, rows, columns, rules)
    value_column = select_value_column(query, rows, columns, rules)
    has_chart = group_by is not None and value_column is not None
    logger.info(
        "router_decision: chart=%s group_by=%s value=%s has_chart=%s",
        chart_type, group_by, value_column, has_chart,
    )
    return {
        "chart_type": chart_type,
        "group_by": group_by,
        "value_column": value_column,
        "has_chart": has_chart,
    }
