"""
Analyst agent: grouped aggregation for charts, calculations only.
Uses Decimal for the running sums so repeated float additions do not drift.
"""
import logging
import math
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional

from utils.cells import CellKind, cell_kind

logger = logging.getLogger(__name__)

MAX_GROUPS = 10

PALETTE = [
    "#2563EB", "#0D9488", "#EA580C", "#7C3AED", "#DC2626",
    "#059669", "#7C2D12", "#1E40AF", "#BE185D", "#0F766E",
]

# Leading numeric prefix, as in "120 units" -> 120
_NUMBER_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def _numeric(val: Any) -> float:
    """
    Lenient numeric parse for sums. Thousands separators are stripped, so "1,200"
    counts as 1200 rather than 1, and a leading number is read from text such as
    "120 units". Anything unparseable, including booleans, counts as 0.
    """
    kind = cell_kind(val)
    if kind is CellKind.NULL:
        return 0.0
    if kind is CellKind.NUMBER:
        number = float(val)
        return number if math.isfinite(number) else 0.0
    match = _NUMBER_PREFIX.match(str(val).replace(",", "").strip())
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def _is_blank_group(val: Any) -> bool:
    """Rows whose group value is null, NaN, empty text, zero or False are skipped."""
    if val is False:
        return True
    kind = cell_kind(val)
    if kind is CellKind.NULL:
        return True
    if kind is CellKind.NUMBER:
        return val == 0
    return str(val) == ""


def group_label(val: Any) -> str:
    """Group key as text; whole floats drop the trailing .0."""
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def palette_colors(count: int) -> List[str]:
    return [PALETTE[i % len(PALETTE)] for i in range(count)]


def group_sums(rows: List[Dict[str, Any]], group_by: str, value_column: str) -> Dict[str, float]:
    """Sum value_column per group_by value, keeping first-seen group order."""
    sums: Dict[str, Decimal] = {}
    for row in rows:
        group = row.get(group_by)
        if _is_blank_group(group):
            continue
        key = group_label(group)
        sums[key] = sums.get(key, Decimal("0")) + Decimal(repr(_numeric(row.get(value_column))))
    return {k: float(v) for k, v in sums.items()}


def aggregate(
    rows: List[Dict[str, Any]],
    group_by: str,
    value_column: str,
    chart_type: str = "bar",
    limit: int = MAX_GROUPS,
) -> Dict[str, Any]:
    """
    Grouped sum, ranked by value descending (ties keep first-seen order),
    truncated to the top `limit` groups.
    Returns a chart spec dict: {"type", "title", "labels", "series", "colors"}.
    """
    sums = group_sums(rows, group_by, value_column)
    # sorted() is stable with reverse=True, so equal sums keep first-seen order
    ranked = sorted(sums.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    labels = [label for label, _ in ranked]
    series = [value for _, value in ranked]
    logger.info(
        "aggregate: group_by=%s value=%s groups=%s kept=%s",
        group_by, value_column, len(sums), len(labels),
    )
    return {
        "type": chart_type,
        "title": f"{value_column} by {group_by}",
        "labels": labels,
        "series": series,
        "colors": palette_colors(len(labels)),
    }


def build_chart(
    rows: List[Dict[str, Any]],
    route: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """Chart spec for a router decision, or None when the router found no column pair."""
    if not route.get("has_chart"):
        return None
    return aggregate(rows, route["group_by"], route["value_column"], chart_type=route["chart_type"])
