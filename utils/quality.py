"""
Data quality heuristics: completeness, duplicate rows, coarse tier.
These are heuristics for the upload summary, not certified quality metrics.
"""
import json
from typing import Any, Dict, List

from utils.cells import is_empty

EXCELLENT = "excellent"
GOOD = "good"
FAIR = "fair"
POOR = "poor"

# Inclusive lower bounds, checked top-down
TIER_THRESHOLDS = [
    (95.0, EXCELLENT),
    (85.0, GOOD),
    (70.0, FAIR),
]

NO_DATA_ISSUE = "No data found"


def quality_tier(completeness: float) -> str:
    for lower_bound, tier in TIER_THRESHOLDS:
        if completeness >= lower_bound:
            return tier
    return POOR


def row_signature(row: Dict[str, Any]) -> str:
    """Canonical serialization; key order does not matter."""
    return json.dumps(row, sort_keys=True, default=str)


def count_duplicates(rows: List[Dict[str, Any]]) -> int:
    return len(rows) - len({row_signature(r) for r in rows})


def analyze_quality(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Score completeness and flag anomalies.

    totalCells = row count x key count of the FIRST row; empty cells are counted
    over every key of every row. Returns
    {"tier", "completeness", "issues", "total_cells", "empty_cells", "duplicate_count"}.
    """
    if not rows or not rows[0]:
        return {
            "tier": POOR,
            "completeness": 0.0,
            "issues": [NO_DATA_ISSUE],
            "total_cells": 0,
            "empty_cells": 0,
            "duplicate_count": 0,
        }

    total_cells = len(rows) * len(rows[0])
    empty_cells = sum(1 for row in rows for value in row.values() if is_empty(value))
    # Divergent rows can push empty_cells past total_cells; clamp at 0
    raw_completeness = max(0.0, (total_cells - empty_cells) / total_cells * 100)
    completeness = round(raw_completeness, 1)

    issues = []
    if empty_cells > 0:
        issues.append(f"{empty_cells} empty cells found ({100 - raw_completeness:.1f}% missing data)")
    duplicate_count = count_duplicates(rows)
    if duplicate_count > 0:
        issues.append(f"{duplicate_count} duplicate rows detected")

    return {
        # Tier follows the rounded figure, so 94.96 reports 95.0 and "excellent"
        "tier": quality_tier(completeness),
        "completeness": completeness,
        "issues": issues,
        "total_cells": total_cells,
        "empty_cells": empty_cells,
        "duplicate_count": duplicate_count,
    }
