import pytest

from utils.quality import analyze_quality, count_duplicates, quality_tier


def test_one_empty_cell_in_six() -> None:
    rows = [{"a": 1, "b": 2}, {"a": 3, "b": None}, {"a": 5, "b": 6}]
    report = analyze_quality(rows)
    assert report["total_cells"] == 6
    assert report["empty_cells"] == 1
    assert report["completeness"] == 83.3
    assert report["tier"] == "fair"
    assert report["issues"] == ["1 empty cells found (16.7% missing data)"]


def test_duplicate_rows_are_reported() -> None:
    rows = [
        {"Region": "East", "Sales": 1},
        {"Region": "West", "Sales": 2},
        {"Region": "East", "Sales": 1},
        {"Region": "North", "Sales": 3},
        {"Region": "South", "Sales": 4},
    ]
    report = analyze_quality(rows)
    assert "1 duplicate rows detected" in report["issues"]
    assert report["duplicate_count"] == 1
    assert report["tier"] == "excellent"


def test_duplicates_ignore_key_order() -> None:
    assert count_duplicates([{"a": 1, "b": 2}, {"b": 2, "a": 1}]) == 1


@pytest.mark.parametrize(
    "completeness, tier",
    [(100.0, "excellent"), (95.0, "excellent"), (94.9, "good"), (85.0, "good"),
     (84.9, "fair"), (70.0, "fair"), (69.9, "poor"), (0.0, "poor")],
)
def test_tier_lower_bounds_are_inclusive(completeness, tier) -> None:
    assert quality_tier(completeness) == tier


def test_exactly_85_percent_complete_is_good() -> None:
    rows = [{"id": i, "v": None if i < 3 else i} for i in range(10)]
    report = analyze_quality(rows)
    assert report["completeness"] == 85.0
    assert report["tier"] == "good"


def test_empty_strings_count_as_empty() -> None:
    report = analyze_quality([{"a": "", "b": "x"}, {"a": "y", "b": "z"}])
    assert report["empty_cells"] == 1


def test_no_rows_is_poor_without_division() -> None:
    report = analyze_quality([])
    assert report["tier"] == "poor"
    assert report["completeness"] == 0.0
    assert report["issues"] == ["No data found"]


def test_missing_share_matches_completeness() -> None:
    rows = [
        {"a": 1, "b": None, "c": "x"},
        {"a": None, "b": None, "c": "y"},
        {"a": 3, "b": 4, "c": ""},
        {"a": 5, "b": 6, "c": "z"},
    ]
    report = analyze_quality(rows)
    missing = report["empty_cells"] / report["total_cells"] * 100
    assert missing == pytest.approx(100 - report["completeness"], abs=0.05)


def test_tier_follows_rounded_completeness() -> None:
    # 19 empty cells in 377 -> 94.96, which rounds to 95.0
    rows = [{"a": i} for i in range(358)] + [{"a": None} for _ in range(19)]
    report = analyze_quality(rows)
    assert report["completeness"] == 95.0
    assert report["tier"] == "excellent"
