from utils.schema_inference import infer_column_type, infer_column_types, is_date, is_number


def test_year_strings_are_numbers_not_dates() -> None:
    assert infer_column_type(["2020", "2021", "2022"]) == "number"


def test_numeric_cells_and_numeric_strings() -> None:
    assert infer_column_type([1, 2.5, "3", " -4e2 "]) == "number"


def test_dates() -> None:
    assert infer_column_type(["2024-01-05", "2024-02-10", "March 3, 2024"]) == "date"


def test_mixed_values_are_text() -> None:
    assert infer_column_type(["East", "2024-01-05", 3]) == "text"


def test_no_values_is_unknown() -> None:
    assert infer_column_type([]) == "unknown"


def test_empty_cells_are_ignored_per_column() -> None:
    rows = [
        {"Region": "East", "Sales": 100, "Date": "2024-01-01", "Blank": None},
        {"Region": "", "Sales": None, "Date": "2024-01-02", "Blank": ""},
        {"Region": "West", "Sales": "250", "Date": None, "Blank": None},
    ]
    types = infer_column_types(rows, ["Region", "Sales", "Date", "Blank"])
    assert types == {"Region": "text", "Sales": "number", "Date": "date", "Blank": "unknown"}


def test_missing_keys_count_as_empty() -> None:
    rows = [{"a": 1, "b": "x"}, {"a": 2}]
    assert infer_column_types(rows, ["a", "b"]) == {"a": "number", "b": "text"}


def test_value_predicates() -> None:
    assert is_number("12.5")
    assert not is_number("12abc")
    assert not is_number("nan")
    assert not is_number("inf")
    assert not is_number(float("nan"))
    assert is_date("2023-12-31")
    assert not is_date("East")
    assert not is_date(None)


def test_boolean_column_is_text() -> None:
    rows = [{"Active": True, "Sales": 10}, {"Active": False, "Sales": 20}]
    assert infer_column_types(rows, ["Active", "Sales"]) == {"Active": "text", "Sales": "number"}
    assert not is_number(True)
