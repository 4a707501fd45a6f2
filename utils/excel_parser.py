"""
Spreadsheet parsing with pandas.
Supports .csv, .xlsx and .xls; reads the first sheet only and hands back plain
row records (header -> cell) in source order.
"""
import logging
import math
import os
from io import BytesIO
from typing import Any, Dict, List

import pandas as pd

from utils.errors import ParseError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".xlsx", ".xls", ".csv"}
# Only blank cells are null; text such as "NA", "None" or "null" is kept as written
EMPTY_CELL_MARKERS = [""]


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def check_extension(filename: str) -> str:
    """Return the lowercased extension or raise ValidationError for unsupported types."""
    ext = file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError("Only Excel and CSV files are allowed")
    return ext


def _serialize_value(v: Any) -> Any:
    """Convert NaN/NaT/numpy/pandas scalars to plain JSON-friendly values."""
    if v is None:
        return None
    if v is pd.NaT:
        return None
    if isinstance(v, float) and math.isnan(v):
        return None
    if hasattr(v, "item") and not isinstance(v, (str, bytes)):
        # numpy scalar -> python scalar
        v = v.item()
        if isinstance(v, float) and math.isnan(v):
            return None
    if isinstance(v, (int, float, str, bool)):
        return v
    if hasattr(v, "isoformat"):
        return v.isoformat()
    return str(v)


def dataframe_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """One dict per DataFrame row, keyed by the raw header text; NaN -> None."""
    columns = [str(c) for c in df.columns]
    records = []
    for values in df.itertuples(index=False, name=None):
        records.append({c: _serialize_value(v) for c, v in zip(columns, values)})
    return records


def read_dataframe(content: bytes, filename: str) -> pd.DataFrame:
    """
    Parse raw upload bytes into a DataFrame.
    - .csv: utf-8 text via pandas.read_csv.
    - .xlsx/.xls: first worksheet via pandas.read_excel.
    Raises ParseError (400) for an empty file and ParseError (500) for anything unreadable.
    """
    ext = check_extension(filename)
    if not content:
        raise ParseError("No data found in the file", status_code=400)
    buffer = BytesIO(content)
    try:
        if ext == ".csv":
            return pd.read_csv(
                buffer,
                encoding="utf-8",
                encoding_errors="replace",
                keep_default_na=False,
                na_values=EMPTY_CELL_MARKERS,
            )
        return pd.read_excel(buffer, sheet_name=0, keep_default_na=False, na_values=EMPTY_CELL_MARKERS)
    except pd.errors.EmptyDataError:
        raise ParseError("No data found in the file", status_code=400)
    except Exception as e:
        logger.warning("parse_failed: filename=%s error=%s", filename, e)
        raise ParseError(f"Failed to process file: {e}")


def parse_upload(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """Raw bytes -> row records. Rows are not cleaned here; see utils.normalizer."""
    df = read_dataframe(content, filename)
    records = dataframe_to_records(df)
    logger.info("parsed_upload: filename=%s rows=%s columns=%s", filename, len(records), len(df.columns))
    return records
