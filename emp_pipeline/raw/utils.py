# emp_pipeline/raw/utils.py
"""
Cleaning utilities for raw employee-records columns.
Dates are returned as datetime.date values so the 9999-01-01 "current"
sentinel survives (nanosecond pandas timestamps stop at 2262).
"""

from datetime import date, datetime
from typing import Iterable, Optional

import pandas as pd

# Placeholder values that should be treated as null
NULL_PLACEHOLDERS = {
    '[NULL]', '[null]', 'NULL', 'null', 'None', 'none',
    'N/A', 'n/a', 'NA', 'na', 'NaN', 'nan', 'NaT',
    '', '-', '--', '.', 'undefined'
}

# "Still current" marker used by the employees dataset
CURRENT_SENTINEL = date(9999, 1, 1)


def clean_string_column(series: pd.Series, default_value: str = None) -> pd.Series:
    """
    Strip whitespace and quotes, turning null placeholders into None.

    Args:
        series: Pandas Series to clean
        default_value: Value to use for nulls (None keeps them null)
    """
    def _clean(value):
        if value is None:
            return default_value
        try:
            if pd.isna(value):
                return default_value
        except (TypeError, ValueError):
            pass
        text = str(value).strip().strip('"').strip("'").strip()
        return default_value if text in NULL_PLACEHOLDERS else text

    return series.map(_clean).astype(object)


def clean_numeric_column(series: pd.Series, default_value: Optional[float] = None) -> pd.Series:
    """Clean placeholders, then coerce to numbers (unparseable values become null)."""
    cleaned = clean_string_column(series, default_value=None)
    result = pd.to_numeric(cleaned, errors="coerce")
    if default_value is not None:
        result = result.fillna(default_value)
    return result


def to_date(value) -> Optional[date]:
    """
    Convert a scalar to datetime.date.

    Handles date/datetime/Timestamp values, ISO strings (optionally quoted or
    carrying a time part) and null placeholders. Unparseable values become None.
    """
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip().strip('"').strip("'").strip()
    if text in NULL_PLACEHOLDERS:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def clean_date_column(series: pd.Series) -> pd.Series:
    """Clean a date column into an object Series of datetime.date / None."""
    return series.map(to_date).astype(object)


def normalize_date_columns(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Apply clean_date_column to every listed column present in df."""
    df = df.copy()
    for col in columns:
        if col in df.columns:
            df[col] = clean_date_column(df[col])
    return df


def to_records(df: pd.DataFrame) -> list:
    """Convert a DataFrame to insertable dicts, replacing NaN/NaT with None."""
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def with_int_keys(df: pd.DataFrame) -> pd.DataFrame:
    """Copy of df with emp_no as int64, so merges line up even on empty frames."""
    df = df.copy()
    df["emp_no"] = df["emp_no"].astype("int64")
    return df
