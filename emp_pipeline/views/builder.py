# emp_pipeline/views/builder.py
"""
Derived view builders.

emp_details: one row per employee with the department/title held at hire and
at the end of the record, and the last salary to_date.

emp_salaries: each salary period enriched with the department and title whose
validity window contains the period's from_date.

Both are computed with a sort-and-group pass per history table. Ties are
broken deterministically:
- hire/end assignment: order by (from_date, to_date, value) ascending with
  null to_date (open-ended) sorted last, hire takes the first row, end takes
  the last row
- assignment at salary start: order candidates by (to_date, from_date, value)
  ascending and take the last row, so the latest to_date wins
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from emp_pipeline.raw.utils import with_int_keys

logger = logging.getLogger(__name__)

EMPLOYEE_COLUMNS = ["emp_no", "birth_date", "first_name", "last_name", "gender", "hire_date"]

EMP_DETAILS_COLUMNS = EMPLOYEE_COLUMNS + [
    "end_date", "dept_no_hire", "title_hire", "dept_no_end", "title_end",
]

EMP_SALARIES_COLUMNS = ["emp_no", "salary", "from_date", "to_date", "dept_no", "title"]


def nulls_to_none(df: pd.DataFrame) -> pd.DataFrame:
    """Replace NaN/NaT/NA with None in columns that contain nulls."""
    df = df.copy()
    for col in df.columns:
        if df[col].isna().any():
            df[col] = df[col].astype(object).where(df[col].notna(), None)
    return df


def empty_frame(columns) -> pd.DataFrame:
    """Empty frame keyed by an int64 emp_no column."""
    data = {"emp_no": pd.Series(dtype="int64")}
    data.update({col: pd.Series(dtype=object) for col in columns if col != "emp_no"})
    return pd.DataFrame(data)


def first_and_last_assignment(
    assignments: pd.DataFrame,
    value_col: str,
    first_col: str,
    last_col: str,
) -> pd.DataFrame:
    """
    Per employee, the value of the earliest and the latest assignment.

    Args:
        assignments: History rows with emp_no, value_col, from_date, to_date
        value_col: Column carrying the assigned value (dept_no, title)
        first_col: Output column for the minimum-from_date value
        last_col: Output column for the maximum-from_date value

    Returns:
        DataFrame with emp_no, first_col, last_col (one row per employee present)
    """
    if assignments.empty:
        return empty_frame([first_col, last_col])

    ordered = assignments.sort_values(
        ["emp_no", "from_date", "to_date", value_col], kind="mergesort", na_position="last"
    )
    first = ordered.drop_duplicates("emp_no", keep="first")[["emp_no", value_col]]
    last = ordered.drop_duplicates("emp_no", keep="last")[["emp_no", value_col]]

    return (
        first.rename(columns={value_col: first_col})
        .merge(last.rename(columns={value_col: last_col}), on="emp_no", how="inner")
    )


def latest_end_date(salaries: pd.DataFrame) -> pd.DataFrame:
    """Per employee, the maximum salary to_date."""
    if salaries.empty:
        return empty_frame(["end_date"])

    ordered = salaries.dropna(subset=["to_date"]).sort_values(["emp_no", "to_date"], kind="mergesort")
    last = ordered.drop_duplicates("emp_no", keep="last")
    return last[["emp_no", "to_date"]].rename(columns={"to_date": "end_date"})


def build_emp_details(
    employees: pd.DataFrame,
    salaries: pd.DataFrame,
    dept_emp: pd.DataFrame,
    titles: pd.DataFrame,
) -> pd.DataFrame:
    """
    Build emp_details: exactly one row per employee.

    Employees without salary, department or title rows are kept with null
    derived fields.
    """
    employees, salaries, dept_emp, titles = (
        with_int_keys(frame) for frame in (employees, salaries, dept_emp, titles)
    )
    df = employees[EMPLOYEE_COLUMNS].drop_duplicates("emp_no")

    df = df.merge(latest_end_date(salaries), on="emp_no", how="left")
    df = df.merge(
        first_and_last_assignment(dept_emp, "dept_no", "dept_no_hire", "dept_no_end"),
        on="emp_no",
        how="left",
    )
    df = df.merge(
        first_and_last_assignment(titles, "title", "title_hire", "title_end"),
        on="emp_no",
        how="left",
    )

    df = nulls_to_none(df[EMP_DETAILS_COLUMNS]).reset_index(drop=True)
    logger.info(f"emp_details built: {len(df)} employees")
    return df


def assignment_at_start(
    salaries: pd.DataFrame,
    assignments: pd.DataFrame,
    value_col: str,
) -> pd.Series:
    """
    For each salary row, the assignment value whose window contains its from_date.

    A window [from_date, to_date] contains the start when
    from_date <= start <= to_date (both ends inclusive). Among overlapping
    candidates the one with the latest to_date wins.

    Returns:
        Series aligned with salaries' positional order (None where nothing covers)
    """
    n_rows = len(salaries)
    if n_rows == 0 or assignments.empty:
        return pd.Series([None] * n_rows, dtype=object)

    starts = pd.DataFrame({
        "_row": np.arange(n_rows),
        "emp_no": salaries["emp_no"].to_numpy(),
        "_start": salaries["from_date"].to_numpy(),
    })
    candidates = starts.merge(
        assignments[["emp_no", value_col, "from_date", "to_date"]],
        on="emp_no",
        how="inner",
    )
    covers = (candidates["from_date"] <= candidates["_start"]) & (candidates["to_date"] >= candidates["_start"])
    candidates = candidates[covers]

    best = (
        candidates.sort_values(["_row", "to_date", "from_date", value_col], kind="mergesort")
        .drop_duplicates("_row", keep="last")
        .set_index("_row")[value_col]
    )
    result = best.reindex(np.arange(n_rows))
    return result.astype(object).where(result.notna(), None).reset_index(drop=True)


def build_emp_salaries(
    salaries: pd.DataFrame,
    dept_emp: pd.DataFrame,
    titles: pd.DataFrame,
) -> pd.DataFrame:
    """
    Build emp_salaries: one row per salary period with dept_no and title.

    Salary periods are not split when the department or title changes mid-period.
    """
    salaries, dept_emp, titles = (with_int_keys(frame) for frame in (salaries, dept_emp, titles))
    df = salaries[["emp_no", "salary", "from_date", "to_date"]].reset_index(drop=True)
    df["dept_no"] = assignment_at_start(df, dept_emp, "dept_no")
    df["title"] = assignment_at_start(df, titles, "title")

    df = nulls_to_none(df[EMP_SALARIES_COLUMNS])
    logger.info(f"emp_salaries built: {len(df)} salary periods")
    return df


def build_views(
    employees: pd.DataFrame,
    salaries: pd.DataFrame,
    dept_emp: pd.DataFrame,
    titles: pd.DataFrame,
    view_name: Optional[str] = None,
) -> dict:
    """Build both views (or only view_name) from base frames."""
    views = {}
    if view_name in (None, "emp_details"):
        views["emp_details"] = build_emp_details(employees, salaries, dept_emp, titles)
    if view_name in (None, "emp_salaries"):
        views["emp_salaries"] = build_emp_salaries(salaries, dept_emp, titles)
    return views
