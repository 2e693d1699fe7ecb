# emp_pipeline/detect/anomalies.py
"""
Anomaly detection for the salary, department and title histories.

All checks are read-only. Their findings feed the corrector's preconditions
and are logged for an operator to review:
- hire date vs. earliest from_date per employee (Earlier / Later)
- continuity gaps between consecutive periods
- duplicate (emp_no, from_date) keys
- zero-length periods (from_date == to_date) and whether they are all
  the employee's latest record
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import pandas as pd
from sqlalchemy.engine import Engine

from emp_pipeline.common.exceptions import DetectionError
from emp_pipeline.common.logging import log_banner
from emp_pipeline.raw.utils import with_int_keys
from emp_pipeline.common.quality_checks import (
    QCReport,
    QCResult,
    check_referential_integrity,
    ERROR,
    WARNING,
    INFO,
)

logger = logging.getLogger(__name__)

# History table -> column carrying the period's value
HISTORY_TABLES: Dict[str, str] = {
    "titles": "title",
    "dept_emp": "dept_no",
    "salaries": "salary",
}

# Gaps in these tables come from concurrent assignments and are expected
TOLERATED_GAP_TABLES = {"dept_emp"}

EARLIER = "Earlier"
LATER = "Later"
SAME = "Same"


def require_columns(df: pd.DataFrame, table_name: str, columns) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DetectionError(f"{table_name} is missing columns {missing}", table_name=table_name)


def classify_hire_date(hire_date, earliest_from_date) -> str:
    """Position of the hire date relative to the earliest history record."""
    if hire_date < earliest_from_date:
        return EARLIER
    if hire_date > earliest_from_date:
        return LATER
    return SAME


def earliest_from_dates(history: pd.DataFrame) -> pd.DataFrame:
    """Per employee, the minimum from_date (emp_no, earliest_from_date)."""
    ordered = history.dropna(subset=["from_date"]).sort_values(["emp_no", "from_date"], kind="mergesort")
    first = ordered.drop_duplicates("emp_no", keep="first")
    return first[["emp_no", "from_date"]].rename(columns={"from_date": "earliest_from_date"}).reset_index(drop=True)


def find_hire_date_mismatches(employees: pd.DataFrame, history: pd.DataFrame, table_name: str) -> pd.DataFrame:
    """
    Employees whose hire date differs from their earliest from_date in history.

    Only employees present in both frames are compared. Rows classified Same
    are excluded.

    Returns:
        DataFrame with emp_no, hire_date, earliest_from_date, hire_date_position
    """
    require_columns(employees, "employees", ["emp_no", "hire_date"])
    require_columns(history, table_name, ["emp_no", "from_date"])
    columns = ["emp_no", "hire_date", "earliest_from_date", "hire_date_position"]

    merged = with_int_keys(employees[["emp_no", "hire_date"]].dropna(subset=["hire_date"])).merge(
        earliest_from_dates(with_int_keys(history)), on="emp_no", how="inner"
    )
    if merged.empty:
        return pd.DataFrame(columns=columns)

    merged["hire_date_position"] = [
        classify_hire_date(h, e) for h, e in zip(merged["hire_date"], merged["earliest_from_date"])
    ]
    mismatches = merged[merged["hire_date_position"] != SAME]
    return mismatches[columns].sort_values("emp_no").reset_index(drop=True)


def find_continuity_gaps(history: pd.DataFrame, table_name: str) -> pd.DataFrame:
    """
    Rows whose to_date does not lead into the next row's from_date.

    Rows are ordered per employee by from_date; each employee's last row has
    no successor and is never reported. Rows with a null to_date are not
    reported either.

    Returns:
        History columns plus next_from_date for every discontinuity
    """
    value_col = HISTORY_TABLES[table_name]
    require_columns(history, table_name, ["emp_no", value_col, "from_date", "to_date"])
    columns = ["emp_no", value_col, "from_date", "to_date", "next_from_date"]

    if history.empty:
        return pd.DataFrame(columns=columns)

    ordered = history.sort_values(["emp_no", "from_date", "to_date", value_col], kind="mergesort").copy()
    ordered["next_from_date"] = ordered.groupby("emp_no", sort=False)["from_date"].shift(-1)

    comparable = ordered["next_from_date"].notna() & ordered["to_date"].notna()
    gaps = ordered[comparable & (ordered["to_date"] != ordered["next_from_date"])]
    return gaps[columns].reset_index(drop=True)


def find_duplicate_periods(history: pd.DataFrame, table_name: str) -> pd.DataFrame:
    """
    (emp_no, from_date) pairs held by more than one row.

    Returns:
        DataFrame with emp_no, from_date, count
    """
    require_columns(history, table_name, ["emp_no", "from_date"])
    if history.empty:
        return pd.DataFrame(columns=["emp_no", "from_date", "count"])

    counts = history.groupby(["emp_no", "from_date"], sort=True).size().reset_index(name="count")
    return counts[counts["count"] > 1].reset_index(drop=True)


def find_degenerate_periods(history: pd.DataFrame) -> pd.DataFrame:
    """Rows whose validity window has zero length (from_date == to_date)."""
    if history.empty:
        return history.copy()
    return history[history["from_date"] == history["to_date"]].reset_index(drop=True)


def latest_period_mask(history: pd.DataFrame) -> pd.Series:
    """True for rows whose from_date is their employee's maximum from_date."""
    if history.empty:
        return pd.Series(dtype=bool)
    latest = (
        history.sort_values(["emp_no", "from_date"], kind="mergesort")
        .drop_duplicates("emp_no", keep="last")
        .set_index("emp_no")["from_date"]
    )
    return history["from_date"] == history["emp_no"].map(latest)


@dataclass
class DegenerateCheck:
    """Paired count comparison for zero-length periods."""
    total_count: int
    latest_count: int
    interior_rows: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def counts_match(self) -> bool:
        return self.total_count == self.latest_count

    @property
    def count_comparison(self) -> str:
        return "Counts match" if self.counts_match else "Counts do not match"


def check_degenerate_periods_are_latest(history: pd.DataFrame) -> DegenerateCheck:
    """
    Count zero-length periods, and those that are their employee's latest record.

    The extension rule may only be applied when both counts are equal.
    """
    if history.empty:
        return DegenerateCheck(total_count=0, latest_count=0, interior_rows=history.copy())

    degenerate = history["from_date"] == history["to_date"]
    latest = latest_period_mask(history)
    return DegenerateCheck(
        total_count=int(degenerate.sum()),
        latest_count=int((degenerate & latest).sum()),
        interior_rows=history[degenerate & ~latest].reset_index(drop=True),
    )


@dataclass
class AnomalyReport:
    """All findings of one detection run."""
    hire_date_mismatches: Dict[str, pd.DataFrame] = field(default_factory=dict)
    continuity_gaps: Dict[str, pd.DataFrame] = field(default_factory=dict)
    duplicate_periods: Dict[str, pd.DataFrame] = field(default_factory=dict)
    degenerate_periods: pd.DataFrame = field(default_factory=pd.DataFrame)
    degenerate_check: Optional[DegenerateCheck] = None
    qc: QCReport = field(default_factory=lambda: QCReport(title="ANOMALY REPORT"))

    @property
    def passed(self) -> bool:
        return self.qc.passed

    @property
    def extension_allowed(self) -> bool:
        return self.degenerate_check is not None and self.degenerate_check.counts_match


def _position_counts(mismatches: pd.DataFrame) -> Dict[str, int]:
    counts = mismatches["hire_date_position"].value_counts() if not mismatches.empty else {}
    return {EARLIER: int(counts.get(EARLIER, 0)), LATER: int(counts.get(LATER, 0))}


def run_anomaly_detection(
    frames: Optional[Dict[str, pd.DataFrame]] = None,
    engine: Optional[Engine] = None,
) -> AnomalyReport:
    """
    Run every anomaly check over the base tables.

    Args:
        frames: Base frames keyed by table name (read from the database if not provided)
        engine: Database engine used when frames is not provided

    Returns:
        AnomalyReport with the findings and their QC summary
    """
    if frames is None:
        from emp_pipeline.raw.reader import read_base_tables
        frames = read_base_tables(engine)

    log_banner(logger, "ANOMALY DETECTION")
    report = AnomalyReport()
    employees = frames["employees"]

    for table_name in HISTORY_TABLES:
        history = frames[table_name]

        mismatches = find_hire_date_mismatches(employees, history, table_name)
        report.hire_date_mismatches[table_name] = mismatches
        positions = _position_counts(mismatches)
        report.qc.add(QCResult(
            check_name="hire_date_mismatch",
            table_name=table_name,
            passed=mismatches.empty,
            message=f"{len(mismatches)} employees ({positions[EARLIER]} Earlier, {positions[LATER]} Later)",
            severity=WARNING,
            details=positions,
        ))

        gaps = find_continuity_gaps(history, table_name)
        report.continuity_gaps[table_name] = gaps
        tolerated = table_name in TOLERATED_GAP_TABLES
        report.qc.add(QCResult(
            check_name="continuity_gaps",
            table_name=table_name,
            passed=gaps.empty,
            message=f"{len(gaps)} rows" + (" (concurrent assignments, tolerated)" if tolerated and not gaps.empty else ""),
            severity=INFO if tolerated else WARNING,
            details={"gap_rows": len(gaps)},
        ))

        duplicates = find_duplicate_periods(history, table_name)
        report.duplicate_periods[table_name] = duplicates
        report.qc.add(QCResult(
            check_name="duplicate_emp_from_date",
            table_name=table_name,
            passed=duplicates.empty,
            message=f"{len(duplicates)} duplicated (emp_no, from_date) pairs",
            severity=ERROR if table_name == "salaries" else WARNING,
            details={"sample": duplicates.head(10).to_dict(orient="records")},
        ))

        report.qc.add(check_referential_integrity(
            history, employees, table_name, "employees", "emp_no", "emp_no",
        ))

    salaries = frames["salaries"]
    report.degenerate_periods = find_degenerate_periods(salaries)
    report.degenerate_check = check_degenerate_periods_are_latest(salaries)
    check = report.degenerate_check
    report.qc.add(QCResult(
        check_name="degenerate_periods_latest_only",
        table_name="salaries",
        passed=check.counts_match,
        message=f"{check.total_count} zero-length periods, {check.latest_count} on latest record ({check.count_comparison})",
        severity=ERROR,
        details={"total_count": check.total_count, "latest_count": check.latest_count},
    ))

    logger.info(report.qc.summary())
    return report
