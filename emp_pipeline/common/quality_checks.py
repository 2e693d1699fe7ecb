"""
Quality Control Module
- Row count validation
- Null checks on key columns
- Duplicate key checks
- Referential integrity checks
- One-row-per-key checks for derived views
- Logging of check results
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple
from datetime import datetime

import pandas as pd
from sqlalchemy import func

logger = logging.getLogger(__name__)

ERROR = "ERROR"
WARNING = "WARNING"
INFO = "INFO"


@dataclass
class QCResult:
    """Single quality check result."""
    check_name: str
    table_name: str
    passed: bool
    message: str
    severity: str = ERROR
    details: Optional[Dict[str, Any]] = None


@dataclass
class QCReport:
    """Aggregated QC report. Only ERROR-severity failures fail the report."""
    title: str = "QC REPORT"
    timestamp: datetime = field(default_factory=datetime.now)
    results: List[QCResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results if r.severity == ERROR)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.passed and r.severity == ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for r in self.results if not r.passed and r.severity == WARNING)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    def add(self, result: QCResult) -> None:
        self.results.append(result)
        status = "PASS" if result.passed else "FAIL"
        line = f"[QC {status}] {result.table_name}: {result.check_name} - {result.message}"
        if result.passed or result.severity == INFO:
            logger.info(line)
        elif result.severity == WARNING:
            logger.warning(line)
        else:
            logger.error(line)

    def get(self, check_name: str, table_name: str) -> Optional[QCResult]:
        for r in self.results:
            if r.check_name == check_name and r.table_name == table_name:
                return r
        return None

    def summary(self) -> str:
        lines = [
            "=" * 60,
            f"{self.title} - {self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
            "=" * 60,
            f"Total Checks: {len(self.results)}",
            f"Passed: {self.passed_count}",
            f"Failed: {self.failed_count}",
            f"Warnings: {self.warning_count}",
            "-" * 60,
        ]
        for r in self.results:
            status = "PASS" if r.passed else ("FAIL" if r.severity == ERROR else r.severity)
            lines.append(f"[{status}] {r.table_name}.{r.check_name}: {r.message}")
        lines.append("=" * 60)
        return "\n".join(lines)


# INDIVIDUAL CHECK FUNCTIONS

def check_row_count(df: pd.DataFrame, table_name: str, min_rows: int = 1) -> QCResult:
    """Check that DataFrame has minimum required rows."""
    row_count = len(df)
    return QCResult(
        check_name="row_count",
        table_name=table_name,
        passed=row_count >= min_rows,
        message=f"Row count: {row_count} (min: {min_rows})",
        details={"row_count": row_count, "min_required": min_rows}
    )


def check_nulls(df: pd.DataFrame, table_name: str, critical_columns: List[str]) -> QCResult:
    """Check for null values in critical columns."""
    null_counts = {col: int(df[col].isna().sum()) for col in critical_columns if col in df.columns}
    total_nulls = sum(null_counts.values())
    passed = total_nulls == 0

    return QCResult(
        check_name="null_check",
        table_name=table_name,
        passed=passed,
        message=f"Nulls in critical columns: {total_nulls}" + (f" ({null_counts})" if not passed else ""),
        details={"null_counts": null_counts}
    )


def check_duplicates(
    df: pd.DataFrame,
    table_name: str,
    key_columns: List[str],
    severity: str = ERROR,
) -> QCResult:
    """Check for duplicate records based on key columns."""
    existing_cols = [c for c in key_columns if c in df.columns]
    if not existing_cols:
        return QCResult(
            check_name="duplicate_check",
            table_name=table_name,
            passed=True,
            message="No key columns found to check",
            severity=severity,
        )

    duplicate_count = int(df.duplicated(subset=existing_cols, keep=False).sum())
    return QCResult(
        check_name="duplicate_check",
        table_name=table_name,
        passed=duplicate_count == 0,
        message=f"Duplicates on {existing_cols}: {duplicate_count}",
        severity=severity,
        details={"duplicate_count": duplicate_count, "key_columns": existing_cols}
    )


def check_referential_integrity(
    child_df: pd.DataFrame,
    parent_df: pd.DataFrame,
    child_table: str,
    parent_table: str,
    child_key: str,
    parent_key: str,
    severity: str = WARNING,
) -> QCResult:
    """Check that all foreign keys in child table exist in parent table."""
    if child_key not in child_df.columns or parent_key not in parent_df.columns:
        return QCResult(
            check_name=f"ref_integrity_{child_key}",
            table_name=child_table,
            passed=True,
            message="Key columns not found for check",
            severity=severity,
        )

    orphans = set(child_df[child_key].dropna().unique()) - set(parent_df[parent_key].dropna().unique())

    return QCResult(
        check_name=f"ref_integrity_{child_key}",
        table_name=child_table,
        passed=len(orphans) == 0,
        message=f"Orphan records: {len(orphans)}" + (f" (missing in {parent_table})" if orphans else ""),
        severity=severity,
        details={"orphan_count": len(orphans), "sample_orphans": sorted(orphans)[:10]}
    )


def check_one_row_per_key(
    df: pd.DataFrame,
    reference_df: pd.DataFrame,
    table_name: str,
    key: str,
) -> QCResult:
    """Check that df holds exactly one row for every key of reference_df."""
    expected = set(reference_df[key].dropna().unique())
    actual_counts = df[key].value_counts()
    missing = expected - set(actual_counts.index)
    repeated = actual_counts[actual_counts > 1]
    extra = set(actual_counts.index) - expected
    passed = not missing and repeated.empty and not extra

    return QCResult(
        check_name="one_row_per_key",
        table_name=table_name,
        passed=passed,
        message=(
            f"{len(df)} rows for {len(expected)} keys "
            f"(missing: {len(missing)}, repeated: {len(repeated)}, unexpected: {len(extra)})"
        ),
        details={
            "missing": sorted(missing)[:10],
            "repeated": sorted(repeated.index.tolist())[:10],
            "unexpected": sorted(extra)[:10],
        }
    )


# POST-REFRESH VALIDATION

def validate_row_counts(session, expected: Dict[str, Tuple[Any, Any]]) -> QCReport:
    """
    Verify that each table in the database holds as many rows as its source.

    Args:
        session: SQLAlchemy session
        expected: Dict mapping table name to (model, source model)

    Returns:
        QCReport with one count check per table
    """
    report = QCReport(title="POST-REFRESH VALIDATION")
    logger.info("=" * 60)
    logger.info("POST-REFRESH VALIDATION")
    logger.info("=" * 60)

    for table_name, (model, source_model) in expected.items():
        count = session.query(func.count()).select_from(model).scalar()
        source_count = session.query(func.count()).select_from(source_model).scalar()
        report.add(QCResult(
            check_name="row_count_matches_source",
            table_name=table_name,
            passed=count == source_count,
            message=f"Records in database: {count} (source: {source_count})",
            details={"db_row_count": count, "source_row_count": source_count}
        ))

    logger.info(report.summary())
    return report
