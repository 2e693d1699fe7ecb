# emp_pipeline/views/refresh.py
"""
Rebuild the derived views from the current base tables.
Each view's rows are replaced inside one transaction.
"""

import logging
from typing import Dict, Any, Optional

import pandas as pd
from sqlalchemy import delete, insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from db.db_utils import get_engine, get_session, create_all_tables
from db.models import VIEW_TABLES, Employee, Salary, EmpDetail, EmpSalary
from emp_pipeline.common.config import load_config
from emp_pipeline.common.exceptions import ViewRefreshError
from emp_pipeline.common.logging import log_banner
from emp_pipeline.common.quality_checks import (
    QCReport,
    check_one_row_per_key,
    check_duplicates,
    check_nulls,
    check_row_count,
    validate_row_counts,
)
from emp_pipeline.raw.reader import read_base_tables
from emp_pipeline.raw.utils import to_records
from emp_pipeline.views.builder import build_views

logger = logging.getLogger(__name__)


def replace_view_rows(
    df: pd.DataFrame,
    view_name: str,
    engine: Engine,
    batch_size: int = 1000,
) -> int:
    """
    Replace all rows of a materialized view in a single transaction.

    Raises:
        ViewRefreshError: If the delete or any insert batch fails (nothing is committed)
    """
    table = VIEW_TABLES[view_name].__table__
    records = to_records(df)

    try:
        with engine.begin() as conn:
            conn.execute(delete(table))
            for i in range(0, len(records), batch_size):
                conn.execute(insert(table), records[i:i + batch_size])
    except SQLAlchemyError as e:
        logger.error(f"Failed to refresh {view_name}: {e}")
        raise ViewRefreshError(f"Failed to refresh {view_name}", view_name=view_name, original_error=e) from e

    logger.info(f"  {view_name}: {len(records)} rows written")
    return len(records)


def check_views(views: Dict[str, pd.DataFrame], base: Dict[str, pd.DataFrame]) -> QCReport:
    """In-memory checks on freshly built views against their base frames."""
    report = QCReport(title="VIEW CHECKS")
    if "emp_details" in views:
        report.add(check_one_row_per_key(views["emp_details"], base["employees"], "emp_details", "emp_no"))
        report.add(check_nulls(views["emp_details"], "emp_details", ["emp_no", "hire_date"]))
    if "emp_salaries" in views:
        emp_salaries = views["emp_salaries"]
        report.add(check_row_count(emp_salaries, "emp_salaries", min_rows=len(base["salaries"])))
        report.add(check_duplicates(emp_salaries, "emp_salaries", ["emp_no", "from_date"]))
        report.add(check_nulls(emp_salaries, "emp_salaries", ["emp_no", "from_date"]))
    return report


def refresh_views(
    engine: Optional[Engine] = None,
    view_name: Optional[str] = None,
    batch_size: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Rebuild emp_details and emp_salaries (or only view_name) from the base tables.

    Args:
        engine: Database engine (shared engine if not provided)
        view_name: Refresh a single view instead of both
        batch_size: Records per insert batch (defaults to config)

    Returns:
        dict: Rows written per view and the QC reports
    """
    if view_name is not None and view_name not in VIEW_TABLES:
        raise ViewRefreshError(f"Unknown view: {view_name}", view_name=view_name)

    log_banner(logger, "REFRESHING DERIVED VIEWS")
    engine = engine or get_engine()
    batch_size = batch_size or load_config().batch_size
    create_all_tables(engine)

    base = read_base_tables(engine)
    views = build_views(
        base["employees"], base["salaries"], base["dept_emp"], base["titles"],
        view_name=view_name,
    )

    view_report = check_views(views, base)
    if not view_report.passed:
        logger.error(view_report.summary())
        raise ViewRefreshError(
            "Built views failed their checks; nothing was written",
            details={"failed_checks": view_report.failed_count},
        )

    written = {name: replace_view_rows(df, name, engine, batch_size) for name, df in views.items()}

    session = get_session(engine)
    try:
        expected = {}
        if "emp_details" in views:
            expected["emp_details"] = (EmpDetail, Employee)
        if "emp_salaries" in views:
            expected["emp_salaries"] = (EmpSalary, Salary)
        post_refresh_report = validate_row_counts(session, expected)
    finally:
        session.close()

    log_banner(logger, f"VIEW REFRESH COMPLETE: {written}")
    return {
        "written": written,
        "view_checks": view_report,
        "post_refresh_validation": post_refresh_report,
    }
