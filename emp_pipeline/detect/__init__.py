"""
Detect - read-only anomaly checks on the salary, department and title histories.
"""

from emp_pipeline.detect.anomalies import (
    run_anomaly_detection,
    find_hire_date_mismatches,
    find_continuity_gaps,
    find_duplicate_periods,
    find_degenerate_periods,
    check_degenerate_periods_are_latest,
    classify_hire_date,
    earliest_from_dates,
    latest_period_mask,
    AnomalyReport,
    DegenerateCheck,
    HISTORY_TABLES,
    EARLIER,
    LATER,
    SAME,
)

__all__ = [
    "run_anomaly_detection",
    "find_hire_date_mismatches",
    "find_continuity_gaps",
    "find_duplicate_periods",
    "find_degenerate_periods",
    "check_degenerate_periods_are_latest",
    "classify_hire_date",
    "earliest_from_dates",
    "latest_period_mask",
    "AnomalyReport",
    "DegenerateCheck",
    "HISTORY_TABLES",
    "EARLIER",
    "LATER",
    "SAME",
]
