"""
Correct - staged, audited repairs of the history tables.
"""

from emp_pipeline.correct.corrector import (
    run_corrections,
    plan_corrections,
    apply_corrections,
    plan_hire_date_backfill,
    plan_degenerate_extension,
    apply_changes_to_frame,
    CorrectionPlan,
    HIRE_DATE_BACKFILL,
    DEGENERATE_EXTENSION,
    ALL_RULES,
)

__all__ = [
    "run_corrections",
    "plan_corrections",
    "apply_corrections",
    "plan_hire_date_backfill",
    "plan_degenerate_extension",
    "apply_changes_to_frame",
    "CorrectionPlan",
    "HIRE_DATE_BACKFILL",
    "DEGENERATE_EXTENSION",
    "ALL_RULES",
]
