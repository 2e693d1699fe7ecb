"""
Views - derived, analysis-ready tables for downstream reporting.
emp_details: one row per employee; emp_salaries: enriched salary history.
"""

from emp_pipeline.views.builder import (
    build_emp_details,
    build_emp_salaries,
    build_views,
    first_and_last_assignment,
    assignment_at_start,
    EMP_DETAILS_COLUMNS,
    EMP_SALARIES_COLUMNS,
)
from emp_pipeline.views.refresh import refresh_views, check_views

__all__ = [
    "build_emp_details",
    "build_emp_salaries",
    "build_views",
    "first_and_last_assignment",
    "assignment_at_start",
    "EMP_DETAILS_COLUMNS",
    "EMP_SALARIES_COLUMNS",
    "refresh_views",
    "check_views",
]
