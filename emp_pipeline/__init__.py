# emp_pipeline/__init__.py
"""
Employee records reconciliation pipeline.

Steps, run in order by an operator:
- Raw: base tables (employees, salaries, dept_emp, titles), optionally seeded from CSV
- Views: emp_details (one row per employee) and emp_salaries (enriched salary history)
- Detect: read-only anomaly checks on the history tables
- Correct: guarded, idempotent repairs applied in one transaction with an audit log

Usage:
    from emp_pipeline.orchestrator import run_reconciliation
    results = run_reconciliation(apply=False)   # dry run

    # Or run individual steps:
    from emp_pipeline.detect import run_anomaly_detection
    from emp_pipeline.correct import plan_corrections, apply_corrections
    from emp_pipeline.views import refresh_views
"""

__version__ = "1.0.0"

from emp_pipeline.common import PipelineError, QCReport, QCResult

__all__ = [
    "__version__",
    "PipelineError",
    "QCReport",
    "QCResult",
]
