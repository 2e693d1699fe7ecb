# emp_pipeline/orchestrator.py
"""
Reconciliation pipeline orchestrator.
Runs detect → precondition → plan → apply → refresh views → checks.
"""

import logging
from typing import Dict, Any, Optional, Sequence

from sqlalchemy.engine import Engine

from db.db_utils import get_engine, create_all_tables
from emp_pipeline.common.exceptions import PreconditionError
from emp_pipeline.common.logging import log_banner
from emp_pipeline.correct import (
    plan_corrections,
    apply_corrections,
    ALL_RULES,
    DEGENERATE_EXTENSION,
)
from emp_pipeline.detect import run_anomaly_detection
from emp_pipeline.raw.reader import read_base_tables
from emp_pipeline.views import refresh_views

logger = logging.getLogger(__name__)


def _step(number: int, title: str) -> None:
    logger.info("")
    log_banner(logger, f"  STEP {number}: {title}", width=70)


def run_reconciliation(
    apply: bool = False,
    engine: Optional[Engine] = None,
    rules: Sequence[str] = ALL_RULES,
    refresh: bool = True,
) -> Dict[str, Any]:
    """
    Run the complete reconciliation pipeline.

    Without apply the run is a dry run: anomalies are reported and the
    corrections are staged and logged, but nothing is written and the views
    are left as they are.

    Args:
        apply: Write the staged corrections
        engine: Database engine (shared engine if not provided)
        rules: Correction rules to stage
        refresh: Rebuild the views after an applied run

    Returns:
        dict: Results from each step

    Raises:
        PreconditionError: If the extension rule is requested and a zero-length
            salary period is not its employee's latest record
    """
    engine = engine or get_engine()
    create_all_tables(engine)
    results: Dict[str, Any] = {
        "anomalies": None,
        "plan": None,
        "applied": None,
        "views": None,
        "post_correction_anomalies": None,
    }

    try:
        # STEP 1: DETECT
        _step(1, "DETECT - anomaly checks on base tables")
        frames = read_base_tables(engine)
        report = run_anomaly_detection(frames)
        results["anomalies"] = report

        # STEP 2: PRECONDITION
        _step(2, "PRECONDITION - zero-length periods on latest record only")
        if DEGENERATE_EXTENSION in rules and not report.extension_allowed:
            check = report.degenerate_check
            raise PreconditionError(
                "Extension refused: zero-length salary periods found on non-latest rows",
                check_name="degenerate_periods_latest_only",
                expected=check.total_count,
                actual=check.latest_count,
            )
        logger.info("Preconditions satisfied")

        # STEP 3: PLAN
        _step(3, "PLAN - staging corrections")
        plan = plan_corrections(frames, rules=rules)
        results["plan"] = plan

        if not apply:
            logger.info("")
            log_banner(logger, "DRY RUN COMPLETE - no changes written", width=70)
            return results

        # STEP 4: APPLY
        _step(4, "APPLY - writing corrections with audit")
        results["applied"] = apply_corrections(plan, engine)

        # STEP 5: REFRESH VIEWS
        if refresh:
            _step(5, "REFRESH - rebuilding derived views")
            results["views"] = refresh_views(engine)

        # STEP 6: POST-CORRECTION CHECKS
        _step(6, "CHECKS - re-running anomaly detection")
        post_report = run_anomaly_detection(engine=engine)
        results["post_correction_anomalies"] = post_report
        if not post_report.passed:
            logger.error("Post-correction checks failed!")
        else:
            logger.info("Post-correction checks passed!")

        logger.info("")
        log_banner(logger, "RECONCILIATION COMPLETED SUCCESSFULLY", width=70)
        logger.info(f"  Run: {plan.run_id}")
        logger.info(f"  Applied: {results['applied']['applied']} changes")
        if results["views"]:
            logger.info(f"  Views: {results['views']['written']}")
        logger.info("")
        return results

    except Exception as e:
        logger.error(f"RECONCILIATION FAILED: {e}")
        raise
