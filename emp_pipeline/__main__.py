# emp_pipeline/__main__.py
"""
Command line entry point.

    python -m emp_pipeline load [--data-dir DIR]
    python -m emp_pipeline detect
    python -m emp_pipeline correct [--apply] [--rule RULE ...]
    python -m emp_pipeline refresh [--view NAME]
    python -m emp_pipeline run [--apply] [--rule RULE ...]
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from db.db_utils import get_engine
from emp_pipeline.common.config import load_config
from emp_pipeline.common.exceptions import PipelineError
from emp_pipeline.common.logging import configure_logging, create_run_log_file
from emp_pipeline.correct import run_corrections, ALL_RULES
from emp_pipeline.detect import run_anomaly_detection
from emp_pipeline.orchestrator import run_reconciliation
from emp_pipeline.raw import run_raw_load
from emp_pipeline.views import refresh_views

logger = logging.getLogger("emp_pipeline")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="emp_pipeline", description="Employee records reconciliation pipeline.")
    parser.add_argument("--database-url", help="Override DATABASE_URL for this run.")
    parser.add_argument("--log-level", help="Override EMP_PIPELINE_LOG_LEVEL (DEBUG, INFO, ...).")
    sub = parser.add_subparsers(dest="command", required=True)

    load = sub.add_parser("load", help="Seed empty base tables from CSV files.")
    load.add_argument("--data-dir", help="Directory holding employees/salaries/dept_emp/titles CSVs.")
    load.add_argument("--sep", default=",", help="CSV field separator.")

    sub.add_parser("detect", help="Report anomalies in the history tables (read-only).")

    for name, help_text in (
        ("correct", "Stage corrections; write them with --apply."),
        ("run", "Detect, correct and refresh views; writes only with --apply."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--apply", action="store_true", help="Write changes (default is a dry run).")
        cmd.add_argument(
            "--rule",
            action="append",
            choices=ALL_RULES,
            help="Correction rule to stage; repeat for several (default: all).",
        )

    refresh = sub.add_parser("refresh", help="Rebuild emp_details and emp_salaries.")
    refresh.add_argument("--view", choices=("emp_details", "emp_salaries"), help="Refresh only this view.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config()

    log_file = create_run_log_file(config.log_dir, prefix=args.command) if config.log_dir else None
    configure_logging(level=args.log_level or config.log_level, log_file=log_file)

    engine = get_engine(args.database_url)

    try:
        if args.command == "load":
            run_raw_load(data_dir=args.data_dir, sep=args.sep, engine=engine)
            return 0

        if args.command == "detect":
            report = run_anomaly_detection(engine=engine)
            return 0 if report.passed else 1

        if args.command == "correct":
            run_corrections(engine=engine, apply=args.apply, rules=args.rule or ALL_RULES)
            return 0

        if args.command == "refresh":
            result = refresh_views(engine=engine, view_name=args.view)
            return 0 if result["post_refresh_validation"].passed else 1

        if args.command == "run":
            results = run_reconciliation(apply=args.apply, engine=engine, rules=args.rule or ALL_RULES)
            post = results["post_correction_anomalies"]
            return 0 if post is None or post.passed else 1

    except PipelineError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())
