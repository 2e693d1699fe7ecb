# emp_pipeline/correct/corrector.py
"""
Corrector - guarded, idempotent repairs of the history tables.

Two rules:
- hire_date_backfill: each employee's earliest row in salaries, dept_emp and
  titles gets from_date = hire_date when the two differ
- degenerate_extension: each employee's latest salary row with
  from_date == to_date gets to_date + 1 day

Changes are staged as a CorrectionPlan (nothing is written), then applied by
apply_corrections in one transaction together with their audit rows.
Planning again after an apply yields an empty plan.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Sequence, Tuple
from uuid import uuid4

import numpy as np
import pandas as pd
from sqlalchemy import insert, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from db.db_utils import get_engine, create_all_tables
from db.models import BASE_TABLES, CorrectionAudit
from emp_pipeline.common.exceptions import CorrectionError, PreconditionError
from emp_pipeline.common.logging import log_banner
from emp_pipeline.detect.anomalies import (
    HISTORY_TABLES,
    check_degenerate_periods_are_latest,
    earliest_from_dates,
    latest_period_mask,
)
from emp_pipeline.raw.reader import read_base_tables
from emp_pipeline.raw.utils import with_int_keys

logger = logging.getLogger(__name__)

HIRE_DATE_BACKFILL = "hire_date_backfill"
DEGENERATE_EXTENSION = "degenerate_extension"
ALL_RULES = (HIRE_DATE_BACKFILL, DEGENERATE_EXTENSION)

CHANGE_COLUMNS = [
    "rule", "table_name", "emp_no", "value",
    "match_from_date", "column_name", "old_value", "new_value",
]
SKIPPED_COLUMNS = ["rule", "table_name", "emp_no", "reason"]


def empty_changes() -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype="int64" if col == "emp_no" else object) for col in CHANGE_COLUMNS})


def empty_skipped() -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype="int64" if col == "emp_no" else object) for col in SKIPPED_COLUMNS})


@dataclass
class CorrectionPlan:
    """Staged changes for one correction run."""
    run_id: str
    changes: pd.DataFrame = field(default_factory=empty_changes)
    skipped: pd.DataFrame = field(default_factory=empty_skipped)
    projected: Dict[str, pd.DataFrame] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.changes.empty

    def counts(self) -> Dict[str, int]:
        """Number of staged row changes per rule/table."""
        if self.changes.empty:
            return {}
        grouped = self.changes.groupby(["rule", "table_name"]).size()
        return {f"{rule}.{table}": int(n) for (rule, table), n in grouped.items()}

    def summary(self) -> str:
        lines = [
            "=" * 60,
            f"CORRECTION PLAN - run {self.run_id}",
            "=" * 60,
            f"Staged changes: {len(self.changes)}",
        ]
        for key, n in self.counts().items():
            lines.append(f"  {key}: {n}")
        lines.append(f"Skipped for manual triage: {len(self.skipped)}")
        if not self.skipped.empty:
            for (rule, table), n in self.skipped.groupby(["rule", "table_name"]).size().items():
                lines.append(f"  {rule}.{table}: {n}")
        lines.append("=" * 60)
        return "\n".join(lines)


# RULE PLANNING

def _backfill_block_reason(row) -> Optional[str]:
    if pd.notna(row.to_date) and row.hire_date >= row.to_date:
        return "hire date on or after the period's to_date"
    if pd.notna(row.next_from_date) and row.hire_date >= row.next_from_date:
        return "hire date on or after the next period's from_date"
    return None


def plan_hire_date_backfill(
    employees: pd.DataFrame,
    history: pd.DataFrame,
    table_name: str,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Stage from_date = hire_date for each employee's earliest row(s).

    Rows other than the earliest are never touched. Employees whose hire
    date falls on or after the earliest row's to_date, or on or after their
    next from_date, are skipped: rewriting them would reorder the history
    and the rule would keep firing on later runs.

    Returns:
        (changes, skipped) DataFrames
    """
    value_col = HISTORY_TABLES[table_name]
    history = with_int_keys(history)
    hires = with_int_keys(employees[["emp_no", "hire_date"]].dropna(subset=["hire_date"]))

    targets = earliest_from_dates(history).merge(hires, on="emp_no", how="inner")
    targets = targets[targets["hire_date"] != targets["earliest_from_date"]]
    if targets.empty:
        return empty_changes(), empty_skipped()

    rows = history.merge(targets, on="emp_no", how="inner")
    first_rows = rows[rows["from_date"] == rows["earliest_from_date"]]
    next_from = (
        rows[rows["from_date"] > rows["earliest_from_date"]]
        .sort_values(["emp_no", "from_date"], kind="mergesort")
        .drop_duplicates("emp_no", keep="first")[["emp_no", "from_date"]]
        .rename(columns={"from_date": "next_from_date"})
    )
    first_rows = first_rows.merge(next_from, on="emp_no", how="left")
    first_rows["reason"] = [_backfill_block_reason(r) for r in first_rows.itertuples(index=False)]

    blocked = set(first_rows.loc[first_rows["reason"].notna(), "emp_no"])
    skipped = (
        first_rows[first_rows["reason"].notna()]
        .drop_duplicates("emp_no")
        .assign(rule=HIRE_DATE_BACKFILL, table_name=table_name)[SKIPPED_COLUMNS]
        .reset_index(drop=True)
    )
    for r in skipped.itertuples(index=False):
        logger.warning(f"Backfill skipped for {table_name} emp_no={r.emp_no}: {r.reason}")

    allowed = first_rows[~first_rows["emp_no"].isin(blocked)]
    changes = pd.DataFrame({
        "rule": HIRE_DATE_BACKFILL,
        "table_name": table_name,
        "emp_no": allowed["emp_no"].to_numpy(dtype="int64"),
        "value": allowed[value_col].astype(object).to_numpy(),
        "match_from_date": allowed["from_date"].to_numpy(),
        "column_name": "from_date",
        "old_value": allowed["from_date"].to_numpy(),
        "new_value": allowed["hire_date"].to_numpy(),
    }, columns=CHANGE_COLUMNS)

    logger.info(f"Backfill {table_name}: {len(changes)} rows staged, {len(skipped)} employees skipped")
    return changes, skipped


def plan_degenerate_extension(salaries: pd.DataFrame) -> pd.DataFrame:
    """
    Stage to_date + 1 day for each employee's latest zero-length salary row.

    Raises:
        PreconditionError: If any zero-length row is not its employee's latest row
    """
    salaries = with_int_keys(salaries)
    check = check_degenerate_periods_are_latest(salaries)
    if not check.counts_match:
        sample = check.interior_rows.head(10).to_dict(orient="records")
        logger.error(
            f"Zero-length salary periods found on non-latest rows "
            f"({check.total_count} total, {check.latest_count} latest); extension refused"
        )
        raise PreconditionError(
            "Zero-length salary periods are not all the employee's latest record; manual triage required",
            check_name="degenerate_periods_latest_only",
            expected=check.total_count,
            actual=check.latest_count,
            details={"interior_sample": sample},
        )
    if salaries.empty or check.total_count == 0:
        return empty_changes()

    rows = salaries[(salaries["from_date"] == salaries["to_date"]) & latest_period_mask(salaries)]
    changes = pd.DataFrame({
        "rule": DEGENERATE_EXTENSION,
        "table_name": "salaries",
        "emp_no": rows["emp_no"].to_numpy(dtype="int64"),
        "value": rows["salary"].astype(object).to_numpy(),
        "match_from_date": rows["from_date"].to_numpy(),
        "column_name": "to_date",
        "old_value": rows["to_date"].to_numpy(),
        "new_value": [d + timedelta(days=1) for d in rows["to_date"]],
    }, columns=CHANGE_COLUMNS)

    logger.info(f"Extension salaries: {len(changes)} rows staged")
    return changes


def apply_changes_to_frame(history: pd.DataFrame, changes: pd.DataFrame, table_name: str) -> pd.DataFrame:
    """Return a copy of history with the table's staged changes applied in memory."""
    out = with_int_keys(history).reset_index(drop=True)
    table_changes = changes[changes["table_name"] == table_name] if not changes.empty else changes
    if table_changes.empty:
        return out

    value_col = HISTORY_TABLES[table_name]
    out["_row"] = np.arange(len(out))
    hits = out.merge(
        with_int_keys(table_changes[["emp_no", "value", "match_from_date", "column_name", "new_value"]]),
        left_on=["emp_no", "from_date"],
        right_on=["emp_no", "match_from_date"],
        how="inner",
    )
    hits = hits[hits[value_col] == hits["value"]]

    for column_name, group in hits.groupby("column_name"):
        out.loc[group["_row"].to_numpy(), column_name] = group["new_value"].to_numpy()
    return out.drop(columns="_row")


def plan_corrections(
    frames: Dict[str, pd.DataFrame],
    rules: Sequence[str] = ALL_RULES,
) -> CorrectionPlan:
    """
    Stage all requested rules against the base frames, in order.

    The extension rule is planned on the state left by the backfill, as it
    would be when the two rules run one after the other.

    Args:
        frames: Base frames keyed by table name
        rules: Rules to stage (subset of ALL_RULES)

    Raises:
        PreconditionError: If the extension precondition fails
    """
    unknown = set(rules) - set(ALL_RULES)
    if unknown:
        raise CorrectionError(f"Unknown correction rules: {sorted(unknown)}")

    plan = CorrectionPlan(run_id=str(uuid4())[:8])
    projected = {name: with_int_keys(df).reset_index(drop=True) for name, df in frames.items()}
    staged = []
    skipped = []

    if HIRE_DATE_BACKFILL in rules:
        for table_name in HISTORY_TABLES:
            changes, table_skipped = plan_hire_date_backfill(projected["employees"], projected[table_name], table_name)
            projected[table_name] = apply_changes_to_frame(projected[table_name], changes, table_name)
            staged.append(changes)
            skipped.append(table_skipped)

    if DEGENERATE_EXTENSION in rules:
        changes = plan_degenerate_extension(projected["salaries"])
        projected["salaries"] = apply_changes_to_frame(projected["salaries"], changes, "salaries")
        staged.append(changes)

    staged = [c for c in staged if not c.empty]
    skipped = [s for s in skipped if not s.empty]
    if staged:
        plan.changes = pd.concat(staged, ignore_index=True)
    if skipped:
        plan.skipped = pd.concat(skipped, ignore_index=True)
    plan.projected = projected

    logger.info(plan.summary())
    return plan


# APPLY

def _py(value):
    """Unwrap numpy scalars for the DB driver."""
    return value.item() if isinstance(value, np.generic) else value


def _audit_record(change, run_id: str, applied_at: datetime) -> Dict[str, Any]:
    value_col = HISTORY_TABLES[change.table_name]
    return {
        "run_id": run_id,
        "rule": change.rule,
        "table_name": change.table_name,
        "emp_no": int(change.emp_no),
        "key_value": f"{value_col}={_py(change.value)}, from_date={change.match_from_date}",
        "column_name": change.column_name,
        "old_value": change.old_value,
        "new_value": change.new_value,
        "applied_at": applied_at,
    }


def apply_corrections(plan: CorrectionPlan, engine: Optional[Engine] = None) -> Dict[str, Any]:
    """
    Write a plan's changes and audit rows in a single transaction.

    Each staged change must match exactly one row in its current state;
    otherwise the plan is stale and the whole transaction is rolled back.

    Raises:
        CorrectionError: If any update misses or the database rejects the batch
    """
    engine = engine or get_engine()
    create_all_tables(engine)

    if plan.is_empty:
        logger.info(f"Run {plan.run_id}: nothing to apply")
        return {"run_id": plan.run_id, "applied": 0, "counts": {}}

    applied_at = datetime.utcnow()
    audit_records = []
    audit_table = CorrectionAudit.__table__

    log_banner(logger, f"APPLYING CORRECTIONS - run {plan.run_id}")
    try:
        with engine.begin() as conn:
            for change in plan.changes.itertuples(index=False):
                table = BASE_TABLES[change.table_name].__table__
                value_col = HISTORY_TABLES[change.table_name]
                column = table.c[change.column_name]
                stmt = (
                    update(table)
                    .where(
                        table.c.emp_no == int(change.emp_no),
                        table.c[value_col] == _py(change.value),
                        table.c.from_date == change.match_from_date,
                        column == change.old_value,
                    )
                    .values({change.column_name: change.new_value})
                )
                result = conn.execute(stmt)
                if result.rowcount != 1:
                    raise CorrectionError(
                        f"Stale plan: expected 1 row, matched {result.rowcount}",
                        table_name=change.table_name,
                        rule=change.rule,
                        details={"emp_no": int(change.emp_no), "from_date": str(change.match_from_date)},
                    )
                audit_records.append(_audit_record(change, plan.run_id, applied_at))

            conn.execute(insert(audit_table), audit_records)
    except SQLAlchemyError as e:
        logger.error(f"Run {plan.run_id} rolled back: {e}")
        raise CorrectionError(f"Run {plan.run_id} rolled back", original_error=e) from e
    except CorrectionError as e:
        logger.error(f"Run {plan.run_id} rolled back: {e}")
        raise

    counts = plan.counts()
    for key, n in counts.items():
        logger.info(f"  {key}: {n} rows updated")
    logger.info(f"Run {plan.run_id}: {len(audit_records)} changes committed and audited")
    return {"run_id": plan.run_id, "applied": len(audit_records), "counts": counts}


def run_corrections(
    engine: Optional[Engine] = None,
    apply: bool = False,
    rules: Sequence[str] = ALL_RULES,
) -> Dict[str, Any]:
    """
    Plan corrections from the current base tables and optionally apply them.

    Args:
        engine: Database engine (shared engine if not provided)
        apply: Write the changes; otherwise only report the plan (dry run)
        rules: Rules to stage

    Returns:
        dict: The plan and, when applied, the apply result
    """
    log_banner(logger, "CORRECTIONS" + ("" if apply else " (DRY RUN)"))
    engine = engine or get_engine()
    plan = plan_corrections(read_base_tables(engine), rules=rules)

    result: Dict[str, Any] = {"plan": plan, "applied": None}
    if apply:
        result["applied"] = apply_corrections(plan, engine)
    else:
        logger.info("Dry run: no changes written (pass apply=True to write)")
    return result
