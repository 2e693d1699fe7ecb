"""Tests for the hire-date backfill and zero-length period extension."""

import pandas as pd
import pytest
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from db.models import CorrectionAudit, Salary, Title
from emp_pipeline.common.exceptions import CorrectionError, PreconditionError
from emp_pipeline.correct import (
    DEGENERATE_EXTENSION,
    HIRE_DATE_BACKFILL,
    apply_corrections,
    plan_corrections,
    plan_degenerate_extension,
    plan_hire_date_backfill,
    run_corrections,
)
from emp_pipeline.raw.reader import read_base_tables

from conftest import CURRENT, d, employees_frame, salaries_frame, titles_frame


def _from_dates(df, emp_no):
    return sorted(df.loc[df["emp_no"] == emp_no, "from_date"].tolist())


class TestHireDateBackfill:
    def test_earliest_title_takes_hire_date(self, frames):
        changes, skipped = plan_hire_date_backfill(frames["employees"], frames["titles"], "titles")

        assert skipped.empty
        assert len(changes) == 1
        change = changes.iloc[0]
        assert change["emp_no"] == 10002
        assert change["value"] == "Staff"
        assert change["column_name"] == "from_date"
        assert change["old_value"] == d("1990-06-01")
        assert change["new_value"] == d("1990-01-01")

    def test_only_earliest_row_changes(self, frames):
        plan = plan_corrections(frames, rules=[HIRE_DATE_BACKFILL])
        titles = plan.projected["titles"]
        assert _from_dates(titles, 10002) == [d("1990-01-01"), d("1996-08-03")]

    def test_tied_earliest_rows_all_change(self):
        employees = employees_frame([(1, d("1960-01-01"), "A", "B", "F", d("1999-01-01"))])
        titles = titles_frame([
            (1, "Engineer", d("2000-01-01"), d("2001-01-01")),
            (1, "Staff", d("2000-01-01"), d("2001-01-01")),
            (1, "Senior Staff", d("2001-01-01"), CURRENT),
        ])
        changes, _ = plan_hire_date_backfill(employees, titles, "titles")
        assert sorted(changes["value"].tolist()) == ["Engineer", "Staff"]

    def test_hire_past_next_period_is_skipped(self):
        employees = employees_frame([(1, d("1960-01-01"), "A", "B", "F", d("2001-06-01"))])
        salaries = salaries_frame([
            (1, 40000, d("2000-01-01"), d("2001-01-01")),
            (1, 42000, d("2001-01-01"), CURRENT),
        ])
        changes, skipped = plan_hire_date_backfill(employees, salaries, "salaries")
        assert changes.empty
        assert skipped["emp_no"].tolist() == [1]
        assert skipped.iloc[0]["rule"] == HIRE_DATE_BACKFILL

    def test_later_hire_within_first_period_is_backfilled(self):
        employees = employees_frame([(1, d("1960-01-01"), "A", "B", "F", d("2000-03-01"))])
        salaries = salaries_frame([
            (1, 40000, d("2000-01-01"), d("2001-01-01")),
            (1, 42000, d("2001-01-01"), CURRENT),
        ])
        changes, skipped = plan_hire_date_backfill(employees, salaries, "salaries")
        assert skipped.empty
        assert changes["new_value"].tolist() == [d("2000-03-01")]

    def test_replanning_projected_state_is_empty(self, frames):
        plan = plan_corrections(frames)
        replanned = plan_corrections(plan.projected)
        assert not plan.is_empty
        assert replanned.is_empty


class TestDegenerateExtension:
    def test_latest_zero_length_row_extended_by_one_day(self, frames):
        changes = plan_degenerate_extension(frames["salaries"])
        assert len(changes) == 1
        change = changes.iloc[0]
        assert change["emp_no"] == 10003
        assert change["column_name"] == "to_date"
        assert change["old_value"] == d("2002-08-01")
        assert change["new_value"] == d("2002-08-02")

    def test_interior_zero_length_row_refuses(self):
        salaries = salaries_frame([
            (1, 40000, d("2000-01-01"), d("2000-01-01")),
            (1, 42000, d("2000-01-02"), CURRENT),
            (2, 50000, d("2002-08-01"), d("2002-08-01")),
        ])
        with pytest.raises(PreconditionError) as exc_info:
            plan_degenerate_extension(salaries)
        assert exc_info.value.details["expected"] == 2
        assert exc_info.value.details["actual"] == 1

    def test_extension_planned_after_backfill(self):
        # backfill moves from_date back, so the row is no longer zero-length
        frames = {
            "employees": employees_frame([(1, d("1960-01-01"), "A", "B", "F", d("2002-01-01"))]),
            "salaries": salaries_frame([(1, 40000, d("2002-08-01"), d("2002-08-01"))]),
            "dept_emp": pd.DataFrame(columns=["emp_no", "dept_no", "from_date", "to_date"]),
            "titles": pd.DataFrame(columns=["emp_no", "title", "from_date", "to_date"]),
        }
        plan = plan_corrections(frames)
        assert plan.counts() == {f"{HIRE_DATE_BACKFILL}.salaries": 1}


class TestApplyCorrections:
    def test_dry_run_writes_nothing(self, seeded_engine):
        result = run_corrections(engine=seeded_engine, apply=False)

        assert result["applied"] is None
        assert not result["plan"].is_empty
        with seeded_engine.connect() as conn:
            assert conn.execute(select(CorrectionAudit)).first() is None
            to_date = conn.execute(
                select(Salary.to_date).where(Salary.emp_no == 10003, Salary.salary == 43616)
            ).scalar()
            assert to_date == d("2002-08-01")

    def test_apply_updates_rows_and_audits(self, seeded_engine):
        result = run_corrections(engine=seeded_engine, apply=True)
        applied = result["applied"]

        assert applied["counts"] == {
            f"{DEGENERATE_EXTENSION}.salaries": 1,
            f"{HIRE_DATE_BACKFILL}.dept_emp": 1,
            f"{HIRE_DATE_BACKFILL}.salaries": 1,
            f"{HIRE_DATE_BACKFILL}.titles": 1,
        }

        frames = read_base_tables(seeded_engine)
        assert _from_dates(frames["titles"], 10002)[0] == d("1990-01-01")
        assert _from_dates(frames["salaries"], 10002)[0] == d("1990-01-01")
        salaries = frames["salaries"]
        latest = salaries[(salaries["emp_no"] == 10003) & (salaries["salary"] == 43616)].iloc[0]
        assert latest["to_date"] == d("2002-08-02")

        with Session(seeded_engine) as session:
            audit = session.scalars(select(CorrectionAudit)).all()
        assert len(audit) == 4
        assert {a.run_id for a in audit} == {applied["run_id"]}
        extension = [a for a in audit if a.rule == DEGENERATE_EXTENSION][0]
        assert (extension.old_value, extension.new_value) == (d("2002-08-01"), d("2002-08-02"))
        assert extension.key_value == "salary=43616, from_date=2002-08-01"

    def test_second_run_is_a_no_op(self, seeded_engine):
        run_corrections(engine=seeded_engine, apply=True)
        second = run_corrections(engine=seeded_engine, apply=True)

        assert second["plan"].is_empty
        assert second["applied"]["applied"] == 0

    def test_stale_plan_rolls_back_everything(self, seeded_engine):
        plan = plan_corrections(read_base_tables(seeded_engine))

        # the last staged change (extension) no longer matches
        with seeded_engine.begin() as conn:
            conn.execute(
                update(Salary.__table__)
                .where(Salary.emp_no == 10003, Salary.salary == 43616)
                .values(to_date=d("2002-09-01"))
            )

        with pytest.raises(CorrectionError):
            apply_corrections(plan, seeded_engine)

        frames = read_base_tables(seeded_engine)
        assert _from_dates(frames["titles"], 10002)[0] == d("1990-06-01")
        with seeded_engine.connect() as conn:
            assert conn.execute(select(CorrectionAudit)).first() is None

    def test_precondition_failure_leaves_tables_untouched(self, seeded_engine):
        with seeded_engine.begin() as conn:
            conn.execute(
                Salary.__table__.insert(),
                [{"emp_no": 10001, "salary": 1, "from_date": d("1980-01-01"), "to_date": d("1980-01-01")}],
            )

        with pytest.raises(PreconditionError):
            run_corrections(engine=seeded_engine, apply=True)

        with seeded_engine.connect() as conn:
            from_date = conn.execute(
                select(Title.from_date).where(Title.emp_no == 10002, Title.title == "Staff")
            ).scalar()
        assert from_date == d("1990-06-01")

    def test_backfill_only_when_extension_excluded(self, seeded_engine):
        result = run_corrections(engine=seeded_engine, apply=True, rules=[HIRE_DATE_BACKFILL])
        assert set(result["applied"]["counts"]) == {
            f"{HIRE_DATE_BACKFILL}.dept_emp",
            f"{HIRE_DATE_BACKFILL}.salaries",
            f"{HIRE_DATE_BACKFILL}.titles",
        }

    def test_unknown_rule_rejected(self, frames):
        with pytest.raises(CorrectionError):
            plan_corrections(frames, rules=["salary_rounding"])
