"""Tests for emp_details / emp_salaries builders and the view refresh."""

import pytest
from sqlalchemy import select, func

from db.models import EmpDetail, EmpSalary
from emp_pipeline.common.exceptions import ViewRefreshError
from emp_pipeline.views import build_emp_details, build_emp_salaries, refresh_views
from emp_pipeline.views.builder import first_and_last_assignment, assignment_at_start

from conftest import CURRENT, d, dept_emp_frame, salaries_frame, titles_frame


def _row(df, emp_no):
    rows = df[df["emp_no"] == emp_no]
    assert len(rows) == 1
    return rows.iloc[0]


class TestEmpDetails:
    def test_one_row_per_employee(self, frames):
        details = build_emp_details(**frames)
        assert sorted(details["emp_no"].tolist()) == [10001, 10002, 10003, 10004]
        assert details["emp_no"].is_unique

    def test_employee_without_history_has_null_derived_fields(self, frames):
        row = _row(build_emp_details(**frames), 10004)
        assert row["hire_date"] == d("1996-01-01")
        for col in ("end_date", "dept_no_hire", "title_hire", "dept_no_end", "title_end"):
            assert row[col] is None

    def test_end_date_is_latest_salary_to_date(self, frames):
        details = build_emp_details(**frames)
        assert _row(details, 10001)["end_date"] == CURRENT
        assert _row(details, 10003)["end_date"] == d("2002-08-01")

    def test_hire_and_end_assignments(self, frames):
        details = build_emp_details(**frames)
        row = _row(details, 10002)
        assert row["title_hire"] == "Staff"
        assert row["title_end"] == "Senior Staff"
        row = _row(details, 10003)
        assert row["dept_no_hire"] == "d004"
        assert row["dept_no_end"] == "d006"

    def test_same_from_date_tie_is_deterministic(self):
        assignments = dept_emp_frame([
            (1, "d009", d("2000-01-01"), d("2001-01-01")),
            (1, "d002", d("2000-01-01"), d("2001-01-01")),
            (1, "d005", d("2000-01-01"), d("2000-06-01")),
        ])
        result = first_and_last_assignment(assignments, "dept_no", "first", "last")
        # ordered by (from_date, to_date, dept_no): d005, d002, d009
        assert result.iloc[0]["first"] == "d005"
        assert result.iloc[0]["last"] == "d009"

        reversed_result = first_and_last_assignment(assignments.iloc[::-1], "dept_no", "first", "last")
        assert reversed_result.iloc[0].to_dict() == result.iloc[0].to_dict()

    def test_open_ended_assignment_sorts_after_sentinel(self):
        titles = titles_frame([
            (1, "Engineer", d("2000-01-01"), None),
            (1, "Staff", d("2000-01-01"), CURRENT),
        ])
        result = first_and_last_assignment(titles, "title", "title_hire", "title_end")
        assert result.iloc[0]["title_hire"] == "Staff"
        assert result.iloc[0]["title_end"] == "Engineer"

    def test_sentinel_dates_survive(self, frames):
        details = build_emp_details(**frames)
        assert _row(details, 10002)["end_date"] == CURRENT


class TestEmpSalaries:
    def test_one_row_per_salary_period(self, frames):
        enriched = build_emp_salaries(frames["salaries"], frames["dept_emp"], frames["titles"])
        assert len(enriched) == len(frames["salaries"])

    def test_assignment_in_effect_at_start(self, frames):
        enriched = build_emp_salaries(frames["salaries"], frames["dept_emp"], frames["titles"])
        first = enriched[(enriched["emp_no"] == 10003) & (enriched["from_date"] == d("1995-03-01"))].iloc[0]
        assert first["dept_no"] == "d004"
        last = enriched[(enriched["emp_no"] == 10003) & (enriched["from_date"] == d("2002-08-01"))].iloc[0]
        assert last["dept_no"] == "d006"
        assert last["title"] == "Senior Engineer"

    def test_overlapping_departments_pick_later_to_date(self):
        salaries = salaries_frame([(1, 50000, d("2000-03-01"), d("2001-03-01"))])
        dept_emp = dept_emp_frame([
            (1, "d001", d("1999-01-01"), d("2000-06-01")),
            (1, "d002", d("2000-01-01"), d("2002-01-01")),
        ])
        result = assignment_at_start(salaries, dept_emp, "dept_no")
        assert result.tolist() == ["d002"]

    def test_window_bounds_are_inclusive(self):
        salaries = salaries_frame([
            (1, 50000, d("2000-01-01"), d("2000-06-01")),
            (1, 51000, d("2000-06-01"), d("2001-01-01")),
        ])
        titles = titles_frame([(1, "Engineer", d("2000-01-01"), d("2000-06-01"))])
        result = assignment_at_start(salaries, titles, "title")
        assert result.tolist() == ["Engineer", "Engineer"]

    def test_no_covering_assignment_gives_null(self):
        salaries = salaries_frame([(1, 50000, d("1990-01-01"), d("1991-01-01"))])
        titles = titles_frame([(1, "Engineer", d("1995-01-01"), CURRENT)])
        assert assignment_at_start(salaries, titles, "title").tolist() == [None]

    def test_salary_period_not_split_on_mid_period_change(self):
        salaries = salaries_frame([(1, 50000, d("2000-01-01"), d("2001-01-01"))])
        titles = titles_frame([
            (1, "Engineer", d("2000-01-01"), d("2000-06-01")),
            (1, "Senior Engineer", d("2000-06-01"), CURRENT),
        ])
        dept_emp = dept_emp_frame([(1, "d005", d("2000-01-01"), CURRENT)])
        enriched = build_emp_salaries(salaries, dept_emp, titles)
        assert len(enriched) == 1
        assert enriched.iloc[0]["title"] == "Engineer"


class TestRefreshViews:
    def test_refresh_materializes_both_views(self, seeded_engine):
        result = refresh_views(seeded_engine)

        assert result["written"] == {"emp_details": 4, "emp_salaries": 6}
        assert result["view_checks"].passed
        assert result["post_refresh_validation"].passed

        with seeded_engine.connect() as conn:
            assert conn.execute(select(func.count()).select_from(EmpDetail)).scalar() == 4
            title_end = conn.execute(
                select(EmpDetail.title_end).where(EmpDetail.emp_no == 10002)
            ).scalar()
            assert title_end == "Senior Staff"

    def test_refresh_replaces_previous_rows(self, seeded_engine):
        refresh_views(seeded_engine)
        refresh_views(seeded_engine)
        with seeded_engine.connect() as conn:
            assert conn.execute(select(func.count()).select_from(EmpSalary)).scalar() == 6

    def test_single_view_refresh(self, seeded_engine):
        result = refresh_views(seeded_engine, view_name="emp_salaries")
        assert list(result["written"]) == ["emp_salaries"]

    def test_unknown_view_rejected(self, seeded_engine):
        with pytest.raises(ViewRefreshError):
            refresh_views(seeded_engine, view_name="emp_titles")
