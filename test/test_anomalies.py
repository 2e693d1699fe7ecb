"""Tests for the read-only anomaly checks."""

import pandas as pd
import pytest

from emp_pipeline.common.exceptions import DetectionError
from emp_pipeline.common.quality_checks import ERROR, INFO, WARNING
from emp_pipeline.detect import (
    EARLIER,
    LATER,
    SAME,
    check_degenerate_periods_are_latest,
    classify_hire_date,
    find_continuity_gaps,
    find_degenerate_periods,
    find_duplicate_periods,
    find_hire_date_mismatches,
    run_anomaly_detection,
)

from conftest import CURRENT, d, employees_frame, salaries_frame, titles_frame


class TestHireDateMismatch:
    def test_classification(self):
        assert classify_hire_date(d("1990-01-01"), d("1990-06-01")) == EARLIER
        assert classify_hire_date(d("1990-06-01"), d("1990-01-01")) == LATER
        assert classify_hire_date(d("1990-01-01"), d("1990-01-01")) == SAME

    def test_hire_before_first_title(self, frames):
        mismatches = find_hire_date_mismatches(frames["employees"], frames["titles"], "titles")
        assert mismatches["emp_no"].tolist() == [10002]
        row = mismatches.iloc[0]
        assert row["hire_date"] == d("1990-01-01")
        assert row["earliest_from_date"] == d("1990-06-01")
        assert row["hire_date_position"] == EARLIER

    def test_hire_after_first_record(self):
        employees = employees_frame([(1, d("1960-01-01"), "A", "B", "F", d("2000-05-01"))])
        salaries = salaries_frame([
            (1, 40000, d("2000-01-01"), d("2001-01-01")),
            (1, 42000, d("2001-01-01"), CURRENT),
        ])
        mismatches = find_hire_date_mismatches(employees, salaries, "salaries")
        assert mismatches["hire_date_position"].tolist() == [LATER]

    def test_same_is_not_emitted(self, frames):
        mismatches = find_hire_date_mismatches(frames["employees"], frames["salaries"], "salaries")
        assert 10001 not in mismatches["emp_no"].tolist()

    def test_employee_without_history_is_ignored(self, frames):
        mismatches = find_hire_date_mismatches(frames["employees"], frames["dept_emp"], "dept_emp")
        assert 10004 not in mismatches["emp_no"].tolist()

    def test_missing_column_raises(self, frames):
        with pytest.raises(DetectionError):
            find_hire_date_mismatches(frames["employees"].drop(columns="hire_date"), frames["titles"], "titles")


class TestContinuityGaps:
    def test_contiguous_history_has_no_gaps(self, frames):
        assert find_continuity_gaps(frames["salaries"], "salaries").empty

    def test_gap_is_reported_with_next_from_date(self):
        salaries = salaries_frame([
            (1, 40000, d("2000-01-01"), d("2001-01-01")),
            (1, 42000, d("2001-02-01"), CURRENT),
        ])
        gaps = find_continuity_gaps(salaries, "salaries")
        assert len(gaps) == 1
        assert gaps.iloc[0]["to_date"] == d("2001-01-01")
        assert gaps.iloc[0]["next_from_date"] == d("2001-02-01")

    def test_last_row_never_flagged(self):
        titles = titles_frame([(1, "Engineer", d("2000-01-01"), d("2001-01-01"))])
        assert find_continuity_gaps(titles, "titles").empty

    def test_open_ended_row_is_not_a_gap(self):
        titles = titles_frame([
            (1, "Engineer", d("2000-01-01"), None),
            (1, "Senior Engineer", d("2001-01-01"), CURRENT),
        ])
        assert find_continuity_gaps(titles, "titles").empty

    def test_concurrent_departments_show_as_gaps(self, frames):
        gaps = find_continuity_gaps(frames["dept_emp"], "dept_emp")
        assert gaps["emp_no"].tolist() == [10003]


class TestDuplicatePeriods:
    def test_duplicates_are_reported_not_dropped(self):
        titles = titles_frame([
            (1, "Engineer", d("2000-01-01"), d("2001-01-01")),
            (1, "Staff", d("2000-01-01"), d("2001-01-01")),
            (2, "Staff", d("2000-01-01"), CURRENT),
        ])
        duplicates = find_duplicate_periods(titles, "titles")
        assert duplicates.to_dict(orient="records") == [
            {"emp_no": 1, "from_date": d("2000-01-01"), "count": 2}
        ]

    def test_no_duplicates(self, frames):
        assert find_duplicate_periods(frames["salaries"], "salaries").empty


class TestDegeneratePeriods:
    def test_latest_only(self, frames):
        degenerate = find_degenerate_periods(frames["salaries"])
        assert degenerate["emp_no"].tolist() == [10003]

        check = check_degenerate_periods_are_latest(frames["salaries"])
        assert (check.total_count, check.latest_count) == (1, 1)
        assert check.counts_match
        assert check.count_comparison == "Counts match"

    def test_interior_degenerate_row(self):
        salaries = salaries_frame([
            (1, 40000, d("2000-01-01"), d("2000-01-01")),
            (1, 42000, d("2000-01-02"), CURRENT),
            (2, 50000, d("2002-08-01"), d("2002-08-01")),
        ])
        check = check_degenerate_periods_are_latest(salaries)
        assert (check.total_count, check.latest_count) == (2, 1)
        assert not check.counts_match
        assert check.count_comparison == "Counts do not match"
        assert check.interior_rows["emp_no"].tolist() == [1]


class TestRunAnomalyDetection:
    def test_report_from_frames(self, frames):
        report = run_anomaly_detection(frames)

        assert report.passed
        assert report.extension_allowed
        assert set(report.hire_date_mismatches) == {"titles", "dept_emp", "salaries"}

        hire = report.qc.get("hire_date_mismatch", "titles")
        assert not hire.passed
        assert hire.severity == WARNING
        assert hire.details == {EARLIER: 1, LATER: 0}

        dept_gaps = report.qc.get("continuity_gaps", "dept_emp")
        assert not dept_gaps.passed
        assert dept_gaps.severity == INFO

        assert report.qc.get("degenerate_periods_latest_only", "salaries").passed

    def test_salary_duplicates_fail_the_report(self, frames):
        frames["salaries"] = pd.concat(
            [frames["salaries"], salaries_frame([(10001, 99999, d("1986-06-26"), d("1986-12-01"))])],
            ignore_index=True,
        )

        report = run_anomaly_detection(frames)
        result = report.qc.get("duplicate_emp_from_date", "salaries")
        assert not result.passed
        assert result.severity == ERROR
        assert not report.passed

    def test_reads_from_database(self, seeded_engine):
        report = run_anomaly_detection(engine=seeded_engine)
        assert report.hire_date_mismatches["salaries"]["emp_no"].tolist() == [10002]
