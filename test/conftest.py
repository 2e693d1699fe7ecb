"""Shared fixtures: a throwaway SQLite database and small base-table frames."""

from datetime import date

import pandas as pd
import pytest

from db.db_utils import reset_engine, create_all_tables
from db.models import BASE_TABLES
from emp_pipeline.raw.utils import CURRENT_SENTINEL

CURRENT = CURRENT_SENTINEL


def d(value: str) -> date:
    return date.fromisoformat(value)


def frame(rows, columns) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=columns)
    df["emp_no"] = df["emp_no"].astype("int64")
    return df


def employees_frame(rows) -> pd.DataFrame:
    return frame(rows, ["emp_no", "birth_date", "first_name", "last_name", "gender", "hire_date"])


def salaries_frame(rows) -> pd.DataFrame:
    return frame(rows, ["emp_no", "salary", "from_date", "to_date"])


def dept_emp_frame(rows) -> pd.DataFrame:
    return frame(rows, ["emp_no", "dept_no", "from_date", "to_date"])


def titles_frame(rows) -> pd.DataFrame:
    return frame(rows, ["emp_no", "title", "from_date", "to_date"])


def base_frames():
    """
    Four employees:
    - 10001 consistent history
    - 10002 hired 1990-01-01, earliest title/dept/salary from 1990-06-01
    - 10003 latest salary row is zero-length (2002-08-01 to 2002-08-01),
      overlapping department windows
    - 10004 no history rows at all
    """
    employees = employees_frame([
        (10001, d("1953-09-02"), "Georgi", "Facello", "M", d("1986-06-26")),
        (10002, d("1964-06-02"), "Bezalel", "Simmel", "F", d("1990-01-01")),
        (10003, d("1959-12-03"), "Parto", "Bamford", "M", d("1995-03-01")),
        (10004, d("1954-05-01"), "Chirstian", "Koblick", "M", d("1996-01-01")),
    ])
    salaries = salaries_frame([
        (10001, 60117, d("1986-06-26"), d("1987-06-26")),
        (10001, 62102, d("1987-06-26"), CURRENT),
        (10002, 65828, d("1990-06-01"), d("1991-06-01")),
        (10002, 65909, d("1991-06-01"), CURRENT),
        (10003, 40006, d("1995-03-01"), d("2002-08-01")),
        (10003, 43616, d("2002-08-01"), d("2002-08-01")),
    ])
    dept_emp = dept_emp_frame([
        (10001, "d005", d("1986-06-26"), CURRENT),
        (10002, "d007", d("1990-06-01"), CURRENT),
        (10003, "d004", d("1995-03-01"), d("2001-01-01")),
        (10003, "d006", d("1999-01-01"), d("2003-01-01")),
    ])
    titles = titles_frame([
        (10001, "Senior Engineer", d("1986-06-26"), CURRENT),
        (10002, "Staff", d("1990-06-01"), d("1996-08-03")),
        (10002, "Senior Staff", d("1996-08-03"), CURRENT),
        (10003, "Senior Engineer", d("1995-03-01"), CURRENT),
    ])
    return {"employees": employees, "salaries": salaries, "dept_emp": dept_emp, "titles": titles}


def seed(engine, frames) -> None:
    """Insert base frames into the database."""
    with engine.begin() as conn:
        for table_name, model in BASE_TABLES.items():
            records = frames[table_name].astype(object).to_dict(orient="records")
            if records:
                conn.execute(model.__table__.insert(), records)


@pytest.fixture
def frames():
    return base_frames()


@pytest.fixture
def engine(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'employees.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    engine = reset_engine(url)
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def seeded_engine(engine, frames):
    seed(engine, frames)
    return engine
