"""
Raw layer - base employee-records tables.
Reading, cleaning and CSV seeding of employees, salaries, dept_emp and titles.
"""

from emp_pipeline.raw.loader import run_raw_load, load_csv_to_table, clean_table_frame
from emp_pipeline.raw.reader import read_table, read_base_tables
from emp_pipeline.raw.utils import (
    clean_string_column,
    clean_numeric_column,
    clean_date_column,
    to_date,
    CURRENT_SENTINEL,
)

__all__ = [
    "run_raw_load",
    "load_csv_to_table",
    "clean_table_frame",
    "read_table",
    "read_base_tables",
    "clean_string_column",
    "clean_numeric_column",
    "clean_date_column",
    "to_date",
    "CURRENT_SENTINEL",
]
