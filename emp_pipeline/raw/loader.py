# emp_pipeline/raw/loader.py
"""
Seed the base tables (employees, salaries, dept_emp, titles) from CSV files.
Normally the dataset is installed by an external step; this loader covers
fresh databases and test fixtures.
"""

import os
import logging
from typing import Dict, Any, List, Optional

import pandas as pd
from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.db_utils import get_engine, get_session, create_all_tables
from db.models import Employee, Salary, DeptEmp, Title
from emp_pipeline.common.config import load_config
from emp_pipeline.common.exceptions import RawLoadError
from emp_pipeline.common.logging import log_banner
from emp_pipeline.raw.utils import (
    clean_string_column,
    clean_numeric_column,
    clean_date_column,
    to_records,
)

logger = logging.getLogger(__name__)


# Per-table file prefix, column types and required columns
TABLE_SPECS: Dict[str, Dict[str, Any]] = {
    "employees": {
        "model": Employee,
        "int_columns": ["emp_no"],
        "date_columns": ["birth_date", "hire_date"],
        "string_columns": ["first_name", "last_name", "gender"],
        "required": ["emp_no", "hire_date"],
    },
    "salaries": {
        "model": Salary,
        "int_columns": ["emp_no", "salary"],
        "date_columns": ["from_date", "to_date"],
        "string_columns": [],
        "required": ["emp_no", "salary", "from_date", "to_date"],
    },
    "dept_emp": {
        "model": DeptEmp,
        "int_columns": ["emp_no"],
        "date_columns": ["from_date", "to_date"],
        "string_columns": ["dept_no"],
        "required": ["emp_no", "dept_no", "from_date", "to_date"],
    },
    "titles": {
        "model": Title,
        "int_columns": ["emp_no"],
        "date_columns": ["from_date", "to_date"],
        "string_columns": ["title"],
        "required": ["emp_no", "title", "from_date"],
    },
}


def find_table_files(data_dir: str, table_name: str) -> List[str]:
    """CSV files in data_dir whose name starts with the table name, sorted."""
    return sorted(
        os.path.join(data_dir, f) for f in os.listdir(data_dir)
        if f.startswith(table_name) and f.endswith(".csv")
    )


def clean_table_frame(df: pd.DataFrame, table_name: str) -> pd.DataFrame:
    """
    Clean a raw CSV frame for one base table.

    Columns are typed per TABLE_SPECS; rows missing a required column are
    dropped with a warning.
    """
    table_spec = TABLE_SPECS[table_name]
    df = df.copy()
    df.columns = df.columns.str.strip().str.replace('"', '')

    expected = table_spec["int_columns"] + table_spec["date_columns"] + table_spec["string_columns"]
    missing = [c for c in expected if c not in df.columns]
    if missing:
        raise RawLoadError(
            f"Missing columns for {table_name}: {missing}",
            details={"columns": list(df.columns)},
        )

    for col in table_spec["int_columns"]:
        df[col] = clean_numeric_column(df[col]).round().astype("Int64")
    for col in table_spec["date_columns"]:
        df[col] = clean_date_column(df[col])
    for col in table_spec["string_columns"]:
        df[col] = clean_string_column(df[col])

    before = len(df)
    df = df.dropna(subset=table_spec["required"])
    dropped = before - len(df)
    if dropped > 0:
        logger.warning(f"Dropped {dropped} {table_name} rows missing one of {table_spec['required']}")

    return df[expected].reset_index(drop=True)


def table_row_count(session: Session, model) -> int:
    return session.query(func.count()).select_from(model).scalar()


def load_csv_to_table(
    file_path: str,
    table_name: str,
    session: Session,
    batch_size: int = 1000,
    sep: str = ",",
    commit: bool = True,
) -> int:
    """
    Load a single CSV file into a base table.

    Batches are inserted in the session's open transaction. With commit=False
    the caller commits, so several files can land in one transaction.

    Returns:
        Number of records loaded

    Raises:
        RawLoadError: If reading, cleaning or inserting fails
    """
    file_name = os.path.basename(file_path)
    model = TABLE_SPECS[table_name]["model"]
    logger.info(f"Loading file: {file_name} -> {table_name}")

    try:
        df = pd.read_csv(file_path, sep=sep, dtype=str, keep_default_na=False, quotechar='"')
        df = clean_table_frame(df, table_name)
        records = to_records(df)
        total_records = len(records)

        for i in range(0, total_records, batch_size):
            batch = records[i:i + batch_size]
            session.bulk_insert_mappings(model, batch)
            logger.info(f"  Inserted batch {i // batch_size + 1} ({len(batch)} records)")

        if commit:
            session.commit()
        logger.info(f"  Total: {total_records} records loaded from {file_name}")
        return total_records

    except RawLoadError as e:
        session.rollback()
        e.details.setdefault("file_path", file_path)
        logger.error(f"Failed to load {file_name}: {e}")
        raise
    except (OSError, ValueError, SQLAlchemyError) as e:
        session.rollback()
        logger.error(f"Failed to load {file_name}: {e}")
        raise RawLoadError(f"Failed to load {file_name}", file_path=file_path, original_error=e) from e


def load_table(
    table_name: str,
    data_dir: str,
    session: Session,
    batch_size: int = 1000,
    sep: str = ",",
) -> int:
    """
    Load every CSV for one table in a single transaction.

    Tables that already hold rows are skipped. A failure in any file rolls
    back the whole table, so a table is either empty or fully loaded.
    """
    model = TABLE_SPECS[table_name]["model"]
    existing = table_row_count(session, model)
    if existing > 0:
        logger.info(f"Skipping {table_name}: already holds {existing} rows")
        return 0

    files = find_table_files(data_dir, table_name)
    if not files:
        logger.warning(f"No CSV files found for {table_name} in {data_dir}")
        return 0

    total = sum(
        load_csv_to_table(path, table_name, session, batch_size, sep, commit=False) for path in files
    )
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to commit {table_name}: {e}")
        raise RawLoadError(f"Failed to commit {table_name}", original_error=e) from e

    logger.info(f"{table_name}: {total} records committed from {len(files)} file(s)")
    return total


# MAIN LOAD FUNCTION

def run_raw_load(
    data_dir: Optional[str] = None,
    batch_size: Optional[int] = None,
    sep: str = ",",
    engine: Optional[Engine] = None,
) -> Dict[str, int]:
    """
    Seed all four base tables from CSV files.

    Args:
        data_dir: Directory containing the CSV files (defaults to config)
        batch_size: Records per insert batch (defaults to config)
        sep: CSV field separator
        engine: Database engine (shared engine if not provided)

    Returns:
        dict: Loaded record count per table
    """
    config = load_config()
    data_dir = data_dir or config.data_dir
    batch_size = batch_size or config.batch_size

    log_banner(logger, "RAW LOAD: Seeding base tables")
    if not os.path.isdir(data_dir):
        raise RawLoadError(f"Data directory not found: {data_dir}", file_path=data_dir)

    engine = engine or get_engine()
    create_all_tables(engine)

    session = get_session(engine)
    try:
        counts = {
            table_name: load_table(table_name, data_dir, session, batch_size, sep)
            for table_name in TABLE_SPECS
        }
        log_banner(logger, f"RAW LOAD COMPLETE: {counts}")
        return counts
    finally:
        session.close()
