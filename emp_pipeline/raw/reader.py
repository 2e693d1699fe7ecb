# emp_pipeline/raw/reader.py
"""Read base tables from the database into cleaned DataFrames."""

import logging
from typing import Dict, Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.engine import Engine

from db.db_utils import get_engine
from db.models import BASE_TABLES
from emp_pipeline.raw.utils import normalize_date_columns, with_int_keys

logger = logging.getLogger(__name__)

DATE_COLUMNS = ["birth_date", "hire_date", "from_date", "to_date"]


def read_table(table_name: str, engine: Optional[Engine] = None) -> pd.DataFrame:
    """Read one base table with date columns as datetime.date values."""
    engine = engine or get_engine()
    model = BASE_TABLES[table_name]
    df = pd.read_sql(select(model.__table__), engine)
    df = with_int_keys(normalize_date_columns(df, DATE_COLUMNS))
    logger.info(f"Read {len(df)} rows from {table_name}")
    return df


def read_base_tables(engine: Optional[Engine] = None) -> Dict[str, pd.DataFrame]:
    """Read employees, salaries, dept_emp and titles."""
    engine = engine or get_engine()
    return {name: read_table(name, engine) for name in BASE_TABLES}
