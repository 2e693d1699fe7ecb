# db/db_utils.py
"""
Database engine and session helpers.
The connection URL comes from the pipeline configuration (DATABASE_URL).
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base
from emp_pipeline.common.config import load_config

logger = logging.getLogger(__name__)

_ENGINE: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Return the shared engine, creating it on first use.

    Args:
        database_url: Optional URL overriding DATABASE_URL
    """
    global _ENGINE
    if database_url is not None:
        reset_engine(database_url)
    if _ENGINE is None:
        url = load_config().database_url
        _ENGINE = create_engine(url, future=True, pool_pre_ping=True)
        SessionLocal.configure(bind=_ENGINE)
        logger.info(f"Database engine created for {_ENGINE.url.render_as_string(hide_password=True)}")
    return _ENGINE


def reset_engine(database_url: Optional[str] = None) -> Engine:
    """Dispose the shared engine and bind a new one (used by tests and the CLI)."""
    global _ENGINE
    if _ENGINE is not None:
        _ENGINE.dispose()
    url = database_url or load_config().database_url
    _ENGINE = create_engine(url, future=True, pool_pre_ping=True)
    SessionLocal.configure(bind=_ENGINE)
    return _ENGINE


def get_session(engine: Optional[Engine] = None) -> Session:
    """Open a new ORM session bound to engine (the shared engine if not provided)."""
    if engine is not None:
        return SessionLocal(bind=engine)
    get_engine()
    return SessionLocal()


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Create base, view and audit tables if they don't exist."""
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info("Tables created or already exist")
