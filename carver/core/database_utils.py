"""
Database utility functions for consistent session management outside request scope.

Request handlers receive their session from the FastAPI dependency in
carver.api.deps; scripts and startup checks use get_db_session().
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from carver.db.session import SessionLocal, engine
from carver.db.base import Base

logger = logging.getLogger(__name__)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Get a database session with proper cleanup using context manager.

    Usage:
        with get_db_session() as db:
            result = db.query(Model).all()

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Database session error: {e}")
        raise
    finally:
        db.close()


def check_connection() -> bool:
    """Return True when a trivial query succeeds."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


def get_missing_tables() -> list:
    """Tables declared on Base.metadata that do not exist in the database."""
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()
    required_tables = [table.name for table in Base.metadata.tables.values()]
    return [table for table in required_tables if table not in existing_tables]
