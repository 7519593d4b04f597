"""
Write scope for row-store mutations.

Usage:
    with transaction(db, "insert leads"):
        db.execute(insert(table).values(...))
        # Commits on success, rolls back on error
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session, label: str = "write") -> Generator[Session, None, None]:
    """
    Commit the session when the block succeeds, roll it back otherwise.

    Args:
        db: SQLAlchemy database session
        label: Short description of the mutation, used in log lines

    Yields:
        The same database session

    Raises:
        Any exception raised within the block, after the rollback
    """
    try:
        yield db
        db.commit()
        logger.debug(f"{label}: committed")
    except Exception:
        db.rollback()
        logger.warning(f"{label}: rolled back")
        raise
