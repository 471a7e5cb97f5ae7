# src/pricewatch/infrastructure/db/uow.py
"""
Unit of Work: explicit transaction boundaries.

The caller owns the transaction. The ingestion path draws one session_scope()
around its read-evaluate-write sequence; the evaluator and filter never commit.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session

from .base import SessionLocal, engine
from .models import Base

log = logging.getLogger(__name__)


def create_tables():
    """Creates all tables defined in models."""
    log.info("Creating database tables if they do not exist...")
    try:
        Base.metadata.create_all(engine)
        log.info("Database tables checked/created successfully.")
    except Exception as e:
        log.critical(f"Failed to create database tables: {e}", exc_info=True)
        raise


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.
    This handles session creation, commit, rollback, and closing.
    """
    session = SessionLocal()
    log.debug(f"Session {id(session)} opened.")
    try:
        yield session
        session.commit()
        log.debug(f"Session {id(session)} committed.")
    except Exception as e:
        log.error(f"Session {id(session)} rollback due to exception: {e}", exc_info=True)
        session.rollback()
        raise
    finally:
        session.close()
        log.debug(f"Session {id(session)} closed.")
