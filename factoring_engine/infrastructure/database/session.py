"""Database session management and per-operation transactions"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, Session

from factoring_engine.config import settings
from factoring_engine.domain.exceptions import ConflictError

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Pooled engine for Postgres; SQLite (local/test) gets the driver defaults"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit on success, roll back on any error.

    Uniqueness violations surface as ConflictError so concurrent callers
    racing on the same request get a typed, retryable failure.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Integrity conflict, transaction rolled back", extra={"error": str(e.orig)})
        raise ConflictError() from e
    except Exception:
        db.rollback()
        raise
