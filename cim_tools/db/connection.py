"""Database connection and session management."""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings
from .models import Base

logger = logging.getLogger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for the configured database."""
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,  # Verify connections before using
        echo=settings.sql_echo,  # Log SQL queries (debug mode)
    )


def init_db(engine: Engine) -> None:
    """Initialize database by creating all tables."""
    logger.info("Initializing database...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully")


@contextmanager
def get_db_context(engine: Engine) -> Generator[Session, None, None]:
    """
    Get database session for use in context manager.

    Usage:
        with get_db_context(engine) as db:
            entry = db.get(Entry, 42)
    """
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
