# File: app/db/session.py
"""
Database session management for TaskCadence.

Usage:
    from app.db.session import get_db

    @router.get("/")
    def some_endpoint(db: Session = Depends(get_db)):
        ...
"""

import logging
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import settings
from app.db.models.base import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """
    Create an engine for the given URL, enabling SQLite foreign keys.

    Args:
        database_url: SQLAlchemy database URL
        echo: Whether to log SQL statements
        **kwargs: Extra arguments for create_engine (e.g. poolclass)
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    db_engine = create_engine(
        database_url, echo=echo, connect_args=connect_args, **kwargs
    )

    if database_url.startswith("sqlite"):

        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return db_engine


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a session that is always closed.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """Create all tables that do not exist yet."""
    # Register every model on the metadata before create_all
    import app.db.models  # noqa: F401

    logger.info("Initializing database schema...")
    Base.metadata.create_all(bind=bind or engine)
