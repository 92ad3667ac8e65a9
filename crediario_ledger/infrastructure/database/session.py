"""Database engine and session management"""

from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from crediario_ledger.config import settings


def create_ledger_engine(database_url: str) -> Engine:
    """
    Build the engine for a database URL.

    PostgreSQL gets a pre-pinged pool recycled hourly. SQLite (tests, local
    runs) is opened for use across threads and waits on locks instead of
    failing, since balance and settlement writes serialize on it.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return create_engine(database_url, connect_args={"check_same_thread": False, "timeout": 30})

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=3600,
    )


engine = create_ledger_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions (one unit of work per request)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
