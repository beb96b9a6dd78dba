"""Database connection management for TrackMaster.

Provides synchronous SQLAlchemy access to the local SQLite state database.

Usage:
    from trackmaster.db.connection import get_db_context, init_db

    init_db()  # Create tables
    with get_db_context() as db:
        store = SqlLedgerStore(db)
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from trackmaster.db.models import Base


def get_database_url(database_url: str | None = None) -> str:
    """Resolve the database URL.

    Precedence:
    1. Explicit argument (from config)
    2. DATABASE_URL
    3. TRACKMASTER_DB_PATH (converted to sqlite URL)
    4. sqlite:///<user data dir>/trackmaster.db
    """
    if database_url:
        return database_url

    env_url = os.environ.get("DATABASE_URL", "").strip()
    if env_url:
        return env_url

    db_path = os.environ.get("TRACKMASTER_DB_PATH", "").strip()
    if db_path:
        if db_path.startswith("sqlite:"):
            return db_path
        return f"sqlite:///{db_path}"

    from trackmaster.utils.paths import get_default_db_path
    return f"sqlite:///{get_default_db_path()}"


def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    """Configure SQLite pragmas for correctness.

    Enables:
    - journal_mode=WAL: readers don't block the single writer.
    - synchronous=NORMAL: durable after WAL fsync.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA synchronous=NORMAL;")
    cursor.close()


@lru_cache(maxsize=8)
def get_engine(database_url: str | None = None) -> Engine:
    """Create (once per URL) the engine for a database URL."""
    url = get_database_url(database_url)
    is_sqlite = url.startswith("sqlite")
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        echo=os.environ.get("SQL_ECHO", "").lower() == "true",
    )
    if is_sqlite and ":memory:" not in url:
        event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def init_db(database_url: str | None = None) -> None:
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=get_engine(database_url))


def get_session_factory(database_url: str | None = None) -> sessionmaker[Session]:
    """Return a session factory bound to the engine for a URL."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=get_engine(database_url),
    )


@contextmanager
def get_db_context(database_url: str | None = None) -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Commits on success, rolls back on error.

    Usage:
        with get_db_context() as db:
            db.query(FailedItemRecord).count()
    """
    db = get_session_factory(database_url)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
