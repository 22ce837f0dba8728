"""
Database engine and session management.
"""
import logging
import sqlite3
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from streamflix.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _configure_sqlite_connection(dbapi_connection, connection_record):
    """
    SQLite ships with foreign key enforcement off; turn it on per connection.

    pysqlite's own deferred BEGIN is disabled here so that ``_begin_immediate``
    controls when transactions start.
    """
    if isinstance(dbapi_connection, sqlite3.Connection):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(Engine, "begin")
def _begin_immediate(conn):
    """
    Take the SQLite write lock when a transaction starts.

    A deferred transaction that reads and then writes fails with
    "database is locked" when another writer got there first; with
    BEGIN IMMEDIATE the second writer waits out the busy timeout instead.
    """
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Build create_engine() keyword arguments for a database URL.

    File-backed and server databases get a bounded pool of
    ``DB_POOL_SIZE`` connections with no overflow, so callers beyond the
    limit wait up to ``DB_POOL_TIMEOUT`` seconds. In-memory SQLite shares a
    single connection.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Dict[str, Any]: Engine options
    """
    url = make_url(database_url)
    timeout = settings.DB_STATEMENT_TIMEOUT_SECONDS

    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": timeout}
        if url.database in (None, "", ":memory:"):
            return {"connect_args": connect_args, "poolclass": StaticPool}
    elif url.get_backend_name() == "postgresql":
        connect_args = {"options": f"-c statement_timeout={timeout * 1000}"}
    else:
        connect_args = {}

    return {
        "connect_args": connect_args,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": 0,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables() -> None:
    """Create all tables that do not exist yet."""
    # Import models so metadata is populated
    import streamflix.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding a session.

    The session is always closed, returning its connection to the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
