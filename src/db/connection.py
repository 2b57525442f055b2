"""Database connection management for ReplyAgent.

Provides synchronous database access using SQLAlchemy. The reply pipeline
runs blocking store calls in worker threads (asyncio.to_thread), so every
store opens its own short-lived session from ``SessionLocal``.

Supports SQLite for development with PostgreSQL for shared deployments.

Usage:
    from src.db.connection import init_db, session_factory_for

    session_factory = session_factory_for(config.database.url)
    init_db(bind=session_factory.kw["bind"])
    svc = PersonaService(session_factory)
"""

import logging
import os
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from src.db.models import Base

logger = logging.getLogger(__name__)


# Configuration
def get_database_url() -> str:
    """Get database URL from environment or use default SQLite.

    Precedence:
    1. DATABASE_URL (canonical)
    2. REPLYAGENT_DB_PATH (file path, converted to sqlite URL)
    3. sqlite:///<data dir>/replyagent.db
    """
    database_url = os.environ.get("DATABASE_URL", "").strip()
    if database_url:
        return database_url

    db_path = os.environ.get("REPLYAGENT_DB_PATH", "").strip()
    if db_path:
        if db_path.startswith("sqlite:"):
            return db_path
        return f"sqlite:///{db_path}"

    from src.utils.paths import ensure_dirs_exist, get_default_db_path

    ensure_dirs_exist()
    return f"sqlite:///{get_default_db_path()}"


def build_engine(database_url: str) -> Engine:
    """Create a sync engine with SQLite pragmas wired in.

    Args:
        database_url: SQLAlchemy database URL.

    Returns:
        Configured Engine.
    """
    is_sqlite = database_url.startswith("sqlite")
    new_engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        echo=os.environ.get("SQL_ECHO", "").lower() == "true",
    )

    if is_sqlite:

        @event.listens_for(new_engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
            """Configure SQLite pragmas for correctness and concurrency.

            Enables:
            - foreign_keys=ON: Referential integrity (disabled by default in SQLite).
            - journal_mode=WAL: Concurrent readers plus a single writer, so
              overlapping replies do not block each other on reads.
            - synchronous=NORMAL: Commits are durable after WAL fsync.
            """
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.close()

    return new_engine


# Engine creation
DATABASE_URL = get_database_url()

engine = build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def session_factory_for(database_url: str | None = None) -> sessionmaker[Session]:
    """Return a session factory for a database URL.

    The module-level SessionLocal is reused when the URL is the process
    default; any other URL gets its own engine.
    """
    if not database_url or database_url == DATABASE_URL:
        return SessionLocal
    return sessionmaker(autocommit=False, autoflush=False, bind=build_engine(database_url))


# Initialization functions


def init_db(bind: Engine | None = None) -> None:
    """Create all database tables synchronously.

    Safe to call multiple times - will not recreate existing tables.

    Args:
        bind: Engine to initialize. Defaults to the module engine.
    """
    Base.metadata.create_all(bind=bind or engine)

