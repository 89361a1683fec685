"""Database connection and session management for planTogether.

SQLite is the default for local development; any SQLAlchemy URL can be
supplied through `DATABASE_URL`.
"""

import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from dotenv import load_dotenv

load_dotenv()

# Database URL - SQLite by default (local dev)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./plantogether.db")

def _is_sqlite_url(database_url: str) -> bool:
    return "sqlite" in (database_url or "")


def get_engine_kwargs(database_url: str) -> dict:
    """Return deterministic create_engine kwargs for a DB URL.

    This is separated to allow deterministic unit testing without connecting.
    """
    engine_kwargs: dict = {
        "echo": os.getenv("DEBUG", "False").lower() == "true",
        "pool_pre_ping": True,
    }

    if _is_sqlite_url(database_url):
        # Sessions may be handed across threads by the caller.
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    return engine_kwargs


def build_engine(database_url: str) -> Engine:
    return create_engine(database_url, **get_engine_kwargs(database_url))


# Create engine (module-level singleton)
engine = build_engine(DATABASE_URL)


@event.listens_for(Engine, "connect")
def set_sqlite_pragmas(dbapi_conn, connection_record):
    """Enable foreign keys on SQLite connections (needed for ON DELETE CASCADE)."""
    if _is_sqlite_url(DATABASE_URL):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for declarative models
Base = declarative_base()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a session that is always closed; callers commit through repositories."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(*, engine_override: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    # Register models on Base.metadata before create_all.
    from plantogether.database import models  # noqa: F401

    Base.metadata.create_all(bind=engine_override or engine)
