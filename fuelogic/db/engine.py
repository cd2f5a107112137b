# fuelogic/db/engine.py
"""
Database engine and session management.

SQLite by default; set DATABASE_URL for PostgreSQL.
"""

from contextlib import contextmanager
from typing import Callable, Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

SessionFactory = Callable[[], Session]


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across threads because FastAPI runs sync
    dependencies in a worker pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Check connection health
        pool_size=10,
        max_overflow=20,
    )


def build_session_factory(engine: Engine) -> SessionFactory:
    """Session factory bound to engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )


@contextmanager
def session_scope(session_factory: SessionFactory) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_connection(engine: Engine) -> bool:
    """
    Check database connection.

    Returns:
        True if connection successful
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def next_position(session: Session, table: str) -> int:
    """
    Next insertion position for an ordered table (max + 1, or 1 if empty).

    Registrations are listed in insertion order; timestamps alone can tie.
    """
    result = session.execute(
        text(f"SELECT COALESCE(MAX(position), 0) + 1 FROM {table}")
    )
    return int(result.scalar())
