"""
Database - engine and session management

Handles connection setup and schema lifecycle for the practice database.
Uses SQLAlchemy ORM with a Postgres backend in production.

Query and write logic lives with the components that own it; this module
only hands out sessions.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from shadowing.config import get_database_url
from shadowing.db.models import Base


REQUIRED_TABLES = ('users', 'materials', 'daily_plans', 'plan_items', 'practice_records')

# Engine and session factory are created once and reused across requests
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """
    Shared engine for the configured practice database, built on first use.

    SQLite URLs get SQLAlchemy's default pool. Server databases get a
    QueuePool of 5 connections plus 10 overflow, pinged before checkout so
    the plan batch and completion requests survive dropped connections.
    """
    global _engine

    if _engine is not None:
        return _engine

    db_url = get_database_url()
    if db_url.startswith("sqlite"):
        _engine = create_engine(db_url, echo=False)
    else:
        _engine = create_engine(
            db_url,
            poolclass=QueuePool,
            pool_size=5,           # Keep 5 connections open
            max_overflow=10,       # Allow up to 10 extra connections
            pool_pre_ping=True,    # Verify connections before use
            echo=False
        )
    return _engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """
    Get a session factory bound to the given engine (default: shared engine).
    """
    global _session_factory

    if engine is not None:
        return sessionmaker(bind=engine, expire_on_commit=False)

    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


def get_session() -> Session:
    """
    New session from the shared factory (expire_on_commit disabled).

    The caller owns it and must close it; prefer session_scope().
    """
    return get_session_factory()()


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """
    Session that is rolled back on error and always closed.

    Callers commit explicitly; core operations commit after each write step.
    """
    session = factory() if factory is not None else get_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Create the practice tables, or verify an existing schema.

    If any of REQUIRED_TABLES is missing, every model table is created
    (existing ones are left alone). If all are present, the schema must
    already carry practice_records.operation_id.

    Raises:
        RuntimeError: tables exist but predate the operation_id column
    """
    engine = engine or get_engine()

    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())

    if not all(table in existing_tables for table in REQUIRED_TABLES):
        Base.metadata.create_all(engine)
        return

    # Tables exist: refuse to run against a pre-idempotency-token schema
    record_columns = {col["name"] for col in inspector.get_columns("practice_records")}
    if "operation_id" not in record_columns:
        raise RuntimeError(
            "practice_records is missing the operation_id column. "
            "Please reset or migrate the database."
        )


def reset_db(engine: Optional[Engine] = None) -> None:
    """
    Drop every practice table and rebuild an empty schema.

    Irreversible: users, materials, plans and practice records are all
    discarded. Run against the test database (TEST_MODE=true) unless a
    production wipe is really intended.
    """
    engine = engine or get_engine()
    Base.metadata.drop_all(engine)
    init_db(engine)
