"""
Database engine and session helpers for the relational catalog backend.

This module is intentionally small and test-friendly:
- Defaults to SQLite for local dev
- Supports Postgres via DATABASE_URL (postgresql+psycopg://...)

Engines are built on demand and owned by the backend that asked for them;
nothing here is created at import time.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from toolhub.config import get_settings
from toolhub.models.base import Base


def get_database_url() -> str:
    settings = get_settings()
    return settings.DATABASE_URL


def create_db_engine(
    database_url: Optional[str] = None,
    *,
    echo: bool = False,
    timeout_seconds: int = 10,
) -> Engine:
    url = database_url or get_database_url()

    connect_args: dict = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout_seconds
    elif url.startswith("postgresql"):
        connect_args["connect_timeout"] = timeout_seconds
        connect_args["options"] = f"-c lock_timeout={timeout_seconds * 1000}"

    if url.startswith("sqlite:///:memory:") or url == "sqlite://":
        engine = create_engine(
            url,
            echo=echo,
            connect_args=connect_args,
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args=connect_args,
        )

    if url.startswith("sqlite"):
        _install_sqlite_transaction_hooks(engine, in_memory=":memory:" in url or url == "sqlite://")

    return engine


def _install_sqlite_transaction_hooks(engine: Engine, *, in_memory: bool) -> None:
    """
    SQLite has no row locks, so FOR UPDATE is a no-op there.

    The driver's implicit BEGIN is disabled and every transaction is opened
    with BEGIN IMMEDIATE instead, which takes the database write lock up front.
    Read-modify-write sequences are then serialized by SQLite itself.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record):  # pragma: no cover
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):  # pragma: no cover
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def shares_one_connection(engine: Engine) -> bool:
    """
    True when every session runs on the same DBAPI connection (in-memory
    SQLite). SQLite transactions are per connection, so callers must not
    interleave transactions on such an engine.
    """
    return isinstance(engine.pool, StaticPool)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """Create the catalog tables if they are missing."""
    # Register the catalog tables on Base.metadata before create_all().
    from toolhub.models import app as _app  # noqa: F401

    Base.metadata.create_all(bind=engine, checkfirst=True)
