"""
Database helpers shared by the order services.

`get_session()` is the unit of work used by every engine operation: it
begins a transaction on entry and leaves through exactly one of two exits,
commit on normal completion or rollback on any exception.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import AppConfig
from .errors import OrderingError, TransactionFailedError

logger = logging.getLogger(__name__)

_engine = None
_session_factory: sessionmaker | None = None
_scoped_session: scoped_session | None = None


def init_engine(config: AppConfig):
    """
    Initialize a SQLAlchemy engine and session factory using the given config.

    The engine is stored as a module-level singleton so that every request
    handler reuses the same connection pool.
    """
    global _engine, _session_factory, _scoped_session

    if _engine is None:
        database_url = config.sqlalchemy_uri
        engine_kwargs: dict[str, Any] = {
            "pool_pre_ping": True,
            "pool_size": config.db_pool_size,
            "max_overflow": config.db_max_overflow,
            "pool_recycle": 3600,
        }

        if config.is_sqlite:
            engine_kwargs["pool_pre_ping"] = False
            engine_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": config.sqlite_busy_timeout,
            }
            if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
                engine_kwargs.pop("pool_size")
                engine_kwargs.pop("max_overflow")
                engine_kwargs["poolclass"] = StaticPool

        _engine = create_engine(database_url, **engine_kwargs)

        if config.is_sqlite:
            _enable_sqlite_write_locking(_engine)

        slow_query_seconds = config.slow_query_seconds

        @event.listens_for(_engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("query_start_time", []).append(time.time())

        @event.listens_for(_engine, "after_cursor_execute")
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            total = time.time() - conn.info["query_start_time"].pop(-1)
            if total > slow_query_seconds:
                logger.warning("Slow query detected (%.2fs): %s...", total, statement[:200])

        _session_factory = sessionmaker(
            bind=_engine, autoflush=False, autocommit=False, expire_on_commit=False
        )
        _scoped_session = scoped_session(_session_factory)

    return _engine


def _enable_sqlite_write_locking(engine) -> None:
    """
    Make every SQLite transaction take the database write lock up front.

    SQLite has no row locks, so `SELECT ... FOR UPDATE` is a no-op there.
    Beginning with `BEGIN IMMEDIATE` serializes writers instead, which keeps
    order numbering and table occupancy decisions race free in local runs.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_db(metadata) -> None:
    """
    Ensure all tables declared on the provided metadata exist in the database.
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_engine first.")

    try:
        metadata.create_all(_engine)
        logger.info("Database schema created successfully")
    except OperationalError as exc:
        logger.warning("Schema creation warning: %s", exc)


def dispose_engine() -> None:
    """Drop the engine singleton and its pooled connections."""
    global _engine, _session_factory, _scoped_session

    if _scoped_session is not None:
        _scoped_session.remove()
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
    _scoped_session = None


@contextmanager
def get_session() -> Iterator[Session]:
    """
    Provide a transactional scope around a series of operations.

    Yields a session and commits when the block completes. Any exception
    rolls the whole unit of work back; driver level failures (lock timeouts,
    serialization failures, constraint races) surface as
    TransactionFailedError so callers can retry the operation wholesale.
    The session is always removed from the scoped registry afterwards.
    """
    if _scoped_session is None:
        raise RuntimeError("Session factory unavailable. Call init_engine first.")

    session: Session = _scoped_session()
    try:
        yield session
        session.commit()
    except OrderingError:
        session.rollback()
        raise
    except DBAPIError as exc:
        session.rollback()
        logger.warning("Unit of work aborted by the store: %s", exc.orig)
        raise TransactionFailedError(
            "The operation could not be completed, please retry",
            reason=type(exc.orig).__name__ if exc.orig is not None else type(exc).__name__,
        ) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        _scoped_session.remove()
