"""Database engine with WAL mode and serializable write transactions.

This module provides:
- Database: Connection manager with WAL mode so readers run while the
  indexer writes
- immediate_transaction: BEGIN IMMEDIATE sessions for per-file writes, with
  retry on a locked database
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = structlog.get_logger()

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 0.1  # 100ms base
DEFAULT_RETRY_MAX_DELAY = 2.0  # 2s max
DEFAULT_BUSY_TIMEOUT_MS = 30000


def _is_database_locked_error(error: Exception) -> bool:
    """Check if error is a SQLite database locked error."""
    error_str = str(error).lower()
    return "database is locked" in error_str or "database is busy" in error_str


class Database:
    """SQLite connection manager with WAL mode for concurrent access.

    Includes retry logic with exponential backoff for acquiring the write
    lock under contention.
    """

    def __init__(
        self,
        db_path: Path,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        self.db_path = db_path
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._busy_timeout_ms = busy_timeout_ms
        self.engine = self._create_engine()

    def _create_engine(self) -> Engine:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )
        event.listen(engine, "connect", _make_pragma_listener(self._busy_timeout_ms))
        return engine

    def create_all(self) -> None:
        """Create all tables, then indexes and full-text tables."""
        from pindex.index._internal.db.indexes import create_additional_indexes

        SQLModel.metadata.create_all(self.engine)
        create_additional_indexes(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """ORM session for reads and low-volume writes."""
        with Session(self.engine, expire_on_commit=False) as session:
            yield session

    @contextmanager
    def immediate_transaction(
        self,
        max_retries: int | None = None,
    ) -> Generator[Session, None, None]:
        """Session with BEGIN IMMEDIATE for serializable writes.

        BEGIN IMMEDIATE acquires a RESERVED lock up front, blocking other
        writers but allowing readers. Only the lock acquisition is retried;
        errors raised by the caller's block propagate after rollback.

        The session commits on successful exit and rolls back on exception.

        Args:
            max_retries: Override default max retries
        """
        retries = max_retries if max_retries is not None else self._max_retries
        session = self._begin_immediate(retries)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _begin_immediate(self, retries: int) -> Session:
        for attempt in range(retries + 1):
            session = Session(self.engine, expire_on_commit=False)
            try:
                session.execute(text("BEGIN IMMEDIATE"))
                return session
            except OperationalError as e:
                session.close()
                if not _is_database_locked_error(e) or attempt >= retries:
                    raise
                delay = min(self._retry_base_delay * (2**attempt), self._retry_max_delay)
                logger.warning(
                    "sqlite_busy_retry",
                    attempt=attempt + 1,
                    max_retries=retries,
                    delay_sec=delay,
                )
                time.sleep(delay)
        raise AssertionError("unreachable")

    def dispose(self) -> None:
        self.engine.dispose()


def _make_pragma_listener(busy_timeout_ms: int) -> Callable[[Any, Any], None]:
    def _configure_pragmas(dbapi_conn: Any, _connection_record: Any) -> None:
        """Configure SQLite for concurrent access and performance."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.execute("PRAGMA synchronous=NORMAL")  # Safe with WAL
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA cache_size=-64000")  # 64MB cache
        cursor.close()

    return _configure_pragmas
