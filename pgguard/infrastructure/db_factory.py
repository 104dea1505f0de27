"""
Database connection factory utilities for pgguard.

Provides centralized management of the process-wide PostgreSQL connection pool
with proper lifecycle management. The PoolManager singleton ensures the pool is
closed on application exit.

Pool connections are created in autocommit mode with a dict row factory: single
statements commit on their own, and transactions are opened explicitly with
``conn.transaction()``.

Includes a retrying readiness probe (tenacity) for deployment tooling. Nothing
else in the package retries.
"""

from __future__ import annotations

import atexit
import threading
from contextlib import contextmanager
from typing import Generator, Optional

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pgguard.config import Settings, build_dsn, get_settings
from pgguard.errors import DatabaseConnectionError
from pgguard.utils.logging import get_logger

log = get_logger(__name__)


def _connection_kwargs(settings: Settings) -> dict:
    return {
        "autocommit": True,
        "row_factory": dict_row,
        "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
    }


def create_pool(settings: Optional[Settings] = None, dsn: Optional[str] = None) -> ConnectionPool:
    """
    Build a new connection pool from settings.

    Parameters
    ----------
    settings : Settings, optional
        Source of pool sizing and timeouts. Defaults to the cached settings.
    dsn : str, optional
        Explicit connection string, overriding the one built from settings.

    Returns
    -------
    ConnectionPool
        An opened pool. The caller owns it and must close it.
    """
    settings = settings or get_settings()
    return ConnectionPool(
        conninfo=dsn or build_dsn(settings),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=settings.db_pool_timeout_seconds,
        kwargs=_connection_kwargs(settings),
        open=True,
    )


class PoolManager:
    """
    Thread-safe singleton for managing the shared connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pool = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(self) -> ConnectionPool:
        """
        Get or create the shared synchronous connection pool.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        with self._lock:
            if self._pool is None:
                settings = get_settings()
                self._pool = create_pool(settings)
                log.info(
                    "Connection pool opened",
                    extra={
                        "db_host": settings.db_host,
                        "db_name": settings.db_name,
                        "pool_max_size": settings.db_pool_max_size,
                    },
                )
            return self._pool

    def close_all(self) -> None:
        """
        Close the managed pool and release its connections.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            if self._pool is None:
                return
            try:
                self._pool.close()
            except psycopg.Error:
                log.warning("Error while closing connection pool", exc_info=True)
            finally:
                self._pool = None


def get_pool() -> ConnectionPool:
    """Get or create the process-wide connection pool via PoolManager."""
    return PoolManager().get_pool()


@contextmanager
def checkout(pool: ConnectionPool) -> Generator[Connection, None, None]:
    """
    Borrow a connection from ``pool`` and always hand it back.

    Acquisition failures (pool exhausted past its timeout, unreachable server)
    are raised as DatabaseConnectionError. Errors raised inside the block are
    not touched.

    Example
    -------
        with checkout(get_pool()) as conn:
            conn.execute("SELECT 1")
    """
    try:
        conn = pool.getconn()
    except (PoolTimeout, psycopg.OperationalError) as exc:
        log.error("Could not obtain a database connection", extra={"error": str(exc)})
        raise DatabaseConnectionError(f"Could not obtain a database connection: {exc}") from exc
    try:
        yield conn
    finally:
        pool.putconn(conn)


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    log.warning(
        f"Database not reachable yet (attempt {state.attempt_number})",
        extra={"attempt": state.attempt_number, "error": str(error)},
    )


def wait_for_database(
    settings: Optional[Settings] = None,
    attempts: Optional[int] = None,
    max_wait_seconds: float = 10.0,
) -> None:
    """
    Block until the database accepts connections, with exponential backoff.

    Used by the operations CLI before migrating a freshly started database.

    Raises
    ------
    DatabaseConnectionError
        If the database is still unreachable after all attempts.
    """
    settings = settings or get_settings()
    retrying = Retrying(
        stop=stop_after_attempt(attempts or settings.db_connect_retries),
        wait=wait_exponential(multiplier=1, min=1, max=max_wait_seconds),
        retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
        before_sleep=_log_retry,
        reraise=True,
    )
    try:
        for attempt in retrying:
            with attempt:
                with psycopg.connect(build_dsn(settings), connect_timeout=5) as conn:
                    conn.execute("SELECT 1")
    except (psycopg.OperationalError, psycopg.InterfaceError) as exc:
        raise DatabaseConnectionError(f"Database unreachable: {exc}") from exc


__all__ = [
    "PoolManager",
    "checkout",
    "create_pool",
    "get_pool",
    "wait_for_database",
]
