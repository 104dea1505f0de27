"""
Parameterized statement execution over the shared pool or a pinned connection.

Values are always sent as bind parameters (``%s`` placeholders). Statements are
screened by the destructive-keyword guard before dispatch unless the executor
was built with ``guarded=False``.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, List, Optional, Sequence

import psycopg
from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from pgguard.domain.models import Record
from pgguard.errors import DangerousOperationError, DatabaseConnectionError
from pgguard.infrastructure.db_factory import checkout
from pgguard.infrastructure.guard import check_statement
from pgguard.utils.logging import get_logger
from pgguard.utils.profiler import profile_block

log = get_logger(__name__)


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by a statement (empty for non-returning statements)."""

    rows: List[Record] = field(default_factory=list)
    row_count: int = 0

    def first(self) -> Optional[Record]:
        return self.rows[0] if self.rows else None


class QueryExecutor:
    """
    Runs one statement at a time.

    Built over a pool, each call borrows a connection for that statement only.
    Built over a connection (a transaction handle), every call runs on it.
    """

    def __init__(
        self,
        pool: Optional[ConnectionPool] = None,
        *,
        connection: Optional[Connection] = None,
        guarded: bool = True,
    ) -> None:
        if (pool is None) == (connection is None):
            raise ValueError("QueryExecutor needs exactly one of pool or connection")
        self._pool = pool
        self._connection = connection
        self.guarded = guarded

    @property
    def in_transaction(self) -> bool:
        return self._connection is not None

    @contextmanager
    def _borrow(self) -> Generator[Connection, None, None]:
        if self._connection is not None:
            yield self._connection
            return
        with checkout(self._pool) as conn:
            yield conn

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """
        Execute a parameterized statement and return its rows and row count.

        Raises
        ------
        DangerousOperationError
            If the guard is on and the text matches the denylist. Nothing is sent.
        psycopg.Error
            Any driver error, unchanged, after it has been logged.
        DatabaseConnectionError
            If no connection could be obtained; logged the same way.
        """
        if self.guarded:
            try:
                check_statement(sql)
            except DangerousOperationError as exc:
                log.warning(
                    "Rejected dangerous statement",
                    extra={"statement": sql, "keyword": exc.keyword, "duration_ms": 0, "row_count": 0},
                )
                raise

        try:
            with profile_block("query") as stats:
                with self._borrow() as conn:
                    with conn.cursor(row_factory=dict_row) as cur:
                        cur.execute(sql, params)
                        rows = cur.fetchall() if cur.description is not None else []
                        row_count = cur.rowcount
        except (psycopg.Error, DatabaseConnectionError):
            log.error(
                "Database query error",
                extra={"statement": sql, "duration_ms": stats.duration_ms, "row_count": 0},
                exc_info=True,
            )
            raise

        log.debug(
            "Executed query",
            extra={"statement": sql, "duration_ms": stats.duration_ms, "row_count": row_count},
        )
        return QueryResult(rows=rows, row_count=row_count)

    def health_check(self) -> bool:
        """Return True when ``SELECT 1`` succeeds."""
        try:
            self.execute("SELECT 1")
        except (psycopg.Error, DatabaseConnectionError) as exc:
            log.error("Database health check failed", extra={"error": str(exc)})
            return False
        return True


__all__ = ["QueryExecutor", "QueryResult", "Record"]
