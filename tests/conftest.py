"""
Pytest configuration for pgguard.

Provides fixtures for:
- An in-memory fake of the pool/connection/cursor stack, with a statement log,
  BEGIN/COMMIT/ROLLBACK events, rollback of state, and an emulated
  ``migrations`` ledger table
- A stub executor that records statements for repository tests
- Database connection management for integration tests
"""

from __future__ import annotations

import copy
import os
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Generator, List, Optional

import psycopg
import pytest
from psycopg_pool import PoolTimeout

from pgguard.config import Settings, build_dsn
from pgguard.infrastructure.executor import QueryResult


@dataclass
class FakeResult:
    rows: Optional[List[dict]] = None
    rowcount: int = -1


Handler = Callable[["FakeBackend", str, Any], FakeResult]


def _ledger_insert(backend: "FakeBackend", sql: str, params: Any) -> FakeResult:
    version, name, elapsed_ms, success, error_message = params
    ledger = backend.state["ledger"]
    if success and any(r["version"] == version and r["success"] for r in ledger):
        raise psycopg.errors.UniqueViolation("duplicate key value violates unique constraint")
    backend.state["next_id"] += 1
    ledger.append(
        {
            "id": backend.state["next_id"],
            "version": version,
            "name": name,
            "executed_at": datetime(2024, 1, 1, 12, 0, 0),
            "execution_time_ms": elapsed_ms,
            "success": success,
            "error_message": error_message,
        }
    )
    return FakeResult(rowcount=1)


def _ledger_applied(backend: "FakeBackend", sql: str, params: Any) -> FakeResult:
    latest: dict = {}
    for row in sorted(backend.state["ledger"], key=lambda r: r["id"]):
        latest[row["version"]] = row
    rows = [{"version": v} for v in sorted(latest) if latest[v]["success"]]
    return FakeResult(rows=rows, rowcount=len(rows))


def _ledger_rows(backend: "FakeBackend", sql: str, params: Any) -> FakeResult:
    rows = [dict(r) for r in sorted(backend.state["ledger"], key=lambda r: (r["version"], r["id"]))]
    return FakeResult(rows=rows, rowcount=len(rows))


def _ledger_forget(backend: "FakeBackend", sql: str, params: Any) -> FakeResult:
    (version,) = params
    before = len(backend.state["ledger"])
    backend.state["ledger"] = [r for r in backend.state["ledger"] if r["version"] != version]
    return FakeResult(rowcount=before - len(backend.state["ledger"]))


def _ledger_create(backend: "FakeBackend", sql: str, params: Any) -> FakeResult:
    backend.state["ledger_created"] = True
    return FakeResult()


LEDGER_HANDLERS: List[tuple] = [
    (r"CREATE TABLE IF NOT EXISTS migrations", _ledger_create),
    (r"CREATE UNIQUE INDEX IF NOT EXISTS migrations_", lambda b, s, p: FakeResult()),
    (r"INSERT INTO migrations", _ledger_insert),
    (r"SELECT DISTINCT ON \(version\)", _ledger_applied),
    (r"SELECT id, version, name, executed_at", _ledger_rows),
    (r"DELETE FROM migrations WHERE version", _ledger_forget),
]


class FakeBackend:
    """
    Shared server-side state for every fake connection.

    Statements without a matching handler are recorded in ``state["ddl"]`` so
    tests can see whether a schema change survived a rollback.
    """

    def __init__(self) -> None:
        self.state: dict = {"ledger": [], "next_id": 0, "ledger_created": False, "ddl": []}
        self.statements: List[str] = []
        self.events: List[str] = []
        self.handlers: List[tuple] = list(LEDGER_HANDLERS)
        self._failures: List[tuple] = []

    def on(
        self,
        pattern: str,
        handler: Optional[Handler] = None,
        *,
        rows: Optional[List[dict]] = None,
        rowcount: int = -1,
    ) -> None:
        """Route statements matching ``pattern`` to ``handler`` or a canned result."""
        if handler is None:
            canned = FakeResult(rows=rows, rowcount=rowcount)
            handler = lambda backend, sql, params: canned  # noqa: E731
        self.handlers.insert(0, (pattern, handler))

    @staticmethod
    def result(rows: Optional[List[dict]] = None, rowcount: int = -1) -> FakeResult:
        return FakeResult(rows=rows, rowcount=rowcount)

    def fail_when(self, fragment: str, error: Optional[Exception] = None) -> None:
        self._failures.append((fragment, error or psycopg.DatabaseError(f"failure injected for {fragment}")))

    def dispatch(self, sql: str, params: Any) -> FakeResult:
        self.statements.append(sql)
        self.events.append("SQL")
        for fragment, error in self._failures:
            if fragment in sql:
                raise error
        for pattern, handler in self.handlers:
            if re.search(pattern, sql, re.IGNORECASE):
                return handler(self, sql, params)
        self.state["ddl"].append(" ".join(sql.split()))
        return FakeResult()


class FakeCursor:
    def __init__(self, backend: FakeBackend) -> None:
        self._backend = backend
        self._rows: List[dict] = []
        self.description: Optional[list] = None
        self.rowcount = -1

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb

    def execute(self, sql: str, params: Any = None) -> "FakeCursor":
        result = self._backend.dispatch(sql, params)
        self._rows = list(result.rows or [])
        self.description = None if result.rows is None else [("column",)]
        self.rowcount = result.rowcount
        return self

    def fetchall(self) -> List[dict]:
        return list(self._rows)


class FakeConnection:
    def __init__(self, backend: FakeBackend) -> None:
        self._backend = backend

    def cursor(self, row_factory: Any = None) -> FakeCursor:
        del row_factory
        return FakeCursor(self._backend)

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        backend = self._backend
        backend.events.append("BEGIN")
        snapshot = copy.deepcopy(backend.state)
        try:
            yield
        except BaseException:
            backend.state = snapshot
            backend.events.append("ROLLBACK")
            raise
        backend.events.append("COMMIT")


class FakePool:
    """Stands in for psycopg_pool.ConnectionPool (getconn/putconn only)."""

    def __init__(self, backend: Optional[FakeBackend] = None) -> None:
        self.backend = backend or FakeBackend()
        self.exhausted = False
        self.checked_out = 0
        self.released = 0

    @property
    def in_use(self) -> int:
        return self.checked_out - self.released

    def getconn(self, timeout: Optional[float] = None) -> FakeConnection:
        del timeout
        if self.exhausted:
            raise PoolTimeout("couldn't get a connection after 30.00 sec")
        self.checked_out += 1
        return FakeConnection(self.backend)

    def putconn(self, conn: FakeConnection) -> None:
        del conn
        self.released += 1


@dataclass
class RecordingExecutor:
    """
    Query-counting stub executor: records every statement and replays queued results.
    """

    results: List[QueryResult] = field(default_factory=list)
    calls: List[tuple] = field(default_factory=list)

    def queue(self, rows: Optional[List[dict]] = None, row_count: Optional[int] = None) -> None:
        rows = rows or []
        self.results.append(QueryResult(rows=rows, row_count=len(rows) if row_count is None else row_count))

    def execute(self, sql: str, params: Any = None) -> QueryResult:
        self.calls.append((sql, params))
        return self.results.pop(0) if self.results else QueryResult()

    @property
    def last_sql(self) -> str:
        return self.calls[-1][0]

    @property
    def last_params(self) -> Any:
        return self.calls[-1][1]


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_pool(fake_backend: FakeBackend) -> FakePool:
    return FakePool(fake_backend)


@pytest.fixture
def recording_executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def dev_settings() -> Settings:
    return Settings(app_env="development", log_level="DEBUG")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "pgguard_test"),
        db_pool_max_size=4,
        app_env="test",
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;")
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_pool(test_settings: Settings, test_dsn: str, db_connection_available: bool):
    """
    Provide a session-scoped connection pool for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    from pgguard.infrastructure.db_factory import create_pool

    pool = create_pool(test_settings, dsn=test_dsn)
    try:
        yield pool
    finally:
        pool.close()
