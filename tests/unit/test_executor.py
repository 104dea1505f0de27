from __future__ import annotations

import logging

import psycopg
import pytest

from pgguard.errors import DangerousOperationError, DatabaseConnectionError
from pgguard.infrastructure.executor import QueryExecutor, QueryResult

EXECUTOR_LOGGER = "pgguard.infrastructure.executor"
USER_ROW = {"id": 1, "email": "a@b.com"}


@pytest.fixture
def executor(fake_pool) -> QueryExecutor:
    return QueryExecutor(fake_pool)


class TestConstruction:
    def test_requires_exactly_one_source(self, fake_pool) -> None:
        with pytest.raises(ValueError):
            QueryExecutor()
        with pytest.raises(ValueError):
            QueryExecutor(fake_pool, connection=object())  # type: ignore[arg-type]

    def test_pool_executor_is_not_in_transaction(self, executor: QueryExecutor) -> None:
        assert not executor.in_transaction


class TestExecute:
    def test_returns_rows_and_count(self, executor, fake_backend) -> None:
        fake_backend.on(r"^SELECT \* FROM users", rows=[USER_ROW], rowcount=1)

        result = executor.execute("SELECT * FROM users WHERE id = %s", [1])

        assert result == QueryResult(rows=[USER_ROW], row_count=1)
        assert result.first() == USER_ROW

    def test_non_returning_statement_has_no_rows(self, executor, fake_backend) -> None:
        fake_backend.on(r"^UPDATE", rowcount=3)

        result = executor.execute("UPDATE users SET is_active = %s WHERE role = %s", [False, "guest"])

        assert result.rows == []
        assert result.row_count == 3
        assert result.first() is None

    def test_connection_released_after_each_statement(self, executor, fake_pool) -> None:
        executor.execute("SELECT 1")
        executor.execute("SELECT 1")

        assert fake_pool.checked_out == 2
        assert fake_pool.in_use == 0

    def test_driver_error_propagates_unchanged_and_is_logged(self, executor, fake_backend, fake_pool, caplog) -> None:
        error = psycopg.errors.UndefinedTable('relation "nope" does not exist')
        fake_backend.fail_when("FROM nope", error)
        caplog.set_level(logging.ERROR, logger=EXECUTOR_LOGGER)

        with pytest.raises(psycopg.errors.UndefinedTable) as excinfo:
            executor.execute("SELECT * FROM nope")

        assert excinfo.value is error
        assert fake_pool.in_use == 0
        record = next(r for r in caplog.records if r.message == "Database query error")
        assert record.statement == "SELECT * FROM nope"
        assert record.row_count == 0
        assert record.duration_ms >= 0

    def test_success_is_logged_at_debug_with_timing(self, executor, fake_backend, caplog) -> None:
        fake_backend.on(r"^SELECT", rows=[USER_ROW], rowcount=1)
        caplog.set_level(logging.DEBUG, logger=EXECUTOR_LOGGER)

        executor.execute("SELECT * FROM users")

        record = next(r for r in caplog.records if r.message == "Executed query")
        assert record.levelno == logging.DEBUG
        assert record.row_count == 1
        assert isinstance(record.duration_ms, int)

    def test_pool_exhaustion_is_a_connection_error(self, executor, fake_pool, fake_backend, caplog) -> None:
        fake_pool.exhausted = True
        caplog.set_level(logging.ERROR, logger=EXECUTOR_LOGGER)

        with pytest.raises(DatabaseConnectionError):
            executor.execute("SELECT * FROM users WHERE id = %s", [1])

        assert fake_backend.statements == []
        record = next(r for r in caplog.records if r.name == EXECUTOR_LOGGER)
        assert record.levelno == logging.ERROR
        assert record.statement == "SELECT * FROM users WHERE id = %s"
        assert record.duration_ms >= 0
        assert record.row_count == 0


class TestGuard:
    @pytest.mark.parametrize(
        "sql",
        [
            "DROP TABLE users",
            "TRUNCATE users",
            "ALTER TABLE users DROP COLUMN email",
            "DELETE FROM users",
        ],
    )
    def test_dangerous_statements_are_never_dispatched(self, executor, fake_backend, fake_pool, sql) -> None:
        with pytest.raises(DangerousOperationError):
            executor.execute(sql)

        assert fake_backend.statements == []
        assert fake_pool.checked_out == 0

    def test_delete_with_where_is_dispatched(self, executor, fake_backend) -> None:
        fake_backend.on(r"^DELETE", rowcount=1)

        result = executor.execute("DELETE FROM users WHERE id = %s", [1])

        assert result.row_count == 1
        assert fake_backend.statements == ["DELETE FROM users WHERE id = %s"]

    def test_rejection_is_logged(self, executor, caplog) -> None:
        caplog.set_level(logging.WARNING, logger=EXECUTOR_LOGGER)

        with pytest.raises(DangerousOperationError):
            executor.execute("DROP TABLE users")

        record = next(r for r in caplog.records if r.message == "Rejected dangerous statement")
        assert record.keyword == "drop"
        assert record.statement == "DROP TABLE users"

    def test_unguarded_executor_dispatches_ddl(self, fake_pool, fake_backend) -> None:
        executor = QueryExecutor(fake_pool, guarded=False)

        executor.execute("DROP TABLE IF EXISTS widgets")

        assert fake_backend.state["ddl"] == ["DROP TABLE IF EXISTS widgets"]


class TestHealthCheck:
    def test_healthy(self, executor, fake_backend) -> None:
        assert executor.health_check() is True
        assert fake_backend.statements == ["SELECT 1"]

    def test_driver_failure_is_unhealthy(self, executor, fake_backend) -> None:
        fake_backend.fail_when("SELECT 1", psycopg.OperationalError("server closed the connection"))
        assert executor.health_check() is False

    def test_pool_exhaustion_is_unhealthy(self, executor, fake_pool) -> None:
        fake_pool.exhausted = True
        assert executor.health_check() is False
