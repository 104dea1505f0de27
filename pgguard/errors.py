"""
Error taxonomy for pgguard.

Validation errors are raised before any SQL reaches the database. Errors coming
from the driver while running a statement are not wrapped: they reach callers as
``psycopg`` exceptions (re-exported here as ``DatabaseError``). Only failures to
obtain a connection are translated into ``DatabaseConnectionError``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from psycopg import DatabaseError


class PersistenceError(Exception):
    """Base class for every error raised by pgguard itself."""


class InvalidTableError(PersistenceError, ValueError):
    def __init__(self, table: object) -> None:
        self.table = table
        super().__init__(f"Invalid table name: {table}")


class InvalidColumnsError(PersistenceError, ValueError):
    def __init__(self, columns: Iterable[object], reason: str = "not allowlisted") -> None:
        self.columns = list(columns)
        self.reason = reason
        rendered = ", ".join(str(c) for c in self.columns) or "<none>"
        super().__init__(f"Invalid column names detected ({reason}): {rendered}")


class InvalidPaginationError(PersistenceError, ValueError):
    """Raised for a limit or offset outside the accepted bounds."""


class DangerousOperationError(PersistenceError):
    def __init__(self, keyword: str, sql: str) -> None:
        self.keyword = keyword
        self.sql = sql
        super().__init__(f"Dangerous SQL operation detected: {keyword!r}")


class DatabaseConnectionError(PersistenceError):
    """The pool could not hand out a connection (exhaustion, network, auth)."""


class MigrationStructureError(PersistenceError):
    """A migration definition is missing fields, duplicated, or unknown."""


class MigrationExecutionError(PersistenceError):
    def __init__(
        self,
        version: str,
        name: str,
        direction: str,
        error: Optional[BaseException] = None,
    ) -> None:
        self.version = version
        self.name = name
        self.direction = direction
        self.error = error
        detail = f": {error}" if error is not None else ""
        super().__init__(f"Migration {version} ({name}) failed during {direction}{detail}")


class ProductionResetError(PersistenceError):
    def __init__(self) -> None:
        super().__init__("Migration reset is not allowed in production environment")


__all__ = [
    "DangerousOperationError",
    "DatabaseConnectionError",
    "DatabaseError",
    "InvalidColumnsError",
    "InvalidPaginationError",
    "InvalidTableError",
    "MigrationExecutionError",
    "MigrationStructureError",
    "PersistenceError",
    "ProductionResetError",
]
