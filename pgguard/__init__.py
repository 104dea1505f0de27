"""
pgguard - guarded data access and versioned migrations for PostgreSQL.

The persistence backbone shared by the platform's domain services:

- Allowlist validation of every table and column name embedded in SQL
- A query executor that only sends parameterized statements and refuses
  destructive ones
- A generic record repository (insert/update/delete/find/count)
- Transactions on a dedicated pooled connection
- A migration runner with a durable ledger of every attempt
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from pgguard.allowlist import DEFAULT_ALLOWLIST, Allowlist
from pgguard.config import Settings, get_settings
from pgguard.database import Database
from pgguard.domain.models import LedgerEntry, Migration, MigrationStatus, Record
from pgguard.errors import (
    DangerousOperationError,
    DatabaseConnectionError,
    DatabaseError,
    InvalidColumnsError,
    InvalidPaginationError,
    InvalidTableError,
    MigrationExecutionError,
    MigrationStructureError,
    PersistenceError,
    ProductionResetError,
)
from pgguard.infrastructure.executor import QueryExecutor, QueryResult
from pgguard.infrastructure.transaction import TransactionManager
from pgguard.migrator import MigrationRunner
from pgguard.repository import Repository
from pgguard.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Data access
    "Allowlist",
    "DEFAULT_ALLOWLIST",
    "Database",
    "QueryExecutor",
    "QueryResult",
    "Record",
    "Repository",
    "TransactionManager",
    # Migrations
    "LedgerEntry",
    "Migration",
    "MigrationRunner",
    "MigrationStatus",
    # Errors
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
    # Logging
    "configure_logging",
    "get_logger",
]
