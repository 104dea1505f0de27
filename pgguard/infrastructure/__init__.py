"""
Infrastructure package for pgguard.

Centralizes database connectivity concerns: the shared pool, scoped connection
checkout, guarded statement execution, and transaction bracketing. Keep this
layer focused on I/O and resource management, decoupled from allowlists and
migration bookkeeping.
"""

from pgguard.infrastructure.db_factory import (
    PoolManager,
    checkout,
    create_pool,
    get_pool,
    wait_for_database,
)
from pgguard.infrastructure.executor import QueryExecutor, QueryResult
from pgguard.infrastructure.guard import check_statement
from pgguard.infrastructure.transaction import TransactionManager

__all__ = [
    "PoolManager",
    "QueryExecutor",
    "QueryResult",
    "TransactionManager",
    "check_statement",
    "checkout",
    "create_pool",
    "get_pool",
    "wait_for_database",
]
