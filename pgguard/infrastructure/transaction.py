"""
Transaction bracketing on a dedicated pooled connection.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from psycopg_pool import ConnectionPool

from pgguard.infrastructure.db_factory import checkout
from pgguard.infrastructure.executor import QueryExecutor
from pgguard.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class TransactionManager:
    """
    Runs a unit of work inside BEGIN/COMMIT on one connection.

    The connection is held for the whole body, so bodies should stay short;
    the pool's max size bounds how many transactions can be open at once.
    """

    def __init__(self, pool: ConnectionPool, *, guarded: bool = True) -> None:
        self._pool = pool
        self.guarded = guarded

    def transaction(self, work: Callable[[QueryExecutor], T], *, guarded: Optional[bool] = None) -> T:
        """
        Call ``work(handle)`` in a transaction and return its result.

        ``handle`` is a QueryExecutor pinned to the transaction's connection;
        statements issued through the shared pool inside ``work`` would run
        outside the transaction. Any exception from ``work`` rolls the
        transaction back and is re-raised. The connection goes back to the
        pool on every path.
        """
        with checkout(self._pool) as conn:
            handle = QueryExecutor(
                connection=conn,
                guarded=self.guarded if guarded is None else guarded,
            )
            try:
                with conn.transaction():
                    return work(handle)
            except Exception:
                log.warning("Transaction rolled back", exc_info=True)
                raise


__all__ = ["TransactionManager"]
