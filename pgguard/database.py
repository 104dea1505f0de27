"""
Single entry point for domain services.

``Database`` wires the shared pool to a guarded executor, the generic
repository and the transaction manager. Domain services call the repository
methods for structural access and ``execute`` for hand-written read queries.

Usage:
    from pgguard.database import Database

    db = Database.from_settings()
    user = db.insert("users", {"email": "a@b.com", "password_hash": "..."})

    def move(tx):
        repo = db.repository_for(tx)
        repo.update("companies", company_id, {"status": "active"})
        repo.insert("activity_feed", {...})

    db.transaction(move)
"""

from __future__ import annotations

from typing import Any, Callable, List, Mapping, Optional, Sequence, TypeVar

from psycopg_pool import ConnectionPool

from pgguard.allowlist import DEFAULT_ALLOWLIST, Allowlist
from pgguard.domain.models import Record
from pgguard.infrastructure.db_factory import get_pool
from pgguard.infrastructure.executor import QueryExecutor, QueryResult
from pgguard.infrastructure.transaction import TransactionManager
from pgguard.repository import Repository

T = TypeVar("T")


class Database:
    def __init__(
        self,
        pool: ConnectionPool,
        allowlist: Allowlist = DEFAULT_ALLOWLIST,
        guarded: bool = True,
    ) -> None:
        self.pool = pool
        self.allowlist = allowlist
        self.executor = QueryExecutor(pool, guarded=guarded)
        self.repository = Repository(self.executor, allowlist)
        self.transactions = TransactionManager(pool, guarded=guarded)

    @classmethod
    def from_settings(cls, allowlist: Allowlist = DEFAULT_ALLOWLIST) -> "Database":
        """Build a Database over the process-wide pool."""
        return cls(get_pool(), allowlist)

    def repository_for(self, handle: QueryExecutor) -> Repository:
        """Repository bound to a transaction handle, sharing this allowlist."""
        return Repository(handle, self.allowlist)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        return self.executor.execute(sql, params)

    def insert(self, table: str, data: Mapping[str, Any]) -> Record:
        return self.repository.insert(table, data)

    def update(self, table: str, id: Any, data: Mapping[str, Any]) -> Optional[Record]:
        return self.repository.update(table, id, data)

    def delete(self, table: str, id: Any) -> bool:
        return self.repository.delete(table, id)

    def find_by_id(self, table: str, id: Any) -> Optional[Record]:
        return self.repository.find_by_id(table, id)

    def find_all(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        select_columns: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Record]:
        return self.repository.find_all(
            table, where=where, select_columns=select_columns, limit=limit, offset=offset
        )

    def find_one(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        select_columns: Optional[Sequence[str]] = None,
    ) -> Optional[Record]:
        return self.repository.find_one(table, where=where, select_columns=select_columns)

    def count(self, table: str, where: Optional[Mapping[str, Any]] = None) -> int:
        return self.repository.count(table, where=where)

    def transaction(self, work: Callable[[QueryExecutor], T]) -> T:
        return self.transactions.transaction(work)

    def health_check(self) -> bool:
        return self.executor.health_check()


__all__ = ["Database"]
