"""
Table-agnostic CRUD over allowlisted tables.

Callers pass structure (table name, column/value mappings), never SQL. The table
and every column name are validated against the injected Allowlist before any
statement is built; identifiers are then concatenated into the statement text
and all values travel as bind parameters. Mapping values (and lists of
mappings) are bound as JSONB.

``find_all`` adds no ORDER BY. Callers needing a deterministic order write the
query themselves and run it through the executor.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple

from psycopg.types.json import Jsonb

from pgguard.allowlist import DEFAULT_ALLOWLIST, Allowlist
from pgguard.domain.models import Record
from pgguard.errors import InvalidColumnsError, InvalidPaginationError
from pgguard.infrastructure.executor import QueryExecutor
from pgguard.utils.logging import get_logger

log = get_logger(__name__)

MAX_LIMIT = 1000


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def bind_value(value: Any) -> Any:
    """
    Adapt one record value for binding.

    Mappings, and sequences holding a mapping, are sent as JSONB. Other lists
    stay PostgreSQL arrays.
    """
    if isinstance(value, Mapping):
        return Jsonb(dict(value))
    if isinstance(value, (list, tuple)) and any(isinstance(item, Mapping) for item in value):
        return Jsonb(list(value))
    return value


def normalize_limit(limit: Optional[int]) -> Optional[int]:
    """
    Validate a page size.

    ``None`` means no LIMIT clause. Values above MAX_LIMIT are clamped to it;
    values below 1 or of a non-integer type are rejected.
    """
    if limit is None:
        return None
    if not _is_int(limit) or limit < 1:
        raise InvalidPaginationError(f"limit must be a positive integer, got {limit!r}")
    if limit > MAX_LIMIT:
        log.warning(f"limit {limit} clamped to {MAX_LIMIT}", extra={"requested_limit": limit})
        return MAX_LIMIT
    return limit


def normalize_offset(offset: Optional[int]) -> Optional[int]:
    """Validate an offset; ``None`` and 0 both mean no OFFSET clause."""
    if offset is None:
        return None
    if not _is_int(offset) or offset < 0:
        raise InvalidPaginationError(f"offset must be a non-negative integer, got {offset!r}")
    return offset or None


class Repository:
    """
    Generic record access for any allowlisted table.

    Works over any QueryExecutor: the pool-backed one for standalone calls, or
    a transaction handle to keep several writes atomic.
    """

    def __init__(self, executor: QueryExecutor, allowlist: Allowlist = DEFAULT_ALLOWLIST) -> None:
        self.executor = executor
        self.allowlist = allowlist

    def _where(self, where: Optional[Mapping[str, Any]]) -> Tuple[str, List[Any]]:
        if not where:
            return "", []
        columns = self.allowlist.require_columns(where.keys())
        clauses = []
        params: List[Any] = []
        for column, value in zip(columns, where.values()):
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = %s")
                params.append(bind_value(value))
        return " WHERE " + " AND ".join(clauses), params

    def _data_columns(self, data: Mapping[str, Any]) -> List[str]:
        if not data:
            raise InvalidColumnsError([], reason="no data supplied")
        return self.allowlist.require_columns(data.keys())

    def insert(self, table: str, data: Mapping[str, Any]) -> Record:
        """Insert one row and return it as stored, generated fields included."""
        table = self.allowlist.require_table(table)
        columns = self._data_columns(data)
        placeholders = ", ".join(["%s"] * len(columns))
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *"
        return self.executor.execute(sql, [bind_value(v) for v in data.values()]).first()

    def update(self, table: str, id: Any, data: Mapping[str, Any]) -> Optional[Record]:
        """Update one row by id; returns None when no row has that id."""
        table = self.allowlist.require_table(table)
        columns = self._data_columns(data)
        assignments = ", ".join(f"{column} = %s" for column in columns)
        sql = f"UPDATE {table} SET {assignments} WHERE id = %s RETURNING *"
        return self.executor.execute(sql, [*(bind_value(v) for v in data.values()), id]).first()

    def delete(self, table: str, id: Any) -> bool:
        table = self.allowlist.require_table(table)
        result = self.executor.execute(f"DELETE FROM {table} WHERE id = %s", [id])
        return result.row_count > 0

    def find_by_id(self, table: str, id: Any) -> Optional[Record]:
        table = self.allowlist.require_table(table)
        return self.executor.execute(f"SELECT * FROM {table} WHERE id = %s", [id]).first()

    def find_all(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        select_columns: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Record]:
        """
        Select rows matching every ``where`` equality (None matches NULL).

        ``select_columns`` of None, empty, or ``["*"]`` selects all columns.
        """
        table = self.allowlist.require_table(table)
        if not select_columns or list(select_columns) == ["*"]:
            projection = "*"
        else:
            projection = ", ".join(self.allowlist.require_columns(select_columns))
        where_sql, params = self._where(where)
        limit = normalize_limit(limit)
        offset = normalize_offset(offset)

        sql = f"SELECT {projection} FROM {table}{where_sql}"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(limit)
        if offset is not None:
            sql += " OFFSET %s"
            params.append(offset)
        return self.executor.execute(sql, params).rows

    def find_one(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        select_columns: Optional[Sequence[str]] = None,
    ) -> Optional[Record]:
        rows = self.find_all(table, where=where, select_columns=select_columns, limit=1)
        return rows[0] if rows else None

    def count(self, table: str, where: Optional[Mapping[str, Any]] = None) -> int:
        table = self.allowlist.require_table(table)
        where_sql, params = self._where(where)
        row = self.executor.execute(f"SELECT COUNT(*) AS count FROM {table}{where_sql}", params).first()
        return int(row["count"]) if row else 0


__all__ = ["MAX_LIMIT", "Repository", "bind_value", "normalize_limit", "normalize_offset"]
