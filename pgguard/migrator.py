"""
Versioned schema migrations with a durable ledger.

Migrations come from an explicit, ordered manifest (``pgguard.migrations``)
rather than directory scanning. Each attempt is recorded in the ``migrations``
ledger table:

- a successful ``up`` and its ledger row commit together in one transaction;
- a failed ``up`` is rolled back, then its failure row is written on its own,
  outside that transaction, so the failure history survives the rollback.

A version counts as applied when its most recent ledger row succeeded. Failed
attempts do not block a retry.

Only one migration run may touch a ledger at a time. The runner does not lock;
deployment tooling must serialize runs.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import psycopg
from psycopg_pool import ConnectionPool

from pgguard.config import Settings, get_settings
from pgguard.domain.models import LedgerEntry, Migration, MigrationStatus, PendingMigration
from pgguard.errors import (
    MigrationExecutionError,
    MigrationStructureError,
    PersistenceError,
    ProductionResetError,
)
from pgguard.infrastructure.executor import QueryExecutor
from pgguard.infrastructure.transaction import TransactionManager
from pgguard.migrations import MIGRATIONS
from pgguard.utils.logging import get_logger
from pgguard.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

LEDGER_TABLE = "migrations"

_CREATE_LEDGER = f"""
    CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
        id SERIAL PRIMARY KEY,
        version VARCHAR(50) NOT NULL,
        name VARCHAR(255) NOT NULL,
        executed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        execution_time_ms INTEGER,
        success BOOLEAN NOT NULL DEFAULT true,
        error_message TEXT
    )
"""

# Applied versions are unique; failed attempts for the same version accumulate.
_CREATE_LEDGER_INDEX = (
    f"CREATE UNIQUE INDEX IF NOT EXISTS {LEDGER_TABLE}_applied_version_key "
    f"ON {LEDGER_TABLE} (version) WHERE success"
)

_RECORD_ATTEMPT = (
    f"INSERT INTO {LEDGER_TABLE} (version, name, execution_time_ms, success, error_message) "
    "VALUES (%s, %s, %s, %s, %s)"
)

_APPLIED_VERSIONS = f"""
    SELECT version FROM (
        SELECT DISTINCT ON (version) version, success
        FROM {LEDGER_TABLE}
        ORDER BY version, id DESC
    ) AS latest
    WHERE success
    ORDER BY version
"""

_LEDGER_ROWS = (
    "SELECT id, version, name, executed_at, execution_time_ms, success, error_message "
    f"FROM {LEDGER_TABLE} ORDER BY version, id"
)

_FORGET_VERSION = f"DELETE FROM {LEDGER_TABLE} WHERE version = %s"


class MigrationRunner:
    """
    Applies and reverts migrations against one database.

    Parameters
    ----------
    pool : ConnectionPool
        Pool shared with the rest of the process.
    migrations : iterable of Migration, optional
        Definitions to manage. Defaults to the bundled manifest.
    settings : Settings, optional
        Used to refuse ``reset`` in production. Defaults to cached settings.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        migrations: Optional[Iterable[Migration]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.executor = QueryExecutor(pool)
        # Migration bodies issue DDL, which the statement guard would reject.
        self.transactions = TransactionManager(pool, guarded=False)
        self._migrations = list(migrations) if migrations is not None else None
        self.settings = settings or get_settings()

    def initialize(self) -> None:
        """Create the ledger table if it does not exist yet."""
        try:
            self.executor.execute(_CREATE_LEDGER)
            self.executor.execute(_CREATE_LEDGER_INDEX)
        except (psycopg.Error, PersistenceError) as exc:
            log.error("Failed to initialize migrations table", extra={"error": str(exc)})
            raise
        log.debug("Migrations table initialized")

    def load_migrations(self) -> List[Migration]:
        """
        Return the known migrations sorted by version.

        Raises
        ------
        MigrationStructureError
            If a definition lacks a version, name, up or down, or if two
            definitions share a version.
        """
        source = list(MIGRATIONS) if self._migrations is None else self._migrations

        seen: Dict[str, Migration] = {}
        for position, migration in enumerate(source):
            version = getattr(migration, "version", None)
            name = getattr(migration, "name", None)
            if not isinstance(version, str) or not version.strip():
                raise MigrationStructureError(f"Invalid migration structure at position {position}: missing version")
            if not isinstance(name, str) or not name.strip():
                raise MigrationStructureError(f"Invalid migration structure in {version}: missing name")
            for hook in ("up", "down"):
                if not callable(getattr(migration, hook, None)):
                    raise MigrationStructureError(f"Invalid migration structure in {version}: missing {hook}()")
            if version in seen:
                raise MigrationStructureError(f"Duplicate migration version {version}")
            seen[version] = migration

        return [seen[version] for version in sorted(seen)]

    def get_executed_migrations(self) -> List[str]:
        """Versions whose latest ledger entry succeeded, in version order."""
        try:
            rows = self.executor.execute(_APPLIED_VERSIONS).rows
        except (psycopg.Error, PersistenceError) as exc:
            log.error("Failed to get executed migrations", extra={"error": str(exc)})
            raise
        return [row["version"] for row in rows]

    def _pending(self) -> List[Migration]:
        executed = set(self.get_executed_migrations())
        return [m for m in self.load_migrations() if m.version not in executed]

    def migrate(self) -> List[Migration]:
        """
        Apply every pending migration in ascending version order.

        Stops at the first failure; that failure is already in the ledger when
        the error propagates and later migrations are not attempted.
        """
        log.info("Starting database migrations")
        self.initialize()
        pending = self._pending()
        if not pending:
            log.info("No pending migrations")
            return []

        log.info(f"Found {len(pending)} pending migrations", extra={"pending": len(pending)})
        applied: List[Migration] = []
        for migration in pending:
            try:
                self.run_migration(migration)
            except MigrationExecutionError:
                log.error(
                    f"Migration batch stopped at {migration.version}",
                    extra={"applied": [m.version for m in applied], "failed": migration.version},
                )
                raise
            applied.append(migration)

        log.info("All migrations completed successfully", extra={"applied": len(applied)})
        return applied

    def run_migration(self, migration: Migration) -> int:
        """
        Apply one migration and record the attempt; returns ``up`` time in ms.

        Raises
        ------
        MigrationExecutionError
            Wrapping whatever ``up`` (or the success record) raised.
        """
        log.info(f"Running migration: {migration.label}", extra={"version": migration.version})
        up_stats: Optional[ProfileStats] = None

        def apply(handle: QueryExecutor) -> None:
            nonlocal up_stats
            with profile_block(migration.label) as up_stats:
                migration.up(handle)
            handle.execute(
                _RECORD_ATTEMPT,
                [migration.version, migration.name, up_stats.duration_ms, True, None],
            )

        try:
            self.transactions.transaction(apply)
        except Exception as exc:  # noqa: BLE001 - any failure in up() must be recorded
            elapsed_ms = up_stats.duration_ms if up_stats is not None else 0
            self._record_failure(migration, elapsed_ms, exc)
            log.error(
                f"Migration {migration.version} failed: {exc}",
                extra={"version": migration.version, "execution_time_ms": elapsed_ms},
            )
            raise MigrationExecutionError(migration.version, migration.name, "up", exc) from exc

        log.info(
            f"Migration {migration.version} completed in {up_stats.duration_ms}ms",
            extra={"version": migration.version, "execution_time_ms": up_stats.duration_ms},
        )
        return up_stats.duration_ms

    def _record_failure(self, migration: Migration, elapsed_ms: int, error: BaseException) -> None:
        # Autocommitted on its own connection, outside the rolled-back transaction.
        try:
            self.executor.execute(
                _RECORD_ATTEMPT,
                [migration.version, migration.name, elapsed_ms, False, str(error)],
            )
        except (psycopg.Error, PersistenceError) as record_error:
            log.error(
                f"Failed to record failure of migration {migration.version}",
                extra={"version": migration.version, "error": str(record_error)},
            )

    def _revert(self, migration: Migration) -> int:
        log.info(f"Rolling back migration: {migration.label}", extra={"version": migration.version})

        def revert(handle: QueryExecutor) -> int:
            with profile_block(migration.label) as stats:
                migration.down(handle)
            handle.execute(_FORGET_VERSION, [migration.version])
            return stats.duration_ms

        try:
            elapsed_ms = self.transactions.transaction(revert)
        except Exception as exc:  # noqa: BLE001 - wrapped with the failing version
            log.error(
                f"Rollback of migration {migration.version} failed: {exc}",
                extra={"version": migration.version},
            )
            raise MigrationExecutionError(migration.version, migration.name, "down", exc) from exc

        log.info(
            f"Migration {migration.version} rolled back in {elapsed_ms}ms",
            extra={"version": migration.version, "execution_time_ms": elapsed_ms},
        )
        return elapsed_ms

    def _definition(self, version: str) -> Migration:
        for migration in self.load_migrations():
            if migration.version == version:
                return migration
        raise MigrationStructureError(f"Migration {version} not found in available migrations")

    def rollback(self) -> Optional[Migration]:
        """Revert the highest applied migration; returns it, or None if none."""
        log.info("Rolling back last migration")
        self.initialize()
        executed = self.get_executed_migrations()
        if not executed:
            log.info("No migrations to rollback")
            return None
        migration = self._definition(executed[-1])
        self._revert(migration)
        return migration

    def get_status(self) -> MigrationStatus:
        """Full ledger history plus the migrations still pending."""
        self.initialize()
        try:
            rows = self.executor.execute(_LEDGER_ROWS).rows
        except (psycopg.Error, PersistenceError) as exc:
            log.error("Failed to get migration status", extra={"error": str(exc)})
            raise
        pending = [PendingMigration(version=m.version, name=m.name) for m in self._pending()]
        return MigrationStatus(ledger=[LedgerEntry(**row) for row in rows], pending=pending)

    def reset(self) -> List[Migration]:
        """
        Revert every applied migration, newest first. Refused in production.

        Stops at the first failing ``down``; migrations reverted before it stay
        reverted, and the error propagates.
        """
        if self.settings.is_production:
            log.error("Migration reset refused in production environment")
            raise ProductionResetError()

        log.warning("Resetting all migrations (development only)")
        self.initialize()
        reverted: List[Migration] = []
        for version in reversed(self.get_executed_migrations()):
            try:
                migration = self._definition(version)
                self._revert(migration)
            except PersistenceError:
                log.error(
                    f"Migration reset stopped at {version}",
                    extra={"reverted": [m.version for m in reverted], "failed": version},
                )
                raise
            reverted.append(migration)

        log.info("All migrations reset successfully", extra={"reverted": len(reverted)})
        return reverted


__all__ = ["LEDGER_TABLE", "MigrationRunner"]
