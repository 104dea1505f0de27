"""
Domain package for pgguard.

Exports the models shared by the repository, the migration runner and the CLI.
Keep this package focused on data definitions and validation concerns.
"""

from pgguard.domain.models import LedgerEntry, Migration, MigrationStatus, PendingMigration, Record

__all__ = [
    "LedgerEntry",
    "Migration",
    "MigrationStatus",
    "PendingMigration",
    "Record",
]
