"""
Domain models for pgguard.

``Record`` is the plain row shape the repository deals in. The migration models
describe a migration definition and the rows of the ``migrations`` ledger table
created by the migration runner.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from pgguard.infrastructure.executor import QueryExecutor

# One row of any allowlisted table, keyed by column name.
Record = Dict[str, Any]


@dataclass(frozen=True)
class Migration:
    """
    A versioned schema change.

    ``up`` and ``down`` receive a handle pinned to the migration's transaction
    and must issue every statement through it.
    """

    version: str
    name: str
    up: Callable[["QueryExecutor"], None]
    down: Callable[["QueryExecutor"], None]

    @property
    def label(self) -> str:
        return f"{self.version} - {self.name}"


class LedgerEntry(BaseModel):
    """
    Representation of a single row in the `migrations` ledger table.
    """

    id: int = Field(..., description="Primary key (SERIAL).")
    version: str = Field(..., description="Migration version this attempt ran.")
    name: str = Field(..., description="Human-readable migration name.")
    executed_at: datetime = Field(..., description="When the attempt was recorded.")
    execution_time_ms: Optional[int] = Field(None, description="Duration of the up() call.")
    success: bool = Field(..., description="Whether the attempt committed.")
    error_message: Optional[str] = Field(None, description="Failure reason for failed attempts.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


class PendingMigration(BaseModel):
    version: str
    name: str

    model_config = {"frozen": True}


class MigrationStatus(BaseModel):
    """Full ledger history plus the migrations not yet applied."""

    ledger: List[LedgerEntry] = Field(default_factory=list)
    pending: List[PendingMigration] = Field(default_factory=list)

    model_config = {"frozen": True}


__all__ = ["LedgerEntry", "Migration", "MigrationStatus", "PendingMigration", "Record"]
