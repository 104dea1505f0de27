"""
Migration manifest.

Every migration the runner knows about is listed here, in version order. Adding
a migration means adding a module to this package and appending it below.
"""

from pgguard.domain.models import Migration
from pgguard.migrations import v001_initial_schema, v002_social_features

MIGRATIONS: tuple[Migration, ...] = (
    v001_initial_schema.migration,
    v002_social_features.migration,
)

__all__ = ["MIGRATIONS"]
