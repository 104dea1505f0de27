"""
Utilities package for pgguard.

Exports shared helpers for logging and timing.
Keep this package lightweight and free of database logic.
"""

from pgguard.utils.logging import configure_logging, get_logger
from pgguard.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
