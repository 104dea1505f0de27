"""
Pre-flight denylist for destructive statements.

This is a coarse textual scan over the whole lowercased statement, not a SQL
parser. It over-blocks: a comment or string literal containing "drop", or an
identifier such as ``dropbox`` or ``altered_at``, is rejected too. It also
under-blocks anything destructive that avoids the listed words, and a
``DELETE FROM`` passes as soon as "where" appears anywhere in the text,
including a string literal or a second statement such as
``DELETE FROM users; SELECT 1 WHERE true``.

Callers that need schema changes go through the migration runner, whose
handles are built without the guard.
"""

from __future__ import annotations

from typing import Optional

from pgguard.errors import DangerousOperationError

DENYLIST_KEYWORDS = ("drop", "truncate", "alter")


def find_dangerous_keyword(sql: str) -> Optional[str]:
    """Return the first denylisted pattern found in ``sql``, or None."""
    text = sql.lower()
    for keyword in DENYLIST_KEYWORDS:
        if keyword in text:
            return keyword
    if "delete from" in text and "where" not in text:
        return "delete from without where"
    return None


def check_statement(sql: str) -> None:
    """Raise DangerousOperationError if ``sql`` matches the denylist."""
    keyword = find_dangerous_keyword(sql)
    if keyword is not None:
        raise DangerousOperationError(keyword, sql)


__all__ = ["DENYLIST_KEYWORDS", "check_statement", "find_dangerous_keyword"]
