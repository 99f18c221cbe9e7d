"""Database error helpers."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

POSTGRES_UNIQUE_VIOLATION = "23505"
# SQLITE_CONSTRAINT_PRIMARYKEY and SQLITE_CONSTRAINT_UNIQUE extended codes.
SQLITE_UNIQUE_ERROR_CODES = frozenset({1555, 2067})


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError comes from a unique or primary key conflict."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == POSTGRES_UNIQUE_VIOLATION:
        return True
    if getattr(original, "sqlite_errorcode", None) in SQLITE_UNIQUE_ERROR_CODES:
        return True
    message = str(original or error).lower()
    return "duplicate key" in message or "unique constraint" in message


__all__ = ["is_unique_violation"]
