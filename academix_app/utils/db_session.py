"""Utility helpers for committing the SQLAlchemy session.

SQLite holds a write lock for the duration of a transaction; with the
busy timeout set in :mod:`academix_app.db_instance` a lock that is still
held when the timeout expires surfaces as ``database is locked``.  A lost
optimistic version check raises ``StaleDataError`` and a lost
create-if-absent race raises ``IntegrityError``.  :func:`safe_commit`
rolls the session back in all three cases and reports a retryable
:class:`~academix_app.core.error_handlers.ConflictError`.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.orm.session import Session

from ..core.error_handlers import ConflictError

LOCKED_MESSAGES = {"database is locked", "database is busy"}


def _is_lock_error(error: OperationalError) -> bool:
    """Return ``True`` if the OperationalError was caused by a lock."""

    message = str(error).lower()
    return any(token in message for token in LOCKED_MESSAGES)


def safe_commit(
    session: Session,
    conflict_message: str = "The record was changed by another request. Reload and try again.",
    reason: Optional[str] = None,
) -> None:
    """Commit the current transaction or raise ``ConflictError``.

    Args:
        session: The SQLAlchemy session to commit.
        conflict_message: Message carried by the raised conflict.
        reason: Optional machine-readable conflict reason.

    Raises:
        ConflictError: A concurrent writer won, or the database stayed locked.
        OperationalError: Re-raised when unrelated to SQLite locking.
    """

    try:
        session.commit()
    except (StaleDataError, IntegrityError) as exc:
        session.rollback()
        raise ConflictError(conflict_message, reason=reason) from exc
    except OperationalError as exc:
        session.rollback()
        if not _is_lock_error(exc):
            raise
        raise ConflictError("The database is busy. Please retry.", reason=reason) from exc
