# Overview: Transaction helpers; row locking and translation of store failures.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


class StoreError(Exception):
    """
    The backing store failed (connection, timeout, lock, driver error).

    Not retried here; the caller decides whether to prompt a retry.
    """


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_atomic(func, *, on_integrity_error=None):
    """
    Run func as one transaction: func does its reads and writes and commits.

    Any exception rolls the session back, so a failed multi-step mutation
    leaves nothing behind. Translation:
    - IntegrityError -> on_integrity_error(exc) if given (must return an
      exception to raise), else ConflictError
    - StaleDataError (optimistic version check) -> ConflictError
    - any other SQLAlchemyError -> StoreError
    Domain errors (ValidationError, ConflictError, NotFoundError) propagate
    unchanged.
    """
    try:
        return func()
    except IntegrityError as exc:
        db.session.rollback()
        if on_integrity_error is not None:
            raise on_integrity_error(exc) from exc
        raise ConflictError("Write rejected by a store constraint", code="CONSTRAINT_VIOLATION") from exc
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError(
            "Record was modified by another session; reload and try again",
            code="CONCURRENT_MODIFICATION",
        ) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError("Data store unavailable; the change was not saved") from exc
    except Exception:
        db.session.rollback()
        raise


def run_read(func):
    """Run a read-only operation, translating driver failures into StoreError."""
    try:
        return func()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError("Data store unavailable; could not load records") from exc
