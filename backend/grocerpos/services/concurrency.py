# Overview: Service-layer helpers for transaction isolation and conflict retries.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class StockConflictError(Exception):
    """
    A conditional batch write matched no row.

    Raised when a batch decrement re-checked at write time finds less stock
    than the plan was built on (another transaction got there first). The
    whole unit of work must be re-run from the beginning.
    """

    def __init__(self, batch_id: int, requested: int):
        super().__init__(f"Batch {batch_id} changed concurrently (requested {requested})")
        self.batch_id = batch_id
        self.requested = requested


RETRYABLE_ERRORS = (OperationalError, StaleDataError, StockConflictError)

# SQLSTATE serialization_failure, deadlock_detected
_CONFLICT_SQLSTATES = ("40001", "40P01")
_CONFLICT_MESSAGES = (
    "database is locked",
    "database is busy",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
)


def is_conflict(exc: BaseException) -> bool:
    """
    True when exc means another transaction got in the way.

    Only lock, deadlock and serialization failures qualify. Any other
    OperationalError (missing table, bad SQL, lost connection) is a defect
    or outage and must not be retried or reported as retryable.
    """
    if isinstance(exc, (StaleDataError, StockConflictError)):
        return True
    if not isinstance(exc, OperationalError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    message = str(orig if orig is not None else exc).lower()
    return any(m in message for m in _CONFLICT_MESSAGES)


def begin_write_transaction() -> None:
    """
    Open the unit of work with a writer lock where the database needs one.

    NOTE: SQLite has no row locks; BEGIN IMMEDIATE takes the database write
    lock up front so two checkouts cannot interleave their read-then-write.
    Other databases rely on lock_for_update() on the rows being changed.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def lock_for_update(query):
    """Row-lock the selected batches until commit. A no-op on SQLite (see above)."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work, re-running it from the start on concurrency failures.

    Retries lock/deadlock/serialization OperationalErrors, StaleDataError
    (optimistic locking conflicts) and StockConflictError (conditional batch
    decrement lost a race); see is_conflict. Any other exception, including
    other OperationalErrors, rolls the session back and propagates unchanged
    on the first occurrence, so nothing partial is ever committed.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if not is_conflict(exc) or attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrency conflict (attempt %d/%d): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc


def retry_settings() -> dict:
    """Retry knobs from app config, as keyword arguments for run_with_retry."""
    return {
        "attempts": current_app.config.get("SALE_RETRY_ATTEMPTS", 3),
        "backoff_base": current_app.config.get("SALE_RETRY_BACKOFF_SECONDS", 0.05),
    }
