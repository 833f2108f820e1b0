# Overview: Locking and retry primitives shared by every write-path service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def is_sqlite() -> bool:
    return db.engine.dialect.name == "sqlite"


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there
    by taking the database write lock up front.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Start the current unit of work as a writer.

    On SQLite the whole database is the lock granularity, so a deferred
    transaction that later upgrades to a writer can observe stale reads.
    BEGIN IMMEDIATE serializes writers from the first statement instead.
    Must be the first statement of the unit of work.
    """
    if is_sqlite():
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts, "database is
    locked") and StaleDataError (optimistic locking conflicts). Any other
    exception rolls the session back and propagates unchanged.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying after concurrency conflict (attempt %d/%d): %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
