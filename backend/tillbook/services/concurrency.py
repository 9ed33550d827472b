# Overview: Retry and locking helpers shared by services that mutate contended rows.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError

from ..extensions import db
from ..models import CustomerLedgerLock


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked"). The
    session is rolled back before each retry, so `func` must redo all of its work.

    attempts defaults to the SEQUENCE_RETRY_ATTEMPTS setting.
    """
    if attempts is None:
        attempts = int(current_app.config.get("SEQUENCE_RETRY_ATTEMPTS", 3))
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def acquire_customer_ledger(customer_id: str) -> None:
    """
    Take the per-customer ledger lock for the rest of the current transaction.

    The UPDATE holds the row lock (PostgreSQL/MySQL) or the database write
    lock (SQLite) until commit or rollback. The first refund for a customer
    inserts the row; losing that insert race falls back to the UPDATE.

    Must be the first statement of the transaction: the insert-race path
    rolls the session back.
    """
    stmt = (
        update(CustomerLedgerLock)
        .where(CustomerLedgerLock.customer_id == customer_id)
        .values(version=CustomerLedgerLock.version + 1)
    )

    if db.session.execute(stmt).rowcount:
        return

    db.session.add(CustomerLedgerLock(customer_id=customer_id, version=1))
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        if not db.session.execute(stmt).rowcount:
            raise
