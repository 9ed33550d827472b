# Overview: Daily-scoped sequence allocation for human-readable transaction ids.

"""
Sequence Service - daily counters for return ids

WHY: Staff read ids like "direct-refund-05.01-3" off receipts and the
daily count sheet, so ids must be short, dated and sequential. Requests do
not share process state, so the counter lives in the database.

GUARANTEES:
- First allocation for a (counter, day) returns 1
- Concurrent allocations for the same (counter, day) never return the same
  number; the UPDATE serializes them
- No ordering across different days
- Ids skip numbers the same MM.dd already used in an earlier year

FALLBACK: if the counter transaction fails (retries exhausted, storage
unavailable), next_return_id still returns a unique id with a random
suffix instead of failing the request. Sequentiality is lost for that id.
"""

from __future__ import annotations

import secrets
import string
from datetime import date, datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import DailyCounter, ReturnTransaction
from tillbook.time_utils import business_date, utcnow
from .concurrency import lock_for_update, run_with_retry


RETURN_COUNTER = "returns"

DIRECT_REFUND_PREFIX = "direct-refund"
RETURN_PREFIX = "return"

FALLBACK_ALPHABET = string.digits + string.ascii_lowercase
FALLBACK_LENGTH = 6

MAX_ALLOCATION_ATTEMPTS = 3


class SequenceError(Exception):
    """Raised when a counter cannot be allocated."""
    pass


def day_key(day: date) -> str:
    """Counter key for a day: yyyy-MM-dd."""
    return day.strftime("%Y-%m-%d")


def date_part(day: date) -> str:
    """Human date part embedded in ids: MM.dd."""
    return day.strftime("%m.%d")


def allocate(day: date, *, counter: str = RETURN_COUNTER) -> int:
    """
    Atomically allocate the next number for (counter, day) and commit it.

    UPDATE ... SET count = count + 1 holds the row lock until commit, so
    the read-back sees this caller's increment. A missing row is created
    with count=1; if another caller created it first, the unique
    constraint fires and we fall back to the UPDATE.
    """
    if not counter:
        raise SequenceError("counter is required")
    key = day_key(day)

    def _op() -> int:
        stmt = (
            update(DailyCounter)
            .where(DailyCounter.counter_name == counter, DailyCounter.day == key)
            .values(count=DailyCounter.count + 1)
        )

        result = db.session.execute(stmt)
        if not result.rowcount:
            db.session.add(DailyCounter(counter_name=counter, day=key, count=1))
            try:
                db.session.flush()
                db.session.commit()
                return 1
            except IntegrityError:
                db.session.rollback()
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise

        current = lock_for_update(
            db.session.query(DailyCounter.count).filter_by(counter_name=counter, day=key)
        ).scalar()
        db.session.commit()
        return current

    return run_with_retry(_op)


def get_counter(day: date, *, counter: str = RETURN_COUNTER) -> int:
    """Current count for (counter, day); 0 when nothing was allocated yet."""
    row = db.session.query(DailyCounter).filter_by(counter_name=counter, day=day_key(day)).first()
    return row.count if row else 0


def _random_suffix() -> str:
    return "".join(secrets.choice(FALLBACK_ALPHABET) for _ in range(FALLBACK_LENGTH))


def fallback_return_id(prefix: str, *, now: datetime | None = None) -> str:
    """Random-suffix id "{prefix}-{MM.dd}-err-{random6}"; does not touch the counter."""
    day = business_date(now or utcnow())
    return f"{prefix}-{date_part(day)}-err-{_random_suffix()}"


def _id_in_use(return_id: str) -> bool:
    return db.session.query(ReturnTransaction.id).filter_by(id=return_id).first() is not None


def _highest_issued(dated_prefix: str) -> int:
    """Highest n among stored "{dated_prefix}-{n}" ids, from any year."""
    highest = 0
    rows = db.session.query(ReturnTransaction.id).filter(ReturnTransaction.id.like(f"{dated_prefix}-%"))
    for (return_id,) in rows:
        suffix = return_id[len(dated_prefix) + 1:]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


def _advance_to(day: date, floor: int, *, counter: str) -> None:
    """Raise the (counter, day) count to at least floor; never lowers it."""
    key = day_key(day)

    def _op() -> None:
        db.session.execute(
            update(DailyCounter)
            .where(
                DailyCounter.counter_name == counter,
                DailyCounter.day == key,
                DailyCounter.count < floor,
            )
            .values(count=floor)
        )
        db.session.commit()

    run_with_retry(_op)


def next_return_id(prefix: str, *, now: datetime | None = None, counter: str = RETURN_COUNTER) -> str:
    """
    Build "{prefix}-{MM.dd}-{n}" from the daily counter.

    Ids carry no year, so the same MM.dd in an earlier year may already own
    the allocated number. The counter is then moved past the highest number
    stored for that MM.dd and allocation is tried again.

    On counter failure the session is rolled back, the error is logged and
    "{prefix}-{MM.dd}-err-{random6}" is returned instead.
    """
    day = business_date(now or utcnow())
    dated_prefix = f"{prefix}-{date_part(day)}"

    try:
        for _ in range(MAX_ALLOCATION_ATTEMPTS):
            return_id = f"{dated_prefix}-{allocate(day, counter=counter)}"
            if not _id_in_use(return_id):
                return return_id
            _advance_to(day, _highest_issued(dated_prefix), counter=counter)
        raise SequenceError(f"No free number for {dated_prefix} after {MAX_ALLOCATION_ATTEMPTS} attempts")
    except (SQLAlchemyError, SequenceError):
        db.session.rollback()
        current_app.logger.exception(
            "Daily counter allocation failed for %s (%s); using fallback id", prefix, day_key(day)
        )
        return fallback_return_id(prefix, now=now)
