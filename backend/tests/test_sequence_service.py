import logging
import re
from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from tillbook.models import DailyCounter
from tillbook.services import sequence_service


def test_first_allocation_for_a_day_starts_at_one(db_session):
    assert sequence_service.allocate(date(2024, 5, 1)) == 1


def test_allocations_increase_without_gaps(db_session):
    numbers = [sequence_service.allocate(date(2024, 5, 1)) for _ in range(5)]
    assert numbers == [1, 2, 3, 4, 5]
    assert sequence_service.get_counter(date(2024, 5, 1)) == 5


def test_days_and_counters_are_independent(db_session):
    sequence_service.allocate(date(2024, 5, 1))
    sequence_service.allocate(date(2024, 5, 1))

    assert sequence_service.allocate(date(2024, 5, 2)) == 1
    assert sequence_service.allocate(date(2024, 5, 1), counter="exchanges") == 1
    assert sequence_service.get_counter(date(2024, 4, 30)) == 0


def test_counter_row_is_keyed_by_iso_day(db_session):
    sequence_service.allocate(date(2024, 5, 1))

    row = db_session.query(DailyCounter).one()
    assert row.day == "2024-05-01"
    assert row.counter_name == sequence_service.RETURN_COUNTER
    assert row.count == 1


def test_next_return_id_embeds_month_day_and_number(db_session):
    now = datetime(2024, 5, 1, 9, 30)

    first = sequence_service.next_return_id("direct-refund", now=now)
    second = sequence_service.next_return_id("direct-refund", now=now)

    assert first == "direct-refund-05.01-1"
    assert second == "direct-refund-05.01-2"


def test_prefixes_share_the_daily_counter(db_session):
    now = datetime(2024, 12, 24, 18, 0)

    assert sequence_service.next_return_id("return", now=now) == "return-12.24-1"
    assert sequence_service.next_return_id("direct-refund", now=now) == "direct-refund-12.24-2"


def test_counter_failure_falls_back_to_random_suffix(db_session, monkeypatch, caplog):
    def broken_allocate(day, *, counter):
        raise OperationalError("UPDATE daily_counters", {}, Exception("database is locked"))

    monkeypatch.setattr(sequence_service, "allocate", broken_allocate)

    with caplog.at_level(logging.ERROR):
        return_id = sequence_service.next_return_id("direct-refund", now=datetime(2024, 5, 1, 9, 0))

    assert re.fullmatch(r"direct-refund-05\.01-err-[0-9a-z]{6}", return_id)
    assert any("fallback" in record.getMessage() for record in caplog.records)


def test_fallback_ids_do_not_collide(db_session, monkeypatch):
    def broken_allocate(day, *, counter):
        raise OperationalError("UPDATE daily_counters", {}, Exception("disk I/O error"))

    monkeypatch.setattr(sequence_service, "allocate", broken_allocate)

    ids = {sequence_service.next_return_id("direct-refund", now=datetime(2024, 5, 1)) for _ in range(50)}
    assert len(ids) == 50


def test_business_day_follows_configured_timezone(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "TILLBOOK_TIMEZONE", "Asia/Colombo")

    # 20:00 UTC on 30 April is 01:30 on 1 May in Colombo (+05:30)
    return_id = sequence_service.next_return_id("return", now=datetime(2024, 4, 30, 20, 0))

    assert return_id == "return-05.01-1"
    assert sequence_service.get_counter(date(2024, 5, 1)) == 1


def test_allocate_requires_counter_name(db_session):
    with pytest.raises(sequence_service.SequenceError):
        sequence_service.allocate(date(2024, 5, 1), counter="")
