import logging
import re
from datetime import date, datetime

import pytest

from tillbook.models import ReturnTransaction
from tillbook.services import refund_service, sequence_service
from tillbook.services.credit_service import get_available_credit_cents
from tillbook.services.refund_service import (
    DIRECT_REFUND_SALE_ID,
    InsufficientCreditError,
    RefundValidationError,
    process_direct_refund,
)


NOW = datetime(2024, 5, 1, 10, 0)


@pytest.fixture
def customer_with_credit(make_sale, make_return):
    """C1 holds 3000.00 of store credit: 5000 refunded, 2000 spent."""
    sale = make_sale(customer_id="C1", customer_name="Alice", total_amount=5000, paid_amount_cash=5000)
    make_return(sale, refund_amount=5000, return_date=datetime(2024, 4, 20, 9, 0))
    make_sale(customer_id="C1", total_amount=2000, credit_used=2000, sale_date=datetime(2024, 4, 21, 9, 0))
    return "C1"


def test_direct_refund_records_negative_credit_movement(db_session, customer_with_credit):
    return_txn = process_direct_refund("C1", "Alice", 1000, "S1", now=NOW)

    assert return_txn.id == "direct-refund-05.01-1"
    assert return_txn.original_sale_id == DIRECT_REFUND_SALE_ID
    assert return_txn.cash_paid_out_cents == 100000
    assert return_txn.refund_amount_cents == -100000
    assert return_txn.returned_items == []
    assert return_txn.exchanged_items == []
    assert return_txn.staff_id == "S1"
    assert return_txn.customer_name == "Alice"
    assert return_txn.return_date == NOW

    assert get_available_credit_cents("C1") == 200000


def test_full_credit_can_be_paid_out(db_session, customer_with_credit):
    process_direct_refund("C1", "Alice", 3000, "S1", now=NOW)

    assert get_available_credit_cents("C1") == 0


def test_one_cent_over_the_credit_is_rejected(db_session, customer_with_credit):
    with pytest.raises(InsufficientCreditError) as exc_info:
        process_direct_refund("C1", "Alice", 3000.01, "S1", now=NOW)

    assert str(exc_info.value) == "Refund amount of 3000.01 exceeds available credit of 3000.00."
    assert exc_info.value.requested_cents == 300001
    assert exc_info.value.available_cents == 300000


def test_rejected_refund_writes_nothing(db_session, customer_with_credit):
    before_counter = sequence_service.get_counter(NOW.date())

    with pytest.raises(InsufficientCreditError):
        process_direct_refund("C1", "Alice", 4000, "S1", now=NOW)

    direct_refunds = db_session.query(ReturnTransaction).filter_by(original_sale_id=DIRECT_REFUND_SALE_ID).count()
    assert direct_refunds == 0
    assert sequence_service.get_counter(NOW.date()) == before_counter
    assert get_available_credit_cents("C1") == 300000


def test_customer_without_credit_is_rejected(db_session):
    with pytest.raises(InsufficientCreditError) as exc_info:
        process_direct_refund("C9", None, 1, "S1", now=NOW)

    assert str(exc_info.value) == "Refund amount of 1.00 exceeds available credit of 0.00."


def test_sequential_refunds_drain_credit(db_session, customer_with_credit):
    first = process_direct_refund("C1", "Alice", 1000, "S1", now=NOW)
    second = process_direct_refund("C1", "Alice", 2000, "S2", now=NOW)

    assert first.id == "direct-refund-05.01-1"
    assert second.id == "direct-refund-05.01-2"
    with pytest.raises(InsufficientCreditError):
        process_direct_refund("C1", "Alice", 0.01, "S1", now=NOW)


@pytest.mark.parametrize("customer_id,staff_id,cash", [
    (None, "S1", 10),
    ("", "S1", 10),
    ("C1", None, 10),
    ("C1", "  ", 10),
    ("C1", "S1", None),
    ("C1", "S1", "10"),
    ("C1", "S1", 0),
    ("C1", "S1", -5),
    ("C1", "S1", True),
])
def test_invalid_input_is_rejected_before_any_write(db_session, customer_id, staff_id, cash):
    with pytest.raises(RefundValidationError):
        process_direct_refund(customer_id, "Alice", cash, staff_id, now=NOW)

    assert db_session.query(ReturnTransaction).count() == 0
    assert sequence_service.get_counter(NOW.date()) == 0


def test_refund_uses_fallback_id_when_counter_fails(db_session, customer_with_credit, monkeypatch):
    def broken_next_return_id(prefix, *, now=None, counter=sequence_service.RETURN_COUNTER):
        return f"{prefix}-05.01-err-abc123"

    monkeypatch.setattr(sequence_service, "next_return_id", broken_next_return_id)

    return_txn = process_direct_refund("C1", "Alice", 10, "S1", now=NOW)

    assert return_txn.id == "direct-refund-05.01-err-abc123"
    assert get_available_credit_cents("C1") == 299000


def test_successful_refund_is_logged(db_session, customer_with_credit, caplog):
    with caplog.at_level(logging.INFO):
        refund_service.process_direct_refund("C1", "Alice", 250, "S1", now=NOW)

    assert any("direct-refund-05.01-1" in record.getMessage() for record in caplog.records)


def test_same_date_next_year_gets_a_fresh_number(db_session, customer_with_credit):
    first = process_direct_refund("C1", "Alice", 10, "S1", now=datetime(2024, 5, 1, 10, 0))
    second = process_direct_refund("C1", "Alice", 10, "S1", now=datetime(2025, 5, 1, 10, 0))

    assert first.id == "direct-refund-05.01-1"
    assert second.id == "direct-refund-05.01-2"
    assert sequence_service.get_counter(date(2025, 5, 1)) == 2
    assert get_available_credit_cents("C1") == 298000


def test_taken_id_falls_back_to_random_suffix(db_session, customer_with_credit, monkeypatch):
    db_session.execute(ReturnTransaction.__table__.insert().values(
        id="direct-refund-05.01-1",
        original_sale_id=DIRECT_REFUND_SALE_ID,
        return_date=datetime(2023, 5, 1, 10, 0),
        staff_id="S1",
        customer_id="C7",
        returned_items=[],
        exchanged_items=[],
        refund_amount_cents=0,
    ))
    db_session.commit()

    def stale_next_return_id(prefix, *, now=None, counter=sequence_service.RETURN_COUNTER):
        return f"{prefix}-05.01-1"

    monkeypatch.setattr(sequence_service, "next_return_id", stale_next_return_id)

    return_txn = process_direct_refund("C1", "Alice", 10, "S1", now=NOW)

    assert re.fullmatch(r"direct-refund-05\.01-err-[0-9a-z]{6}", return_txn.id)
    assert get_available_credit_cents("C1") == 299000
