# Overview: Service-layer operations for direct refunds (cash paid out against store credit).

"""
Direct Refund Service

WHY: A customer holding store credit may take it as cash instead. The
payout is recorded as a ReturnTransaction that is not tied to any sale and
whose refund amount is the negative of the cash paid out, so the derived
credit balance drops one-for-one.

FLOW:
1. Validate input (no writes on failure)
2. Check available credit (reject if cash > credit; equality is allowed)
3. Allocate a "direct-refund-MM.dd-n" id from the daily counter
4. Under the customer's ledger lock: re-check credit, insert the return

Step 4 re-reads the credit while holding the lock, so two refunds racing
for the same customer cannot jointly overdraw the credit pool. The loser
gets InsufficientCreditError; its allocated number is left as a gap.
If the id turns out to be taken already, the insert is redone once with
an "-err-" fallback id.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ReturnTransaction
from ..money import MoneyError, format_cents, to_cents
from tillbook.time_utils import utcnow
from . import credit_service, sequence_service
from .concurrency import acquire_customer_ledger, run_with_retry


DIRECT_REFUND_SALE_ID = "DIRECT_REFUND"


class RefundError(Exception):
    """Base class for direct refund failures."""
    pass


class RefundValidationError(RefundError):
    """Missing or malformed refund input."""
    pass


class InsufficientCreditError(RefundError):
    """Requested cash exceeds the customer's available store credit."""

    def __init__(self, requested_cents: int, available_cents: int):
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Refund amount of {format_cents(requested_cents)} exceeds "
            f"available credit of {format_cents(available_cents)}."
        )


def _validate(customer_id, staff_id, cash_paid_out) -> int:
    if not isinstance(customer_id, str) or not customer_id.strip():
        raise RefundValidationError("customer_id is required")
    if not isinstance(staff_id, str) or not staff_id.strip():
        raise RefundValidationError("staff_id is required")

    try:
        cash_cents = to_cents(cash_paid_out, field="cash_paid_out")
    except MoneyError as exc:
        raise RefundValidationError(str(exc))

    if cash_cents <= 0:
        raise RefundValidationError("cash_paid_out must be a positive number")
    return cash_cents


def process_direct_refund(
    customer_id: str,
    customer_name: str | None,
    cash_paid_out,
    staff_id: str,
    *,
    now: datetime | None = None,
) -> ReturnTransaction:
    """
    Pay out cash against a customer's store credit.

    Args:
        customer_id: Customer whose credit is debited
        customer_name: Display name copied onto the return record
        cash_paid_out: Cash handed over (JSON number, > 0)
        staff_id: Staff member paying out
        now: Timestamp of the payout (defaults to server time)

    Returns:
        The persisted ReturnTransaction (refund_amount = -cash_paid_out)

    Raises:
        RefundValidationError: Invalid input
        InsufficientCreditError: cash_paid_out > available credit
    """
    cash_cents = _validate(customer_id, staff_id, cash_paid_out)
    now = now or utcnow()

    available = credit_service.get_available_credit_cents(customer_id)
    if cash_cents > available:
        raise InsufficientCreditError(cash_cents, available)

    return_id = sequence_service.next_return_id(sequence_service.DIRECT_REFUND_PREFIX, now=now)

    def _op(return_id: str) -> ReturnTransaction:
        acquire_customer_ledger(customer_id)

        locked_available = credit_service.get_available_credit_cents(customer_id)
        if cash_cents > locked_available:
            db.session.rollback()
            raise InsufficientCreditError(cash_cents, locked_available)

        return_txn = ReturnTransaction(
            id=return_id,
            original_sale_id=DIRECT_REFUND_SALE_ID,
            return_date=now,
            staff_id=staff_id,
            customer_id=customer_id,
            customer_name=customer_name,
            returned_items=[],
            exchanged_items=[],
            cash_paid_out_cents=cash_cents,
            refund_amount_cents=-cash_cents,
        )
        db.session.add(return_txn)
        db.session.commit()
        return return_txn

    try:
        return_txn = run_with_retry(lambda: _op(return_id))
    except IntegrityError:
        db.session.rollback()
        fallback_id = sequence_service.fallback_return_id(sequence_service.DIRECT_REFUND_PREFIX, now=now)
        current_app.logger.error(
            "Return id %s already taken; retrying direct refund as %s", return_id, fallback_id
        )
        return_txn = run_with_retry(lambda: _op(fallback_id))

    current_app.logger.info(
        "Direct refund %s: %s paid out to customer %s by %s",
        return_txn.id, format_cents(cash_cents), customer_id, staff_id,
    )
    return return_txn
