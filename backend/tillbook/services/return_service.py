"""
Return Processing Service

WHY: Returns and exchanges are the credit side of the store credit ledger.
A return may hand cash back (cash_paid_out), grant store credit
(refund_amount > 0), or both; exchanged items are recorded for the audit
trail.

DESIGN PRINCIPLES:
- Returns reference the original Sale for traceability
- Ids come from the same daily counter as direct refunds ("return-MM.dd-n")
- Immutable audit trail (returns are never modified)
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ReturnTransaction, Sale
from ..money import MoneyError, to_cents
from tillbook.time_utils import coerce_datetime, utcnow
from . import sequence_service


class ReturnError(Exception):
    """Raised for return operation errors."""
    pass


def _items(value, field: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ReturnError(f"{field} must be a list of objects")
    return value


# =============================================================================
# RETURN CREATION
# =============================================================================

def record_return(
    *,
    original_sale_id: str,
    staff_id: str,
    refund_amount,
    customer_id: str | None = None,
    customer_name: str | None = None,
    cash_paid_out=None,
    returned_items: list | None = None,
    exchanged_items: list | None = None,
    return_date=None,
) -> ReturnTransaction:
    """
    Record a return against a previous sale.

    Args:
        original_sale_id: Sale being returned from
        staff_id: Staff member processing the return
        refund_amount: Signed credit movement (positive grants store credit)
        customer_id: Defaults to the sale's customer
        cash_paid_out: Cash handed back over the counter (>= 0)
        returned_items / exchanged_items: Line snapshots for the audit trail
        return_date: Defaults to now

    Raises:
        ReturnError: If sale not found or input invalid
    """
    if not isinstance(staff_id, str) or not staff_id.strip():
        raise ReturnError("staff_id is required")

    sale = db.session.get(Sale, original_sale_id) if original_sale_id else None
    if not sale:
        raise ReturnError(f"Sale {original_sale_id} not found")

    try:
        refund_cents = to_cents(refund_amount, field="refund_amount")
        cash_cents = to_cents(cash_paid_out, field="cash_paid_out") if cash_paid_out is not None else None
    except MoneyError as exc:
        raise ReturnError(str(exc))
    if cash_cents is not None and cash_cents < 0:
        raise ReturnError("cash_paid_out cannot be negative")

    try:
        when = coerce_datetime(return_date, field="return_date") or utcnow()
    except ValueError as exc:
        raise ReturnError(str(exc))

    customer_id = customer_id or sale.customer_id
    if refund_cents and not customer_id:
        raise ReturnError("customer_id is required when refund_amount is set")

    returned = _items(returned_items, "returned_items")
    exchanged = _items(exchanged_items, "exchanged_items")

    sale_id = sale.id
    customer_name = customer_name or sale.customer_name

    def _insert(return_id: str) -> ReturnTransaction:
        return_txn = ReturnTransaction(
            id=return_id,
            original_sale_id=sale_id,
            return_date=when,
            staff_id=staff_id,
            customer_id=customer_id,
            customer_name=customer_name,
            returned_items=returned,
            exchanged_items=exchanged,
            cash_paid_out_cents=cash_cents,
            refund_amount_cents=refund_cents,
        )
        db.session.add(return_txn)
        db.session.commit()
        return return_txn

    return_id = sequence_service.next_return_id(sequence_service.RETURN_PREFIX, now=when)
    try:
        return _insert(return_id)
    except IntegrityError:
        db.session.rollback()
        fallback_id = sequence_service.fallback_return_id(sequence_service.RETURN_PREFIX, now=when)
        current_app.logger.error("Return id %s already taken; recording return as %s", return_id, fallback_id)
        return _insert(fallback_id)


# =============================================================================
# QUERIES
# =============================================================================

def get_return(return_id: str) -> ReturnTransaction | None:
    """Get return by ID."""
    return db.session.get(ReturnTransaction, return_id)


def list_returns(
    *,
    staff_id: str | None = None,
    customer_id: str | None = None,
    start=None,
    end=None,
) -> list[ReturnTransaction]:
    """Returns matching the filters, newest first."""
    q = db.session.query(ReturnTransaction)

    if staff_id:
        q = q.filter(ReturnTransaction.staff_id == staff_id)
    if customer_id:
        q = q.filter(ReturnTransaction.customer_id == customer_id)
    if start:
        q = q.filter(ReturnTransaction.return_date >= start)
    if end:
        q = q.filter(ReturnTransaction.return_date <= end)

    return q.order_by(ReturnTransaction.return_date.desc(), ReturnTransaction.id.desc()).all()
