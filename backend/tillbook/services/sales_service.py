"""
Sales Service - recording completed sales and later settlements

WHY: Sales are the debit side of the store credit ledger (credit_used) and
the main inflow of the daily count. A sale is written once at the point
of sale; the only later change allowed is appending an additional payment
when a customer settles a credit purchase.
"""

from __future__ import annotations

import uuid

from ..extensions import db
from ..models import Sale, AdditionalPayment
from ..money import MoneyError, to_cents
from tillbook.time_utils import coerce_datetime, utcnow
from .reconciliation_service import PAYMENT_METHODS
from .concurrency import lock_for_update, run_with_retry


SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_PENDING = "pending"
SALE_STATUS_CANCELLED = "cancelled"

VALID_SALE_STATUSES = [
    SALE_STATUS_COMPLETED,
    SALE_STATUS_PENDING,
    SALE_STATUS_CANCELLED,
]


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleNotFoundError(SaleError):
    """Raised when a sale id does not exist."""
    pass


def _amount(value, field: str, *, positive: bool = False) -> int:
    if value is None:
        return 0
    try:
        cents = to_cents(value, field=field)
    except MoneyError as exc:
        raise SaleError(str(exc))
    if positive and cents <= 0:
        raise SaleError(f"{field} must be greater than 0")
    if cents < 0:
        raise SaleError(f"{field} cannot be negative")
    return cents


def _required_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SaleError(f"{field} is required")
    return value.strip()


def _when(value, field: str):
    try:
        return coerce_datetime(value, field=field)
    except ValueError as exc:
        raise SaleError(str(exc))


# =============================================================================
# SALE CREATION
# =============================================================================

def create_sale(
    *,
    staff_id: str,
    total_amount,
    sale_id: str | None = None,
    customer_id: str | None = None,
    customer_name: str | None = None,
    paid_amount_cash=None,
    paid_amount_cheque=None,
    paid_amount_bank_transfer=None,
    credit_used=None,
    status: str = SALE_STATUS_COMPLETED,
    sale_date=None,
) -> Sale:
    """
    Record a completed sale.

    Amounts are JSON numbers and are stored as cents. credit_used requires
    a customer, since it is debited from that customer's store credit.

    Raises:
        SaleError: Invalid amounts, status, date or duplicate id
    """
    staff_id = _required_text(staff_id, "staff_id")

    if status not in VALID_SALE_STATUSES:
        raise SaleError(f"Invalid status. Must be one of: {', '.join(VALID_SALE_STATUSES)}")

    credit_used_cents = _amount(credit_used, "credit_used")
    if credit_used_cents and not customer_id:
        raise SaleError("customer_id is required when credit_used is set")

    if sale_id is not None:
        sale_id = _required_text(sale_id, "id")
        if db.session.get(Sale, sale_id):
            raise SaleError(f"Sale {sale_id} already exists")
    else:
        sale_id = f"sale-{uuid.uuid4().hex[:12]}"

    sale = Sale(
        id=sale_id,
        customer_id=customer_id or None,
        customer_name=customer_name,
        total_amount_cents=_amount(total_amount, "total_amount"),
        paid_amount_cash_cents=_amount(paid_amount_cash, "paid_amount_cash"),
        paid_amount_cheque_cents=_amount(paid_amount_cheque, "paid_amount_cheque"),
        paid_amount_bank_transfer_cents=_amount(paid_amount_bank_transfer, "paid_amount_bank_transfer"),
        credit_used_cents=credit_used_cents,
        status=status,
        sale_date=_when(sale_date, "sale_date") or utcnow(),
        staff_id=staff_id,
    )

    db.session.add(sale)
    db.session.commit()
    return sale


# =============================================================================
# ADDITIONAL PAYMENTS
# =============================================================================

def record_additional_payment(
    sale_id: str,
    amount,
    method: str,
    staff_id: str,
    *,
    paid_at=None,
) -> AdditionalPayment:
    """
    Append a later settlement to a sale.

    WHY: Credit purchases are settled over time, often by a different
    cashier on a different day. The payment keeps its own staff_id and
    date so it lands in the right daily count.

    Raises:
        SaleNotFoundError: Unknown sale
        SaleError: Invalid amount, method or staff
    """
    amount_cents = _amount(amount, "amount", positive=True)
    if method not in PAYMENT_METHODS:
        raise SaleError(f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}")
    staff_id = _required_text(staff_id, "staff_id")
    paid_at = _when(paid_at, "date") or utcnow()

    def _op() -> AdditionalPayment:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise SaleNotFoundError(f"Sale {sale_id} not found")

        payment = AdditionalPayment(
            sale_id=sale.id,
            amount_cents=amount_cents,
            method=method,
            staff_id=staff_id,
            paid_at=paid_at,
        )
        db.session.add(payment)
        db.session.commit()
        return payment

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_sale(sale_id: str) -> Sale | None:
    """Get sale by ID."""
    return db.session.get(Sale, sale_id)


def list_sales(
    *,
    staff_id: str | None = None,
    customer_id: str | None = None,
    start=None,
    end=None,
) -> list[Sale]:
    """Sales matching the filters, newest first. start/end bound sale_date inclusively."""
    q = db.session.query(Sale)

    if staff_id:
        q = q.filter(Sale.staff_id == staff_id)
    if customer_id:
        q = q.filter(Sale.customer_id == customer_id)
    if start:
        q = q.filter(Sale.sale_date >= start)
    if end:
        q = q.filter(Sale.sale_date <= end)

    return q.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()
