# Overview: Store credit derived from the full sales/returns history of a customer.

"""
Credit Ledger

WHY: Store credit is not stored as a running balance. It is recomputed
from history on every query, which rules out balance drift:

    available = SUM(returns.refund_amount) - SUM(sales.credit_used)

Positive means the customer has credit to spend or cash out; negative
means the customer owes. Missing amounts count as 0.
"""

from __future__ import annotations

from sqlalchemy import func, select

from ..extensions import db
from ..models import ReturnTransaction, Sale
from ..money import cents_to_number


class CreditError(ValueError):
    """Raised for invalid credit lookups."""


def _require_customer_id(customer_id) -> str:
    if not isinstance(customer_id, str) or not customer_id.strip():
        raise CreditError("customer_id is required")
    return customer_id


def _credit_totals(customer_id: str) -> tuple[int, int]:
    """
    (total refunded, total credit used) in cents.

    Both sums are scalar subqueries of one SELECT, so they are fetched
    together and read the same snapshot.
    """
    refunds = (
        select(func.coalesce(func.sum(ReturnTransaction.refund_amount_cents), 0))
        .where(ReturnTransaction.customer_id == customer_id)
        .scalar_subquery()
    )
    credit_used = (
        select(func.coalesce(func.sum(Sale.credit_used_cents), 0))
        .where(Sale.customer_id == customer_id)
        .scalar_subquery()
    )

    row = db.session.execute(select(refunds.label("refunds"), credit_used.label("credit_used"))).one()
    return int(row.refunds or 0), int(row.credit_used or 0)


def get_available_credit_cents(customer_id: str) -> int:
    """Signed available store credit for a customer, in cents."""
    customer_id = _require_customer_id(customer_id)
    refunds, credit_used = _credit_totals(customer_id)
    return refunds - credit_used


def get_credit_summary(customer_id: str) -> dict:
    """Credit breakdown for collaborators (customer screens, statements)."""
    customer_id = _require_customer_id(customer_id)
    refunds, credit_used = _credit_totals(customer_id)
    return {
        "customerId": customer_id,
        "totalCreditGranted": cents_to_number(refunds),
        "totalCreditUsed": cents_to_number(credit_used),
        "availableCredit": cents_to_number(refunds - credit_used),
    }
