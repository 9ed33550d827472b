from __future__ import annotations

from ..extensions import db
from ..money import cents_to_number
from tillbook.time_utils import to_utc_z


# =============================================================================
# RETURN TRANSACTIONS
# =============================================================================

class ReturnTransaction(db.Model):
    """
    Reversal or credit/cash event tied to a customer.

    WHY: Store credit is never stored as a balance. It is derived from the
    signed refund_amount_cents of every return minus the credit spent on
    sales, so each return is a ledger entry.

    SIGN CONVENTION:
    - refund_amount_cents > 0: credit granted to the customer
    - refund_amount_cents < 0: credit debited (e.g. cash paid out)

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_staff_return_date", "staff_id", "return_date"),
    )

    id = db.Column(db.String(64), primary_key=True)

    # Sale being returned from, or DIRECT_REFUND when not tied to a sale
    original_sale_id = db.Column(db.String(64), nullable=False, index=True)

    return_date = db.Column(db.DateTime(timezone=True), nullable=False)
    staff_id = db.Column(db.String(64), nullable=False)

    customer_id = db.Column(db.String(64), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)

    returned_items = db.Column(db.JSON, nullable=False, default=list)
    exchanged_items = db.Column(db.JSON, nullable=False, default=list)

    cash_paid_out_cents = db.Column(db.Integer, nullable=True)
    refund_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<ReturnTransaction id={self.id!r} refund={self.refund_amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "originalSaleId": self.original_sale_id,
            "returnDate": to_utc_z(self.return_date),
            "staffId": self.staff_id,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "returnedItems": list(self.returned_items or []),
            "exchangedItems": list(self.exchanged_items or []),
            "cashPaidOut": cents_to_number(self.cash_paid_out_cents),
            "refundAmount": cents_to_number(self.refund_amount_cents),
        }


# =============================================================================
# EXPENSES
# =============================================================================

class Expense(db.Model):
    """Cash outflow recorded by a staff member (petty cash, supplies, ...)."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_staff_expense_date", "staff_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    expense_date = db.Column(db.DateTime(timezone=True), nullable=False)
    staff_id = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": cents_to_number(self.amount_cents),
            "date": to_utc_z(self.expense_date),
            "staffId": self.staff_id,
            "category": self.category,
            "description": self.description,
        }


# =============================================================================
# SEQUENCES & LOCKS
# =============================================================================

class DailyCounter(db.Model):
    """
    Atomic per-day counters.

    WHY: Human-readable ids ("direct-refund-05.01-3") need a sequence that
    survives across processes; an in-memory counter would not.
    """
    __tablename__ = "daily_counters"
    __table_args__ = (
        db.UniqueConstraint("counter_name", "day", name="uq_daily_counters_name_day"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    counter_name = db.Column(db.String(32), nullable=False)
    day = db.Column(db.String(10), nullable=False)  # yyyy-MM-dd
    count = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "counterName": self.counter_name,
            "day": self.day,
            "count": self.count,
            "updatedAt": to_utc_z(self.updated_at),
        }


class CustomerLedgerLock(db.Model):
    """
    One row per customer whose credit has been paid out in cash.

    Bumping `version` inside a direct-refund transaction takes the row
    (or, on SQLite, database) write lock until commit, so refunds for the
    same customer run one at a time.
    """
    __tablename__ = "customer_ledger_locks"

    customer_id = db.Column(db.String(64), primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
