# Overview: Daily cash-drawer reconciliation per staff member.

"""
Daily Count (per-staff reconciliation)

WHY: At the end of a shift each staff member counts the drawer. The
expected cash on hand is what they took in minus what they paid out:

    net_cash_in_hand = total_cash_in - total_refunds_paid_out - total_expenses

INFLOWS per tender (Cash, Cheque, BankTransfer):
- direct payment fields of the staff member's sales made that day
- additional payments the staff member collected that day, whatever the
  date or cashier of the sale they settle

OUTFLOWS:
- cash paid out on the staff member's returns that day
- the staff member's expenses that day

The day is the closed interval [00:00:00, 23:59:59.999999] in the business
timezone. The summary is read-only and is always returned, zeroed when the
staff member recorded nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..models import AdditionalPayment, Expense, ReturnTransaction, Sale
from ..money import cents_to_number
from tillbook.time_utils import business_date, day_bounds


METHOD_CASH = "Cash"
METHOD_CHEQUE = "Cheque"
METHOD_BANK_TRANSFER = "BankTransfer"

PAYMENT_METHODS = [METHOD_CASH, METHOD_CHEQUE, METHOD_BANK_TRANSFER]

EARLIEST_REPORT_DATE = date(2000, 1, 1)


class ReconciliationError(ValueError):
    """Raised for invalid reconciliation requests."""


@dataclass(frozen=True)
class DailySummary:
    """Cash position of one staff member for one business day (amounts in cents)."""
    report_date: date
    staff_id: str
    total_transactions: int = 0
    gross_sales_value_cents: int = 0
    total_cash_in_cents: int = 0
    total_cheque_in_cents: int = 0
    total_bank_transfer_in_cents: int = 0
    total_expenses_cents: int = 0
    total_refunds_paid_out_cents: int = 0

    @property
    def net_cash_in_hand_cents(self) -> int:
        return self.total_cash_in_cents - self.total_refunds_paid_out_cents - self.total_expenses_cents

    def to_dict(self) -> dict:
        return {
            "reportDate": self.report_date.isoformat(),
            "staffId": self.staff_id,
            "totalTransactions": self.total_transactions,
            "grossSalesValue": cents_to_number(self.gross_sales_value_cents),
            "totalCashIn": cents_to_number(self.total_cash_in_cents),
            "totalChequeIn": cents_to_number(self.total_cheque_in_cents),
            "totalBankTransferIn": cents_to_number(self.total_bank_transfer_in_cents),
            "totalExpenses": cents_to_number(self.total_expenses_cents),
            "totalRefundsPaidOut": cents_to_number(self.total_refunds_paid_out_cents),
            "netCashInHand": cents_to_number(self.net_cash_in_hand_cents),
        }


def _sum(column):
    return func.coalesce(func.sum(column), 0)


def _sales_totals(staff_id: str, start, end):
    return db.session.query(
        func.count(Sale.id).label("transactions"),
        _sum(Sale.total_amount_cents).label("gross"),
        _sum(Sale.paid_amount_cash_cents).label("cash"),
        _sum(Sale.paid_amount_cheque_cents).label("cheque"),
        _sum(Sale.paid_amount_bank_transfer_cents).label("bank_transfer"),
    ).filter(
        Sale.staff_id == staff_id,
        Sale.sale_date >= start,
        Sale.sale_date <= end,
    ).one()


def _additional_payment_totals(staff_id: str, start, end) -> dict[str, int]:
    """
    Credit settlements collected by staff_id inside the window.

    Keyed on the payment's own staff and date, never on the parent sale's.
    """
    rows = db.session.query(
        AdditionalPayment.method,
        _sum(AdditionalPayment.amount_cents).label("amount"),
    ).filter(
        AdditionalPayment.staff_id == staff_id,
        AdditionalPayment.paid_at >= start,
        AdditionalPayment.paid_at <= end,
    ).group_by(AdditionalPayment.method).all()

    totals = {method: 0 for method in PAYMENT_METHODS}
    for row in rows:
        if row.method in totals:
            totals[row.method] += int(row.amount or 0)
    return totals


def _refunds_paid_out(staff_id: str, start, end) -> int:
    return int(db.session.query(_sum(ReturnTransaction.cash_paid_out_cents)).filter(
        ReturnTransaction.staff_id == staff_id,
        ReturnTransaction.return_date >= start,
        ReturnTransaction.return_date <= end,
    ).scalar() or 0)


def _expenses(staff_id: str, start, end) -> int:
    return int(db.session.query(_sum(Expense.amount_cents)).filter(
        Expense.staff_id == staff_id,
        Expense.expense_date >= start,
        Expense.expense_date <= end,
    ).scalar() or 0)


def reconcile(staff_id: str, day: date | None = None, *, today: date | None = None) -> DailySummary:
    """
    Build the daily count for a staff member.

    Args:
        staff_id: Staff member being reconciled
        day: Business day (defaults to today in the business timezone)
        today: Override of "today" for the future-date check

    Raises:
        ReconciliationError: Missing staff_id, or day in the future / before 2000-01-01
    """
    if not isinstance(staff_id, str) or not staff_id.strip():
        raise ReconciliationError("staff_id is required")

    today = today or business_date()
    day = day or today
    if day > today:
        raise ReconciliationError("Cannot reconcile a future date")
    if day < EARLIEST_REPORT_DATE:
        raise ReconciliationError(f"date must be on or after {EARLIEST_REPORT_DATE.isoformat()}")

    start, end = day_bounds(day)

    sales = _sales_totals(staff_id, start, end)
    collected = _additional_payment_totals(staff_id, start, end)

    return DailySummary(
        report_date=day,
        staff_id=staff_id,
        total_transactions=int(sales.transactions or 0),
        gross_sales_value_cents=int(sales.gross or 0),
        total_cash_in_cents=int(sales.cash or 0) + collected[METHOD_CASH],
        total_cheque_in_cents=int(sales.cheque or 0) + collected[METHOD_CHEQUE],
        total_bank_transfer_in_cents=int(sales.bank_transfer or 0) + collected[METHOD_BANK_TRANSFER],
        total_expenses_cents=_expenses(staff_id, start, end),
        total_refunds_paid_out_cents=_refunds_paid_out(staff_id, start, end),
    )
