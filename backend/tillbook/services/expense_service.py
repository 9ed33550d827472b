# Overview: Service-layer operations for staff expenses (cash taken out of the drawer).

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..money import MoneyError, to_cents
from tillbook.time_utils import coerce_datetime, utcnow


class ExpenseError(Exception):
    """Raised for expense operation errors."""
    pass


def create_expense(
    *,
    amount,
    staff_id: str,
    category: str,
    description: str | None = None,
    expense_date=None,
) -> Expense:
    """Record an expense paid from the drawer. amount must be >= 0."""
    if not isinstance(staff_id, str) or not staff_id.strip():
        raise ExpenseError("staff_id is required")
    if not isinstance(category, str) or not category.strip():
        raise ExpenseError("category is required")

    try:
        amount_cents = to_cents(amount, field="amount")
        when = coerce_datetime(expense_date, field="date") or utcnow()
    except (MoneyError, ValueError) as exc:
        raise ExpenseError(str(exc))
    if amount_cents < 0:
        raise ExpenseError("amount cannot be negative")

    expense = Expense(
        amount_cents=amount_cents,
        expense_date=when,
        staff_id=staff_id.strip(),
        category=category.strip(),
        description=description,
    )
    db.session.add(expense)
    db.session.commit()
    return expense


def list_expenses(*, staff_id: str | None = None, start=None, end=None) -> list[Expense]:
    q = db.session.query(Expense)
    if staff_id:
        q = q.filter(Expense.staff_id == staff_id)
    if start:
        q = q.filter(Expense.expense_date >= start)
    if end:
        q = q.filter(Expense.expense_date <= end)
    return q.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()
