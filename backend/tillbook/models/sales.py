from __future__ import annotations

from ..extensions import db
from ..money import cents_to_number
from tillbook.time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed point-of-sale transaction.

    WHY: Sales carry the direct tender split (cash, cheque, bank transfer)
    and the store credit spent on them. Once recorded a sale is immutable;
    later settlements are appended as AdditionalPayment rows.

    CREDIT: credit_used_cents debits the customer's store credit pool.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_staff_sale_date", "staff_id", "sale_date"),
    )

    id = db.Column(db.String(64), primary_key=True)

    # Loose reference: customers live in an external CRUD service
    customer_id = db.Column(db.String(64), nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)

    # Amounts (all in cents)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_amount_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_amount_cheque_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_amount_bank_transfer_cents = db.Column(db.Integer, nullable=False, default=0)
    credit_used_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)
    staff_id = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    additional_payments = db.relationship(
        "AdditionalPayment",
        back_populates="sale",
        order_by=lambda: [AdditionalPayment.paid_at, AdditionalPayment.id],
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id!r} staff={self.staff_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "totalAmount": cents_to_number(self.total_amount_cents),
            "paidAmountCash": cents_to_number(self.paid_amount_cash_cents),
            "paidAmountCheque": cents_to_number(self.paid_amount_cheque_cents),
            "paidAmountBankTransfer": cents_to_number(self.paid_amount_bank_transfer_cents),
            "creditUsed": cents_to_number(self.credit_used_cents),
            "status": self.status,
            "saleDate": to_utc_z(self.sale_date),
            "staffId": self.staff_id,
            "additionalPayments": [p.to_dict() for p in self.additional_payments],
        }


class AdditionalPayment(db.Model):
    """
    Later settlement recorded against a sale (typically a credit sale).

    APPEND-ONLY: Rows are never updated or deleted.

    WHY a table of its own: the payment belongs to the day and the staff
    member that collected it, not to the original sale's date or cashier.
    Indexing (staff_id, paid_at) lets the daily count find it directly.
    """
    __tablename__ = "sale_additional_payments"
    __table_args__ = (
        db.Index("ix_additional_payments_staff_paid_at", "staff_id", "paid_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(64), db.ForeignKey("sales.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)  # Cash, Cheque, BankTransfer
    staff_id = db.Column(db.String(64), nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", back_populates="additional_payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "saleId": self.sale_id,
            "amount": cents_to_number(self.amount_cents),
            "method": self.method,
            "staffId": self.staff_id,
            "date": to_utc_z(self.paid_at),
        }
