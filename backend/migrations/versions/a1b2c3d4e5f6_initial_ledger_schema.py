"""Initial ledger schema: sales, additional payments, returns, expenses, counters

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Sales
    op.create_table(
        "sales",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("customer_id", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paid_amount_cash_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paid_amount_cheque_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paid_amount_bank_transfer_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("credit_used_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("staff_id", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_sales_customer_id", "sales", ["customer_id"], unique=False)
    op.create_index("ix_sales_status", "sales", ["status"], unique=False)
    op.create_index("ix_sales_staff_sale_date", "sales", ["staff_id", "sale_date"], unique=False)

    # Additional payments (credit settlements)
    op.create_table(
        "sale_additional_payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.String(length=64), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("method", sa.String(length=16), nullable=False),
        sa.Column("staff_id", sa.String(length=64), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_additional_payments_sale_id", "sale_additional_payments", ["sale_id"], unique=False)
    op.create_index(
        "ix_additional_payments_staff_paid_at", "sale_additional_payments", ["staff_id", "paid_at"], unique=False
    )

    # Returns
    op.create_table(
        "returns",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("original_sale_id", sa.String(length=64), nullable=False),
        sa.Column("return_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("staff_id", sa.String(length=64), nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("returned_items", sa.JSON(), nullable=False),
        sa.Column("exchanged_items", sa.JSON(), nullable=False),
        sa.Column("cash_paid_out_cents", sa.Integer(), nullable=True),
        sa.Column("refund_amount_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_returns_original_sale_id", "returns", ["original_sale_id"], unique=False)
    op.create_index("ix_returns_customer_id", "returns", ["customer_id"], unique=False)
    op.create_index("ix_returns_staff_return_date", "returns", ["staff_id", "return_date"], unique=False)

    # Expenses
    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("expense_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("staff_id", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_expenses_staff_expense_date", "expenses", ["staff_id", "expense_date"], unique=False)

    # Daily counters
    op.create_table(
        "daily_counters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("counter_name", sa.String(length=32), nullable=False),
        sa.Column("day", sa.String(length=10), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("counter_name", "day", name="uq_daily_counters_name_day"),
        sqlite_autoincrement=True,
    )

    # Per-customer ledger locks
    op.create_table(
        "customer_ledger_locks",
        sa.Column("customer_id", sa.String(length=64), primary_key=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )


def downgrade():
    op.drop_table("customer_ledger_locks")
    op.drop_table("daily_counters")
    op.drop_index("ix_expenses_staff_expense_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("ix_returns_staff_return_date", table_name="returns")
    op.drop_index("ix_returns_customer_id", table_name="returns")
    op.drop_index("ix_returns_original_sale_id", table_name="returns")
    op.drop_table("returns")
    op.drop_index("ix_additional_payments_staff_paid_at", table_name="sale_additional_payments")
    op.drop_index("ix_sale_additional_payments_sale_id", table_name="sale_additional_payments")
    op.drop_table("sale_additional_payments")
    op.drop_index("ix_sales_staff_sale_date", table_name="sales")
    op.drop_index("ix_sales_status", table_name="sales")
    op.drop_index("ix_sales_customer_id", table_name="sales")
    op.drop_table("sales")
