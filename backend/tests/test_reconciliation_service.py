from datetime import date, datetime

import pytest

from tillbook.services import sales_service
from tillbook.services.reconciliation_service import ReconciliationError, reconcile
from tillbook.services.refund_service import process_direct_refund


DAY = date(2024, 5, 1)


def test_staff_with_no_activity_gets_zeroed_summary(db_session):
    summary = reconcile("S1", DAY)

    assert summary.to_dict() == {
        "reportDate": "2024-05-01",
        "staffId": "S1",
        "totalTransactions": 0,
        "grossSalesValue": 0.0,
        "totalCashIn": 0.0,
        "totalChequeIn": 0.0,
        "totalBankTransferIn": 0.0,
        "totalExpenses": 0.0,
        "totalRefundsPaidOut": 0.0,
        "netCashInHand": 0.0,
    }


def test_daily_count_matches_drawer(db_session, make_sale, make_return, make_expense):
    make_sale(total_amount=1500, paid_amount_cash=1500)
    sale = make_sale(total_amount=500, paid_amount_cash=200, paid_amount_cheque=300)
    make_return(sale, cash_paid_out=200)
    make_expense(300)

    summary = reconcile("S1", DAY)

    assert summary.total_transactions == 2
    assert summary.gross_sales_value_cents == 200000
    assert summary.total_cash_in_cents == 170000
    assert summary.total_cheque_in_cents == 30000
    assert summary.total_refunds_paid_out_cents == 20000
    assert summary.total_expenses_cents == 30000
    assert summary.to_dict()["netCashInHand"] == 1200.0


def test_net_cash_example_from_the_drawer_sheet(db_session, make_sale, make_return, make_expense):
    sale = make_sale(total_amount=2000, paid_amount_cash=2000)
    make_return(sale, cash_paid_out=500)
    make_expense(500)

    summary = reconcile("S1", DAY)

    assert summary.net_cash_in_hand_cents == 100000


def test_settlement_cash_feeds_net_cash_in_hand(db_session, make_sale, make_return, make_expense):
    sale = make_sale(customer_id="C1", total_amount=1200, paid_amount_cash=1000, credit_used=200)
    sales_service.record_additional_payment(sale.id, 200, "Cash", "S1", paid_at=datetime(2024, 5, 1, 17, 0))
    make_return(sale, cash_paid_out=150)
    make_expense(50)

    summary = reconcile("S1", DAY)

    assert summary.total_transactions == 1
    assert summary.gross_sales_value_cents == 120000
    assert summary.total_cash_in_cents == 120000
    assert summary.total_refunds_paid_out_cents == 15000
    assert summary.total_expenses_cents == 5000
    assert summary.net_cash_in_hand_cents == 100000
    assert summary.to_dict()["netCashInHand"] == 1000.0


def test_additional_payment_counts_for_collector_on_payment_day(db_session, make_sale):
    sale = make_sale(
        staff_id="S2",
        customer_id="C1",
        total_amount=1000,
        credit_used=1000,
        sale_date=datetime(2024, 4, 26, 10, 0),
    )
    sales_service.record_additional_payment(sale.id, 400, "Cash", "S1", paid_at=datetime(2024, 5, 1, 15, 0))
    sales_service.record_additional_payment(sale.id, 100, "BankTransfer", "S1", paid_at=datetime(2024, 5, 1, 16, 0))

    collector = reconcile("S1", DAY)
    assert collector.total_transactions == 0
    assert collector.gross_sales_value_cents == 0
    assert collector.total_cash_in_cents == 40000
    assert collector.total_bank_transfer_in_cents == 10000

    original_cashier = reconcile("S2", date(2024, 4, 26))
    assert original_cashier.total_transactions == 1
    assert original_cashier.total_cash_in_cents == 0
    assert reconcile("S2", DAY).total_cash_in_cents == 0


def test_other_staff_and_other_days_are_excluded(db_session, make_sale, make_expense):
    make_sale(staff_id="S2", total_amount=100, paid_amount_cash=100)
    make_sale(total_amount=100, paid_amount_cash=100, sale_date=datetime(2024, 4, 30, 23, 59, 59))
    make_sale(total_amount=100, paid_amount_cash=100, sale_date=datetime(2024, 5, 2, 0, 0))
    make_expense(20, staff_id="S2")

    summary = reconcile("S1", DAY)

    assert summary.total_transactions == 0
    assert summary.total_cash_in_cents == 0
    assert summary.total_expenses_cents == 0


def test_day_boundaries_are_inclusive(db_session, make_sale):
    make_sale(total_amount=1, paid_amount_cash=1, sale_date=datetime(2024, 5, 1, 0, 0, 0))
    make_sale(total_amount=2, paid_amount_cash=2, sale_date=datetime(2024, 5, 1, 23, 59, 59, 999999))

    summary = reconcile("S1", DAY)

    assert summary.total_transactions == 2
    assert summary.total_cash_in_cents == 300


def test_direct_refund_payout_lowers_cash_in_hand(db_session, make_sale, make_return):
    sale = make_sale(staff_id="S2", customer_id="C1", total_amount=100, sale_date=datetime(2024, 4, 1, 9, 0))
    make_return(sale, staff_id="S2", refund_amount=100, return_date=datetime(2024, 4, 1, 10, 0))

    process_direct_refund("C1", "Alice", 60, "S1", now=datetime(2024, 5, 1, 14, 0))

    summary = reconcile("S1", DAY)
    assert summary.total_refunds_paid_out_cents == 6000
    assert summary.net_cash_in_hand_cents == -6000


def test_negative_net_cash_is_reported(db_session, make_expense):
    make_expense(75)

    assert reconcile("S1", DAY).to_dict()["netCashInHand"] == -75.0


def test_day_window_follows_business_timezone(app, db_session, make_sale, monkeypatch):
    monkeypatch.setitem(app.config, "TILLBOOK_TIMEZONE", "Asia/Colombo")

    # 2024-05-01 in Colombo runs from 2024-04-30 18:30 to 2024-05-01 18:29:59.999999 UTC
    make_sale(total_amount=10, paid_amount_cash=10, sale_date=datetime(2024, 4, 30, 19, 0))
    make_sale(total_amount=20, paid_amount_cash=20, sale_date=datetime(2024, 5, 1, 19, 0))

    summary = reconcile("S1", DAY)

    assert summary.total_transactions == 1
    assert summary.total_cash_in_cents == 1000


def test_future_dates_are_rejected(db_session):
    with pytest.raises(ReconciliationError):
        reconcile("S1", date(2024, 5, 2), today=DAY)


def test_dates_before_2000_are_rejected(db_session):
    with pytest.raises(ReconciliationError):
        reconcile("S1", date(1999, 12, 31))


@pytest.mark.parametrize("staff_id", [None, "", "  "])
def test_staff_id_is_required(db_session, staff_id):
    with pytest.raises(ReconciliationError):
        reconcile(staff_id, DAY)


def test_day_defaults_to_today(db_session, make_sale):
    make_sale(total_amount=10, paid_amount_cash=10, sale_date=datetime(2024, 5, 1, 8, 0))

    summary = reconcile("S1", today=DAY)

    assert summary.report_date == DAY
    assert summary.total_transactions == 1
