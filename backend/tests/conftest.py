"""
Pytest fixtures for Tillbook backend tests.

Provides the application over in-memory SQLite, a per-test clean database,
a test client, and small builders for sales, returns and expenses.
"""

from datetime import datetime

import pytest
from tillbook import create_app
from tillbook.extensions import db
from tillbook.services import expense_service, return_service, sales_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TILLBOOK_TIMEZONE': 'UTC',
        'SEQUENCE_RETRY_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_sale(db_session):
    """Record a sale; amounts are JSON-style numbers."""
    def _make(staff_id="S1", sale_date=datetime(2024, 5, 1, 10, 0), **kwargs):
        kwargs.setdefault("total_amount", 0)
        return sales_service.create_sale(staff_id=staff_id, sale_date=sale_date, **kwargs)
    return _make


@pytest.fixture(scope='function')
def make_return(db_session):
    """Record a return against an existing sale."""
    def _make(sale, staff_id="S1", refund_amount=0, return_date=datetime(2024, 5, 1, 11, 0), **kwargs):
        return return_service.record_return(
            original_sale_id=sale.id,
            staff_id=staff_id,
            refund_amount=refund_amount,
            return_date=return_date,
            **kwargs,
        )
    return _make


@pytest.fixture(scope='function')
def make_expense(db_session):
    def _make(amount, staff_id="S1", expense_date=datetime(2024, 5, 1, 12, 0), category="Supplies"):
        return expense_service.create_expense(
            amount=amount,
            staff_id=staff_id,
            category=category,
            expense_date=expense_date,
        )
    return _make
