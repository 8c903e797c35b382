"""
Pytest fixtures for stockbook backend tests.

Provides test database setup, product/stock fixtures, and test client.
"""

from decimal import Decimal

import pytest
from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Product, StockEntry
from stockbook.time_utils import business_day


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def wheat(db_session):
    """Create the Wheat product (code WHT)."""
    product = Product(name="Wheat", code="WHT")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def rice(db_session):
    """Create the Rice product (code RCE)."""
    product = Product(name="Rice", code="RCE")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def wheat_stock(db_session, wheat):
    """100 kg of Wheat declared for 2024-01-01."""
    entry = StockEntry(
        product_id=wheat.id,
        date=business_day("2024-01-01"),
        total_stock=Decimal("100"),
        remain_stock=Decimal("100"),
    )
    db_session.add(entry)
    db_session.commit()
    return entry
