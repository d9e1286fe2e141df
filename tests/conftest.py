import pytest
from datetime import datetime, timedelta
from decimal import Decimal
import os
import tempfile
import uuid

# Throwaway SQLite database for this test run (unless one is provided)
_DB_FILE = os.path.join(tempfile.gettempdir(), f'clearvue_test_{uuid.uuid4().hex[:8]}.sqlite3')
os.environ.setdefault('TEST_DATABASE_URL', f'sqlite:///{_DB_FILE}')

from clearvue import create_app
from clearvue.database import Base, get_session, create_all, drop_all
from clearvue.models import Product, Customer, Sale, SaleLine, Payment
from clearvue.services.pricing_service import calculate_pricing

# Fixed reference instant for time-window tests
NOW = datetime(2026, 6, 15, 12, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    with app.app_context():
        create_all()
    yield app
    with app.app_context():
        drop_all()
    if os.path.exists(_DB_FILE):
        os.remove(_DB_FILE)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session inside an app context; every table is emptied afterwards."""
    with app.app_context():
        session = get_session()
        yield session
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.remove()


@pytest.fixture(scope='function')
def make_product(session):
    """Factory for catalog products."""
    def _make(name=None, price='100.00', stock=50, category='General', brand='Acme'):
        suffix = str(uuid.uuid4())[:8]
        product = Product(
            sku=f'SKU-{suffix}',
            name=name or f'Product {suffix}',
            category=category,
            brand=brand,
            price=Decimal(price),
            stock=stock,
        )
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_customer(session):
    """Factory for customers."""
    def _make(name='Test Customer'):
        suffix = str(uuid.uuid4())[:8]
        customer = Customer(name=name, email=f'customer-{suffix}@test.com')
        session.add(customer)
        session.commit()
        return customer
    return _make


@pytest.fixture(scope='function')
def make_sale(session):
    """
    Factory for historical sales written straight to the store.

    `lines` is a list of (product, qty) or (product, qty, unit_price) tuples;
    the catalog price is used when no unit price is given.
    """
    def _make(customer, lines, when=None, payment_status='completed', method='cash'):
        priced = calculate_pricing([
            {
                'product_id': line[0].id,
                'qty': line[1],
                'unit_price': line[2] if len(line) > 2 else line[0].price,
            }
            for line in lines
        ], tax_rate='0.15')
        when = when or NOW

        sale = Sale(
            customer_id=customer.id,
            subtotal=priced['subtotal'],
            tax=priced['tax'],
            discount=priced['discount'],
            line_discount=priced['line_discount'],
            total=priced['total'],
            datetime=when,
            status='completed',
        )
        for position, line in enumerate(priced['lines']):
            sale.lines.append(SaleLine(
                position=position,
                product_id=line['product_id'],
                qty=line['qty'],
                unit_price=line['unit_price'],
                line_total=line['line_total'],
                line_discount=line['line_discount'],
            ))
        session.add(sale)
        session.flush()
        session.add(Payment(
            sale_id=sale.id,
            amount=sale.total,
            method=method,
            status=payment_status,
            datetime=when,
        ))
        session.commit()
        return sale
    return _make


@pytest.fixture(scope='function')
def days_ago():
    """Datetime `n` days before the fixed test instant."""
    def _days_ago(n, **kwargs):
        return NOW - timedelta(days=n, **kwargs)
    return _days_ago


@pytest.fixture(scope='function')
def now():
    """Fixed reference instant for time-window tests."""
    return NOW
