"""
Pytest fixtures for GrocerPOS backend tests.

Provides an in-memory database app, per-test table cleanup, model builders
and an authenticated test client helper.
"""

from datetime import timedelta

import bcrypt
import pytest

from grocerpos import create_app
from grocerpos.extensions import db
from grocerpos.models import User, Product, ProductBatch, Customer, Supplier
from grocerpos.services import session_service
from grocerpos.time_utils import utcnow


TEST_PASSWORD = "Password123!"
# Low cost factor keeps fixtures fast; verify_password accepts any cost
TEST_PASSWORD_HASH = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SALE_RETRY_BACKOFF_SECONDS": 0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

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
        app.extensions["rate_limiter"].reset()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def make_user(db_session):
    def _make(username="cashier", role="CASHIER", is_active=True):
        user = User(
            username=username,
            name=username.title(),
            role=role,
            password_hash=TEST_PASSWORD_HASH,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(name="Milk 1L", selling_price_cents=1000, tax_rate_bps=1000, barcode=None, min_stock_level=0):
        product = Product(
            name=name,
            barcode=barcode,
            selling_price_cents=selling_price_cents,
            cost_price_cents=0,
            tax_rate_bps=tax_rate_bps,
            min_stock_level=min_stock_level,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_batch(db_session):
    def _make(product, quantity, purchase_price_cents=600, expires_in_days=None, batch_number=None, is_expired=False):
        expiration_date = None
        if expires_in_days is not None:
            expiration_date = utcnow() + timedelta(days=expires_in_days)
        count = db_session.query(ProductBatch).filter_by(product_id=product.id).count()
        batch = ProductBatch(
            product_id=product.id,
            batch_number=batch_number or f"B{count + 1:03d}",
            quantity=quantity,
            purchase_price_cents=purchase_price_cents,
            expiration_date=expiration_date,
            is_expired=is_expired,
        )
        db_session.add(batch)
        db_session.commit()
        return batch
    return _make


@pytest.fixture
def make_customer(db_session):
    def _make(name="Asha Patel"):
        customer = Customer(name=name, phone="555-0100")
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture
def make_supplier(db_session):
    def _make(name="FreshFarm Distributors"):
        supplier = Supplier(name=name, contact_person="Ravi")
        db_session.add(supplier)
        db_session.commit()
        return supplier
    return _make


@pytest.fixture
def auth_headers(make_user):
    """Return Authorization headers for a freshly created user with the given role."""
    def _headers(role="CASHIER", username=None):
        user = make_user(username=username or role.lower(), role=role)
        _, token = session_service.create_session(user.id)
        return {"Authorization": f"Bearer {token}"}
    return _headers
