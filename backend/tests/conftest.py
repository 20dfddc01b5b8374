"""
Pytest fixtures for StockSeguro backend tests.

Provides an in-memory database, a logged-in worker and a product factory.
"""

import pytest

from stockseguro import create_app
from stockseguro.extensions import db
from stockseguro.models import Product
from stockseguro.services.auth_service import create_worker


TEST_PIN = "4321"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEMO_SEED_ENABLED': False,
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
def worker(db_session):
    """Active cashier with a known PIN."""
    return create_worker(
        rut="11.111.111-1",
        name="Test Cashier",
        email="cashier@test.com",
        pin=TEST_PIN,
    )


@pytest.fixture(scope='function')
def other_worker(db_session):
    return create_worker(
        rut="22.222.222-2",
        name="Second Cashier",
        email="second@test.com",
        pin="9876",
    )


@pytest.fixture(scope='function')
def product_factory(db_session):
    """Insert products directly; stock set here bypasses the movement log."""
    counter = {"n": 0}

    def _make(product_id=None, *, unit_price_cents=1000, stock=10, min_stock=2,
              name=None, category="Cervezas", is_active=True, barcode=None):
        counter["n"] += 1
        product_id = product_id or f"P{counter['n']:03d}"
        product = Product(
            id=product_id,
            barcode=barcode or f"BC-{product_id}",
            name=name or f"Product {product_id}",
            category=category,
            unit_price_cents=unit_price_cents,
            box_price_cents=0,
            stock=stock,
            min_stock=min_stock,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


def get_auth_token(client, email: str, pin: str) -> str:
    """Helper to get auth token for a worker."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'pin': pin,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


@pytest.fixture(scope='function')
def auth_headers(client, worker):
    token = get_auth_token(client, worker.email, TEST_PIN)
    assert token, "login failed for the test worker"
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def worker_pin():
    return TEST_PIN
