"""
Pytest fixtures for saleflow backend tests.

Provides an app bound to a temporary SQLite file (event handlers run on
worker threads, so an in-memory database would not be shared), a wiped
database per test, and tenant/catalog/stock fixtures.
"""

import threading

import pytest
from saleflow import create_app
from saleflow.events import get_dispatcher
from saleflow.extensions import db
from saleflow.models import Customer, Product, Tenant
from saleflow.services import stock_ledger


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("db") / "saleflow-test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SALES_TAX_RATE': 0.0,
        'LOYALTY_CENTS_PER_POINT': 100,
    })

    with app.app_context():
        db.create_all()
        yield app
        get_dispatcher(app).shutdown()
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def dispatcher(app):
    return get_dispatcher(app)


@pytest.fixture(scope='function')
def db_session(app, dispatcher):
    """Create fresh database for each test."""
    dispatcher.wait_for_idle(timeout=10)
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Let in-flight handlers finish before the next test wipes tables
        dispatcher.wait_for_idle(timeout=10)
        db.session.rollback()


@pytest.fixture(scope='function')
def drain(dispatcher, db_session):
    """Wait for event handlers, then drop cached rows so reads see their writes."""
    def _drain():
        assert dispatcher.wait_for_idle(timeout=10)
        db_session.expire_all()
    return _drain


class EventRecorder:
    """Subscriber that remembers what it received (thread-safe)."""

    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, event):
        with self._lock:
            self.events.append(event)


@pytest.fixture(scope='function')
def recorder(dispatcher):
    """Subscribe an EventRecorder for the duration of one test."""
    subscribed = []
    rec = EventRecorder()

    def _subscribe(event_type):
        dispatcher.subscribe(event_type, rec)
        subscribed.append(event_type)
        return rec

    yield _subscribe

    for event_type in subscribed:
        dispatcher.unsubscribe(event_type, rec)


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Create Tenant A."""
    tenant = Tenant(name="Tenant A - Corner Shop", code="CORNER", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B."""
    tenant = Tenant(name="Tenant B - Market Hall", code="MARKET", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


def make_product(db_session, tenant, *, sku, name, price_cents, stock=None, is_active=True):
    """Helper to create a product, optionally stocked at the main location."""
    product = Product(
        tenant_id=tenant.id,
        sku=sku,
        name=name,
        selling_price_cents=price_cents,
        cost_price_cents=price_cents // 2,
        is_active=is_active,
    )
    db_session.add(product)
    db_session.commit()
    if stock is not None:
        stock_ledger.set_absolute(product.id, tenant.id, None, stock, reference="test-seed")
    return product


@pytest.fixture(scope='function')
def product_a(db_session, tenant_a):
    """Product priced at 100 cents with 10 in stock."""
    return make_product(db_session, tenant_a, sku="A-001", name="Product A", price_cents=100, stock=10)


@pytest.fixture(scope='function')
def product_b(db_session, tenant_a):
    """Product priced at 50 cents with 10 in stock."""
    return make_product(db_session, tenant_a, sku="B-001", name="Product B", price_cents=50, stock=10)


@pytest.fixture(scope='function')
def customer_a(db_session, tenant_a):
    customer = Customer(tenant_id=tenant_a.id, name="Pat Doe", email="pat@example.com")
    db_session.add(customer)
    db_session.commit()
    return customer
