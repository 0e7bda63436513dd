"""
Pytest fixtures for shopkeep backend tests.

Provides the in-memory app, a fresh database per test, users for each role
with bearer headers, and a small catalogue of parties, customers and items.
"""

import pytest

from shopkeep import create_app
from shopkeep.config import Settings
from shopkeep.extensions import db
from shopkeep.models import InventoryItem, Party, Customer
from shopkeep.services.auth_service import create_user
from shopkeep.services import inventory_service


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    settings = Settings(
        database_url='sqlite:///:memory:',
        testing=True,
        bcrypt_rounds=4,
        auto_create_schema=False,
    )
    app = create_app(settings)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def client(app, db_session):
    """Create test client."""
    return app.test_client()


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin", "admin@shop.local", TEST_PASSWORD, role="admin")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return create_user("manager", "manager@shop.local", TEST_PASSWORD, role="manager")


@pytest.fixture(scope='function')
def sales_user(db_session):
    return create_user("sales", "sales@shop.local", TEST_PASSWORD, role="sales")


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin"))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, "manager"))


@pytest.fixture(scope='function')
def sales_headers(client, sales_user):
    return auth_headers(get_auth_token(client, "sales"))


@pytest.fixture(scope='function')
def debtor(db_session):
    """Trade buyer with a zero balance."""
    party = Party(
        party_name="Ravi Cycles",
        party_type="debtor",
        phone_number="9800000001",
        state="Karnataka",
        city="Mysuru",
        address="12 Market Road",
        balance_cents=0,
    )
    db_session.add(party)
    db_session.commit()
    return party


@pytest.fixture(scope='function')
def creditor(db_session):
    """Supplier with a zero balance."""
    party = Party(
        party_name="Hero Parts Wholesale",
        party_type="creditor",
        phone_number="9800000002",
        state="Punjab",
        city="Ludhiana",
        gst_number="03ABCDE1234F1Z5",
        address="Industrial Area Phase 2",
        balance_cents=0,
    )
    db_session.add(party)
    db_session.commit()
    return party


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(customer_name="Asha Rao", phone="9900000003", email="asha@example.com")
    db_session.add(c)
    db_session.commit()
    return c


def _create_item(name: str, quantity: int, category: str = "bicycle") -> InventoryItem:
    # Goes through the service so the opening stock has a history row
    return inventory_service.create_item({
        "item_name": name,
        "category": category,
        "unit_type": "piece",
        "quantity_available": quantity,
        "purchase_price_cents": 7000,
        "selling_price_cents": 10000,
    })


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: make_item(name, quantity, category='bicycle')."""
    return _create_item


@pytest.fixture(scope='function')
def bicycle(db_session):
    """Item X: 10 in stock."""
    return _create_item("Roadster 26", 10)


@pytest.fixture(scope='function')
def tube(db_session):
    return _create_item("Tube 26x1.5", 50, category="spare_part")


def _invoice_payload(invoice_type, party_id, item_id, *, quantity, price, number, **extra) -> dict:
    payload = {
        "invoice_number": number,
        "invoice_date": "2026-03-01",
        "party_id": party_id,
        "invoice_type": invoice_type,
        "items": [{"item_id": item_id, "quantity": quantity, "price_per_unit": price}],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def sale_payload():
    """Factory for a one-line sale invoice body (3 x 100 by default)."""
    def build(party_id, item_id, quantity=3, price=100, number="INV-1001", **extra):
        return _invoice_payload("sale", party_id, item_id, quantity=quantity, price=price, number=number, **extra)
    return build


@pytest.fixture
def purchase_payload():
    """Factory for a one-line purchase invoice body (5 x 70 by default)."""
    def build(party_id, item_id, quantity=5, price=70, number="PUR-2001", **extra):
        return _invoice_payload("purchase", party_id, item_id, quantity=quantity, price=price, number=number, **extra)
    return build
