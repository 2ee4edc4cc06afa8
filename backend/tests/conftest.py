"""
Pytest fixtures for Gestion360 backend tests.

Every test gets a fresh app on an in-memory SQLite ledger with the
replicated store already subscribed, plus helpers for seeding documents
and opening client sessions.
"""

import pytest

from gestion360 import create_app
from gestion360.extensions import db, get_ledger, get_store, get_engine, get_sessions
from gestion360.models import COLLECTION_USERS, COLLECTION_PRODUCTS, COLLECTION_CUSTOMERS
from gestion360.services.session_service import SessionGate


ADMIN_PIN = "1234"
CASHIER_PIN = "5678"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'LEDGER_POLL_ON_REQUEST': True,
    })

    with app.app_context():
        db.create_all()
        get_store().start()
        yield app
        get_store().stop()
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def ledger(app):
    return get_ledger()


@pytest.fixture(scope='function')
def store(app):
    return get_store()


@pytest.fixture(scope='function')
def engine(app):
    return get_engine()


@pytest.fixture(scope='function')
def sessions(app):
    return get_sessions()


@pytest.fixture(scope='function')
def gate(store):
    """A single client's session, outside the HTTP layer."""
    gate = SessionGate(store)
    yield gate
    gate.close()


@pytest.fixture(scope='function')
def product_p1(store):
    """Taza, 10 in stock."""
    store.upsert_by_id(COLLECTION_PRODUCTS, "p1", {"name": "Taza", "price": 500, "stock": 10})
    return "p1"


@pytest.fixture(scope='function')
def customer_c1(store):
    """Ana, no debt."""
    store.upsert_by_id(COLLECTION_CUSTOMERS, "c1", {"name": "Ana", "debt": 0})
    return "c1"


@pytest.fixture(scope='function')
def admin_session(gate):
    """Bootstrap the first admin and leave them logged in."""
    assert gate.bootstrap("Ana", ADMIN_PIN)
    return gate.current_user


@pytest.fixture(scope='function')
def cashier(store):
    """Staff account that may sell and manage customers, nothing else."""
    store.upsert_by_id(COLLECTION_USERS, "caja1", {
        "name": "Luis",
        "pin": CASHIER_PIN,
        "role": "staff",
        "permissions": {"sales": True, "customers": True},
    })
    return "caja1"


def login(client, pin: str):
    """Helper to log the terminal in through the API."""
    return client.post('/api/session/login', json={'pin': pin})


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client):
    """Bootstrap the first admin through the API and return their headers."""
    resp = client.post('/api/session/bootstrap', json={'name': 'Ana', 'pin': ADMIN_PIN})
    assert resp.status_code == 201
    return auth_headers(resp.json['token'])


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    resp = login(client, CASHIER_PIN)
    assert resp.status_code == 200
    return auth_headers(resp.json['token'])
