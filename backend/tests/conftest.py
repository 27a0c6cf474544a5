"""
Pytest fixtures for Trackey backend tests.

Provides test database setup, two isolated tenants, users per role and
API auth helpers.
"""

import pytest
from trackey import create_app
from trackey.extensions import db
from trackey.models import Organization, Store, User
from trackey.services.auth_service import hash_password
from trackey.services.tenant_service import TenantContext


PASSWORD = "Password123"

# Valid 15-digit device identifiers for tests
IMEI_1 = "356789012345671"
IMEI_2 = "356789012345672"
IMEI_3 = "356789012345673"
IMEI_4 = "356789012345674"
IMEI_5 = "356789012345675"


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
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Ikeja Phones", code="IKEJA", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def org_b(db_session):
    """Create Organization B (second tenant)."""
    org = Organization(name="Org B - Lekki Gadgets", code="LEKKI", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def store_a(db_session, org_a):
    store = Store(org_id=org_a.id, name="Store A1", code="A1")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session, org_b):
    store = Store(org_id=org_b.id, name="Store B1", code="B1")
    db_session.add(store)
    db_session.commit()
    return store


def make_user(db_session, org, store, username, role) -> User:
    user = User(
        org_id=org.id,
        store_id=store.id,
        username=username,
        # Low bcrypt cost keeps the suite fast
        password_hash=hash_password(PASSWORD, rounds=4),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_a(db_session, org_a, store_a):
    return make_user(db_session, org_a, store_a, "admin_a", "admin")


@pytest.fixture(scope='function')
def clerk_a(db_session, org_a, store_a):
    return make_user(db_session, org_a, store_a, "clerk_a", "clerk")


@pytest.fixture(scope='function')
def admin_b(db_session, org_b, store_b):
    return make_user(db_session, org_b, store_b, "admin_b", "admin")


@pytest.fixture(scope='function')
def tenant_a(org_a, store_a):
    """Service-level tenant context for Store A."""
    return TenantContext(org_id=org_a.id, store_id=store_a.id)


@pytest.fixture(scope='function')
def tenant_b(org_b, store_b):
    return TenantContext(org_id=org_b.id, store_id=store_b.id)


def get_auth_token(client, org_code: str, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'org_code': org_code,
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
def admin_a_headers(client, admin_a, org_a):
    return auth_headers(get_auth_token(client, org_a.code, admin_a.username))


@pytest.fixture(scope='function')
def clerk_a_headers(client, clerk_a, org_a):
    return auth_headers(get_auth_token(client, org_a.code, clerk_a.username))


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b, org_b):
    return auth_headers(get_auth_token(client, org_b.code, admin_b.username))
