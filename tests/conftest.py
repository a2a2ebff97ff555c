"""Shared test fixtures for the HostPanel test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: admin, two owners, and one hosting account per lifecycle status
- reseller: MagicMock standing in for the reseller API client
- login: helper to log a test client in as a seeded user
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from werkzeug.security import generate_password_hash

from hostpanel import create_app
from hostpanel.extensions import db as _db
from hostpanel.models.hosting import HostingAccount
from hostpanel.models.user import User

PASSWORD = "correct-horse-1"


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after.

    The cached hosting config is dropped too so settings rows written by
    one test never leak into the next.
    """
    with app.app_context():
        app.extensions.pop("hosting_config", None)
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        app.extensions.pop("hosting_config", None)


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def reseller():
    """Reseller client double with happy-path defaults.

    Patched in as the factory result so both the service functions and
    the HTTP routes pick it up.
    """
    mock = MagicMock()
    mock.create_account.return_value = "mofh_12345678"
    mock.suspend_account.return_value = "Account suspended"
    mock.unsuspend_account.return_value = "Account unsuspended"
    mock.change_password.return_value = "Password changed"
    mock.get_user_domains.return_value = []
    with patch(
        "hostpanel.services.hosting_service.get_reseller_client", return_value=mock
    ):
        yield mock


@pytest.fixture(autouse=True)
def no_email():
    """Never start SMTP threads from tests."""
    with patch("hostpanel.services.email_service.send_email") as mock_send:
        yield mock_send


def make_account(owner, status, domain, vp_username, login_username, **fields):
    account = HostingAccount(
        user_id=owner.id,
        vp_username=vp_username,
        login_username=login_username,
        password="Secret12345",
        domain=domain,
        package="free_plan",
        status=status,
        **fields,
    )
    _db.session.add(account)
    return account


@pytest.fixture
def seed_data(app, db_session):
    """Seed users and one account per status.

    Returns a dict with all created objects for easy access in tests.
    """
    admin = User(
        email="admin@hostpanel.local",
        password_hash=generate_password_hash(PASSWORD),
        name="Root",
        is_admin=True,
    )
    owner = User(
        email="owner@example.com",
        password_hash=generate_password_hash(PASSWORD),
        name="Olive Owner",
    )
    other = User(
        email="other@example.com",
        password_hash=generate_password_hash(PASSWORD),
        name="Oscar Other",
    )
    _db.session.add_all([admin, owner, other])
    _db.session.flush()

    now = datetime.now(timezone.utc)
    active = make_account(
        owner, HostingAccount.ACTIVE, "alpha.hostprovider.net",
        "mofh_10000001", "alpha", activated_at=now, cpanel_approved=True,
        cpanel_approved_at=now,
    )
    pending = make_account(
        owner, HostingAccount.PENDING, "beta.hostprovider.net",
        "mofh_10000002", "beta",
    )
    suspended = make_account(
        other, HostingAccount.SUSPENDED, "gamma.freesite.dev",
        "mofh_10000003", "gamma", suspend_reason="Moving to a new host",
        suspended_at=now - timedelta(days=2), deactivated_at=now - timedelta(days=2),
    )
    _db.session.commit()

    return {
        "admin": admin,
        "owner": owner,
        "other": other,
        "active": active,
        "pending": pending,
        "suspended": suspended,
    }


@pytest.fixture
def login(client):
    """Log the test client in: login(user) or login("email@...")."""

    def _login(user):
        email = user if isinstance(user, str) else user.email
        resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return resp

    return _login


@pytest.fixture
def account_factory():
    """make_account(owner, status, domain, vp_username, login_username, **fields)."""
    return make_account
