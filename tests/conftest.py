"""
Shared fixtures.

The environment is set before any application module is imported so that
``core.config.settings`` picks up a test key, a fast hash work factor and an
in-memory database.  Every test gets a fresh in-memory SQLite schema.
"""

import base64
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MASTER_ENCRYPTION_KEY"] = base64.b64encode(b"k" * 32).decode("ascii")
os.environ["PASSWORD_HASH_ROUNDS"] = "1000"
os.environ["SMTP_HOST"] = ""
os.environ["ALERT_EMAIL"] = ""
# TestClient connects as "testclient"; login_as() sets X-Forwarded-For
os.environ["TRUSTED_PROXIES"] = '["testclient"]'

import pytest                                       # noqa: E402
from fastapi.testclient import TestClient           # noqa: E402
from sqlalchemy import create_engine                # noqa: E402
from sqlalchemy.orm import sessionmaker             # noqa: E402
from sqlalchemy.pool import StaticPool              # noqa: E402

from auth import credentials                        # noqa: E402
from auth.router import get_notifier, get_resolver  # noqa: E402
from auth.service import AuthContext                # noqa: E402
from core.geolocation import LOCAL_NETWORK, LocationDescriptor  # noqa: E402
from database import get_db, init_db                # noqa: E402
from main import app                                # noqa: E402

PASSWORD = "Secret123"
ADMIN_PASSWORD = "Admin12345"


class FakeResolver:
    """Maps IPs to fixed location labels; anything else is the local network."""

    def __init__(self, locations=None):
        self.locations = dict(locations or {})
        self.calls = []

    def resolve(self, ip):
        self.calls.append(ip)
        if ip in self.locations:
            return LocationDescriptor(label=self.locations[ip])
        return LOCAL_NETWORK


class FakeNotifier:
    def __init__(self):
        self.alerts = []

    def notify_abnormal_login(self, username, ip, location, reason):
        self.alerts.append((username, ip, location, reason))


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def ctx(db, resolver, notifier):
    """Auth context whose background scheduler runs tasks immediately."""
    return AuthContext(
        db=db,
        resolver=resolver,
        notifier=notifier,
        schedule=lambda fn, *args, **kwargs: fn(*args, **kwargs),
    )


@pytest.fixture
def make_user(db):
    def _make(username="alice", role="user", password=PASSWORD, email=None, **fields):
        user = credentials.create_user(
            db,
            username,
            email or f"{username}@example.com",
            password,
            role=role,
            force_password_change=False,
        )
        for key, value in fields.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("root", role="admin", password=ADMIN_PASSWORD)


@pytest.fixture
def client(session_factory, resolver, notifier):
    """HTTP test client wired to the in-memory database and fakes."""

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def login_as(client, identifier, password, ip="10.0.0.8"):
    resp = client.post(
        "/auth/login",
        json={"identifier": identifier, "password": password},
        headers={"X-Forwarded-For": ip},
    )
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['session_id']}"}
