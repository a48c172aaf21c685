"""Pytest configuration and fixtures."""

import os

# Settings are read when marketplace modules import, so configure them first.
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("EMAIL_DELIVERY", None)

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from marketplace.api.dependencies import get_email_dispatcher  # noqa: E402
from marketplace.database import Base, get_db, init_db  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.services.auth_service import AuthService  # noqa: E402
from marketplace.services.errors import DispatchError  # noqa: E402
from marketplace.services.tokens import TokenIssuer  # noqa: E402
from marketplace.services.user_store import UserStore  # noqa: E402

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

VALID_PASSWORD = "Abcdef1!"


class RecordingDispatcher:
    """Email dispatcher that records messages instead of sending them."""

    def __init__(self):
        self.verifications: list[tuple[str, str, str]] = []
        self.resets: list[tuple[str, str]] = []
        self.fail = False

    def send_verification_email(self, address: str, display_name: str, token: str) -> None:
        if self.fail:
            raise DispatchError("SMTP server unavailable")
        self.verifications.append((address, display_name, token))

    def send_password_reset_email(self, address: str, token: str) -> None:
        if self.fail:
            raise DispatchError("SMTP server unavailable")
        self.resets.append((address, token))

    def close(self) -> None:
        pass

    @property
    def last_verification_token(self) -> str:
        return self.verifications[-1][2]

    @property
    def last_reset_token(self) -> str:
        return self.resets[-1][1]


class FrozenClock:
    """Controllable clock for expiry tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    init_db()
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def other_db(db):
    """Second session on the test database, standing in for a concurrent request."""
    session = TestingSessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def outbox():
    """Recording email dispatcher."""
    return RecordingDispatcher()


@pytest.fixture(scope="function")
def client(db, outbox):
    """Create a test client with database and email overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_dispatcher] = lambda: outbox
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def auth_service(db, outbox, clock):
    """Auth workflow wired to the test database and a frozen clock."""
    return AuthService(UserStore(db), outbox, issuer=TokenIssuer(clock=clock), clock=clock)


@pytest.fixture
def registered_user(client, outbox):
    """Register an unverified user and return its credentials and token."""
    response = client.post(
        "/api/auth/register",
        json={"email": "a@x.com", "username": "alice", "password": VALID_PASSWORD},
    )
    assert response.status_code == 201
    return {
        "id": response.json()["user"]["id"],
        "email": "a@x.com",
        "username": "alice",
        "password": VALID_PASSWORD,
        "verification_token": outbox.last_verification_token,
    }


@pytest.fixture
def verified_user(client, registered_user):
    """Register and verify a user."""
    response = client.get(f"/api/auth/verify-email/{registered_user['verification_token']}")
    assert response.status_code == 200
    return registered_user


@pytest.fixture
def auth_headers(client, verified_user):
    """Log in the verified user and return bearer auth headers."""
    response = client.post(
        "/api/auth/login",
        json={"email": verified_user["email"], "password": verified_user["password"]},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
