"""
Pytest fixtures shared across all test modules.
Uses an in-memory SQLite database with StaticPool so all connections
share a single in-memory DB, and a fake completion client so no test
talks to the real model API.
"""

import os

# Set env vars BEFORE any huddle module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-chars-long!!"
os.environ["ALGORITHM"] = "HS256"
os.environ["REDIS_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import huddle modules AFTER env vars are set
from huddle.database import Base, get_db  # noqa: E402
from huddle.gateway.changefeed import ChangeBus  # noqa: E402
from huddle.gateway.query import PersistenceGateway  # noqa: E402
from huddle.main import app  # noqa: E402
from huddle.services import identity  # noqa: E402
from huddle.services.completion import get_completion_client  # noqa: E402

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeCompletionClient:
    """Stands in for CompletionClient; records every call."""

    def __init__(self, reply: str = "Neutral", configured: bool = True, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self._configured = configured
        self.calls: list[dict] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def complete(self, **kwargs) -> str:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def changes():
    """A private bus so unit tests never leak listeners into the app's bus."""
    return ChangeBus()


@pytest.fixture()
def gateway(db, changes):
    return PersistenceGateway(db, changes)


@pytest.fixture()
def completion():
    return FakeCompletionClient()


@pytest.fixture()
def client(db, completion):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_completion_client] = lambda: completion
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def sign_up(client: TestClient, username="testuser", email="test@example.com", password="Password1!"):
    return client.post("/api/auth/signup", json={"username": username, "email": email, "password": password})


def auth_headers(client: TestClient, username="testuser", email="test@example.com", password="Password1!"):
    resp = sign_up(client, username=username, email=email, password=password)
    assert resp.status_code == 200, f"Sign-up failed: {resp.json()}"
    token = resp.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def make_user(gateway: PersistenceGateway, username="alice", email=None, password="secret123"):
    """Sign a user up directly through the identity service."""
    return identity.sign_up(gateway, email or f"{username}@example.com", password, username).profile
