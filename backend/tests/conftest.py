"""Pytest configuration and fixtures for the Ledgerline API tests."""
import base64

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_current_user
from app.db import models  # noqa: F401
from app.db.base import Base
from app.db.session import configure_sqlite, get_db
from app.main import app
from app.services.identity import AuthenticatedUser

TEST_USER = AuthenticatedUser(user_id="user-1", email="user@example.com")
OTHER_USER = AuthenticatedUser(user_id="user-2", email="other@example.com")


@pytest.fixture
def engine():
    """In-memory SQLite database shared by every session of one test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Session for service-level tests that do not go through the API."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def auth_state():
    """Mutable holder for the user the API treats as authenticated."""
    return {"user": TEST_USER}


@pytest.fixture
def client(session_factory, auth_state):
    """Test client with the database and the current user overridden."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: auth_state["user"]
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def encode_csv():
    """Turn CSV text into the base64 payload the JSON import endpoint expects."""

    def _encode(text: str) -> str:
        return base64.b64encode(text.encode("utf-8")).decode("ascii")

    return _encode


@pytest.fixture
def import_csv(client, encode_csv):
    """Post CSV text with a mapping to the JSON import endpoint."""

    def _import(text: str, mapping: dict):
        return client.post(
            "/api/imports/csv",
            json={"file": encode_csv(text), "mapping": mapping},
        )

    return _import


@pytest.fixture
def sample_csv_content():
    """Sample CSV content for testing."""
    return """Date,Description,Amount,Category
2024-01-01,Grocery Store,50.00,grocery
2024-01-02,Salary,-2000.00,Salary
2024-01-03,Restaurant,25.00,Dining"""


@pytest.fixture
def default_mapping():
    return {
        "amountField": "Amount",
        "dateField": "Date",
        "categoryField": "Category",
        "noteField": "Description",
    }


@pytest.fixture
def other_user():
    return OTHER_USER
