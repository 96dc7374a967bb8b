"""Shared pytest fixtures.

Each test gets a fresh in-memory SQLite database. ``StaticPool`` keeps a
single connection so the schema survives across sessions and threads.
"""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.utils import create_access_token
from app.cache import get_query_cache
from app.db.database import get_db
from app.db.models import Base, User
from app.imports.router import _import_sessions
from app.main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Database session bound to the test engine."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _reset_state():
    """Clear module-level import sessions and cached queries between tests."""
    _import_sessions.clear()
    get_query_cache().clear()
    yield
    _import_sessions.clear()
    get_query_cache().clear()


@pytest.fixture
def client(db):
    """Test client with the database dependency overridden."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(db, email: str) -> User:
    user = User(id=str(uuid4()), email=email, full_name="Test Operator", is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_user(db):
    """An active account."""
    return _make_user(db, "operator@example.com")


@pytest.fixture
def other_user(db):
    """A second account, for ownership isolation checks."""
    return _make_user(db, "other@example.com")


@pytest.fixture
def authenticated_client(client, test_user):
    """Test client carrying an access token cookie for ``test_user``."""
    token = create_access_token(test_user.id, test_user.email)
    client.cookies.set("access_token", token)
    return client
