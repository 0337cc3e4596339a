"""
Pytest configuration and shared fixtures for the Finance Tracker tests.

Provides:
    - In-memory SQLite database and account store
    - User/transaction/goal factories
    - FastAPI TestClient wired to the test database
"""

import pytest
import sys
from pathlib import Path
from datetime import date
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import init_db, get_db  # noqa: E402
from models import User, Transaction, Goal  # noqa: E402
from services.account_store import AccountStore  # noqa: E402
from services.product_catalog import load_catalog  # noqa: E402
from services.query_generator import QueryGenerator, QueryResult  # noqa: E402
from services.observability import metrics  # noqa: E402


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return AccountStore(db)


# =============================================================================
# Entity Factories
# =============================================================================

@pytest.fixture
def make_user(store):
    """Create a user with an unhashed placeholder password."""
    def _make(email="alice@example.com"):
        return store.save(User(email=email, password="not-a-real-hash"))
    return _make


@pytest.fixture
def make_transaction(store):
    def _make(user, amount=10.0, type="expense", category="Food", **kwargs):
        kwargs.setdefault("title", "Lunch")
        kwargs.setdefault("account", "checking")
        kwargs.setdefault("date", date(2024, 1, 15))
        return store.save(Transaction(
            user_id=user.id, amount=amount, type=type, category=category, **kwargs
        ))
    return _make


@pytest.fixture
def make_goal(store):
    def _make(user, text="Save for travel", completed=False, **kwargs):
        kwargs.setdefault("created_at", date(2024, 1, 1))
        return store.save(Goal(
            user_id=user.id, text=text, completed=completed,
            completed_at=date(2024, 2, 1) if completed else None, **kwargs
        ))
    return _make


class MockTransaction:
    """Plain object with the attributes the analyzer reads."""

    def __init__(self, type, category, amount):
        self.type = type
        self.category = category
        self.amount = amount


@pytest.fixture
def catalog():
    return load_catalog()


# =============================================================================
# Query Generator Fixtures
# =============================================================================

@pytest.fixture
def mock_query_generator():
    """Query generator that always answers with fixed LLM keywords."""
    generator = MagicMock()
    generator.is_configured = True
    generator.generate = AsyncMock(return_value=QueryResult(query="meal prep", source="llm"))
    return generator


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def client(session_factory, catalog):
    """TestClient bound to the in-memory database, with the LLM disabled."""
    from fastapi.testclient import TestClient
    from main import app, get_query_generator, login_rate_limiter, recommendation_rate_limiter

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_query_generator] = lambda: QueryGenerator(api_key="")
    app.state.catalog = catalog
    login_rate_limiter.reset()
    recommendation_rate_limiter.reset()
    metrics.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """Register + log in a user and return its bearer header."""
    def _headers(email="alice@example.com", password="s3cret-pass"):
        client.post("/api/auth/register", json={"email": email, "password": password})
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _headers
