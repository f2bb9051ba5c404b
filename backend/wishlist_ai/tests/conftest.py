"""Pytest configuration for wishlist tests

WHAT: Provides shared fixtures for service-level and HTTP endpoint tests
WHY: Ensures consistent test setup, database isolation, and fake collaborators
REFERENCES:
    - wishlist_ai/main.py: FastAPI application factory
    - wishlist_ai/database.py: Database configuration
    - wishlist_ai/deps.py: Dependency injection
    - wishlist_ai/tests/helpers.py: Fake scoring client and fetcher
"""

import pytest
import os
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Ensure backend is in path
import sys
from pathlib import Path
BACKEND_ROOT = Path(__file__).resolve().parents[2]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Set test environment
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("OPENAI_API_KEY", "test-api-key")

from wishlist_ai.tests.helpers import (  # noqa: E402
    FakeOrderHistoryFetcher,
    FakeScoringClient,
    two_order_history,
)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine():
    """Create in-memory test database engine.

    StaticPool keeps one connection so the TestClient worker thread sees
    the same in-memory database as the test.
    """
    from wishlist_ai.database import Base, enable_sqlite_foreign_keys

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """Create test database session with rollback."""
    SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_db_engine
    )

    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Model Fixtures
# ============================================================================

@pytest.fixture
def test_store(test_db_session):
    """Create an installed test store."""
    from wishlist_ai.models import Store, StoreStatusEnum

    store = Store(
        shop="test-store.myshopify.com",
        access_token="shpat_test_token",
        status=StoreStatusEnum.installed,
    )

    test_db_session.add(store)
    test_db_session.commit()
    test_db_session.refresh(store)

    return store


# ============================================================================
# Collaborator Fixtures
# ============================================================================

@pytest.fixture
def scoring_client():
    """Fake scoring model replying "Score: 35%"."""
    return FakeScoringClient(reply="Score: 35%")


@pytest.fixture
def fetcher():
    """Fake fetcher returning customer C1's two-order history."""
    return FakeOrderHistoryFetcher(history=two_order_history())


@pytest.fixture
def scorer(scoring_client):
    from wishlist_ai.services.conversion_scoring import ConversionScorer

    return ConversionScorer(client=scoring_client, model="test-model", timeout=5.0)


@pytest.fixture
def wishlist_service(test_db_session, fetcher, scorer):
    from wishlist_ai.services.wishlist_service import WishlistService

    return WishlistService(db=test_db_session, fetcher=fetcher, scorer=scorer)


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def app(test_db_session, scoring_client, fetcher):
    """Create FastAPI test application with fake collaborators."""
    from wishlist_ai.main import create_app
    from wishlist_ai.database import get_db

    test_app = create_app(scoring_client=scoring_client)
    test_app.state.order_history_fetcher = fetcher

    def override_get_db():
        yield test_db_session

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Create TestClient for HTTP testing."""
    return TestClient(app)
