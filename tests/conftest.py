# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set test environment before importing app
os.environ["AGENCYDESK_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AGENCYDESK_RATE_REFRESH_ENABLED"] = "false"
os.environ.pop("AGENCYDESK_CURRENCYLAYER_API_KEY", None)

from agencydesk.api.deps import get_rate_provider
from agencydesk.main import app
from agencydesk.models.base import Base
from agencydesk.services.rate_provider import RateProvider
from agencydesk.services.rate_store import InMemoryKeyValueStore

# Test database setup
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

RATES_URL = "https://api.currencylayer.com/live"


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def memory_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def rate_provider(memory_store) -> RateProvider:
    """Provider with a test key, talking to the (mocked) live endpoint."""
    return RateProvider(
        memory_store,
        api_key="test-key",
        base_currency="EUR",
        currencies=["USD", "EUR", "RON", "GBP"],
    )


@pytest.fixture(scope="function")
def client(rate_provider):
    """Create a test client with the rate provider overridden."""
    app.dependency_overrides[get_rate_provider] = lambda: rate_provider
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def live_payload():
    """Factory for a successful currencylayer response with EUR as source."""

    def make(usd: float = 1.1, ron: float = 5.0, gbp: float = 0.8) -> dict:
        return {
            "success": True,
            "timestamp": 1718000000,
            "source": "EUR",
            "quotes": {"EURUSD": usd, "EURRON": ron, "EURGBP": gbp},
        }

    return make
