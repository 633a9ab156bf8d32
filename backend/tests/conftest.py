"""
Pytest configuration for backend tests.

This file configures pytest for the backend test suite: import path, custom
markers and shared fixtures (in-memory database, preference store and a
Shikimori service wired to them).
"""

import sys
from pathlib import Path

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path for 'backend.mangatrack' imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from backend.mangatrack.models import Base  # noqa: E402
from backend.mangatrack.schemas.shikimori import OAuth  # noqa: E402
from backend.mangatrack.services.preferences import TrackPreferences  # noqa: E402
from backend.mangatrack.adapters.shikimori_adapter import Shikimori  # noqa: E402


BASE_URL = "https://shikimori.one"


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    yield factory

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    """Database session for tests that persist rows directly."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def preferences(session_factory):
    return TrackPreferences(session_factory)


@pytest.fixture
def http_client():
    """Shared client; requests are intercepted by pytest-httpx or mocks."""
    return httpx.AsyncClient()


@pytest.fixture
def shikimori(preferences, http_client):
    """Shikimori service backed by the in-memory preference store."""
    return Shikimori(
        4,
        preferences,
        http_client,
        base_url=BASE_URL,
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:8000/auth/shikimori",
        user_agent="mangatrack-test"
    )


@pytest.fixture
def oauth():
    """A token valid for another day."""
    import time
    return OAuth(
        access_token="access-token-1234",
        token_type="Bearer",
        created_at=int(time.time()),
        expires_in=86400,
        refresh_token="refresh-token-5678"
    )


@pytest.fixture
def logged_in(shikimori, oauth):
    """Store credentials and token as a successful login would."""
    shikimori.save_credentials("123", oauth.access_token)
    shikimori.save_token(oauth)
    return shikimori
