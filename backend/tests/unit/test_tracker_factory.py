"""
Unit tests for TrackerFactory

Tests cover:
    - Shikimori registration under id 4 and slug "shikimori"
    - One cached instance per service id
    - Unknown ids and slugs
    - Logged-in service filtering
    - Custom service registration
    - Shared HTTP client ownership and the module singleton (reset closes an owned client)
"""

import httpx
import pytest
from unittest.mock import AsyncMock, Mock

from backend.mangatrack.adapters.shikimori_adapter import Shikimori
from backend.mangatrack.adapters.tracker_adapter import TrackService
from backend.mangatrack.adapters.tracker_factory import (
    TrackerFactory,
    get_tracker_factory,
    reset_tracker_factory,
)


class DummyTracker(TrackService):
    """Minimal credential-based tracker used to test registration."""

    SLUG = "dummy"

    @property
    def name(self):
        return "Dummy"

    def get_logo(self):
        return "ic_tracker_dummy"

    def get_logo_color(self):
        return "#000000"

    def get_status_list(self):
        return [1]

    def get_status(self, status):
        return "Reading" if status == 1 else ""

    def get_completion_status(self):
        return 1

    def get_score_list(self):
        return ["0", "1"]

    def display_score(self, track):
        return str(track.score)

    async def add(self, track):
        return track

    async def update(self, track):
        return track

    async def bind(self, track):
        return track

    async def search(self, query):
        return []

    async def refresh(self, track):
        return track

    async def login(self, username, password):
        self.save_credentials(username, password)


@pytest.fixture
def factory(preferences):
    return TrackerFactory(preferences, client=Mock(spec=httpx.AsyncClient))


@pytest.fixture
def dummy_registered():
    TrackerFactory.register_service(99, DummyTracker)
    yield
    TrackerFactory._REGISTRY.pop(99, None)


class TestTrackerFactory:
    """Test service lookup and creation."""

    def test_shikimori_registered(self, factory):
        service = factory.get_service(TrackerFactory.SHIKIMORI)

        assert isinstance(service, Shikimori)
        assert service.id == 4
        assert service.preferences is factory.preferences
        assert service.api.client is factory.client

    def test_service_cached(self, factory):
        assert factory.get_service(4) is factory.get_service(4)

    def test_get_by_slug(self, factory):
        assert factory.get_service_by_slug("shikimori") is factory.get_service(4)

    def test_unknown_service(self, factory):
        with pytest.raises(ValueError, match="Unknown tracker service"):
            factory.get_service(12345)

    def test_unknown_slug(self, factory):
        with pytest.raises(ValueError):
            factory.get_service_by_slug("myanimelist")

    def test_all_services(self, factory):
        names = [service.name for service in factory.get_all_services()]
        assert "Shikimori" in names

    def test_logged_services(self, factory):
        assert factory.get_logged_services() == []
        assert factory.has_logged_services() is False

        shikimori = factory.get_service(4)
        shikimori.save_credentials("123", "token")

        assert factory.get_logged_services() == [shikimori]
        assert factory.has_logged_services() is True

    def test_register_service(self, factory, dummy_registered):
        service = factory.get_service(99)

        assert isinstance(service, DummyTracker)
        assert factory.get_service_by_slug("dummy") is service
        assert [s.id for s in factory.get_all_services()] == [4, 99]

    @pytest.mark.asyncio
    async def test_base_contract_login_logout(self, factory, dummy_registered):
        service = factory.get_service(99)

        await service.login("user", "secret")
        assert service.is_logged is True

        service.logout()
        assert service.is_logged is False

    def test_clear_cache(self, factory):
        first = factory.get_service(4)
        factory.clear_cache()
        assert factory.get_service(4) is not first


class TestTrackerFactoryClient:
    """Test HTTP client ownership."""

    @pytest.mark.asyncio
    async def test_external_client_not_closed(self, preferences):
        client = Mock(spec=httpx.AsyncClient)
        client.aclose = AsyncMock()
        factory = TrackerFactory(preferences, client=client)

        await factory.aclose()

        client.aclose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self, preferences):
        factory = TrackerFactory(preferences, timeout=5)

        assert isinstance(factory.client, httpx.AsyncClient)
        await factory.aclose()

        assert factory.client.is_closed


class TestTrackerFactorySingleton:
    """Test the module-level factory."""

    @pytest.mark.asyncio
    async def test_singleton(self, preferences):
        await reset_tracker_factory()
        try:
            first = get_tracker_factory(preferences)
            second = get_tracker_factory()

            assert first is second
            assert first.preferences is preferences
        finally:
            await reset_tracker_factory()

    @pytest.mark.asyncio
    async def test_reset_closes_owned_client(self, preferences):
        await reset_tracker_factory()
        factory = get_tracker_factory(preferences)

        await reset_tracker_factory()

        assert factory.client.is_closed
        assert get_tracker_factory(preferences) is not factory
        await reset_tracker_factory()

    @pytest.mark.asyncio
    async def test_reset_keeps_external_client(self, preferences):
        client = Mock(spec=httpx.AsyncClient)
        client.aclose = AsyncMock()
        await reset_tracker_factory()
        get_tracker_factory(preferences, client=client)

        await reset_tracker_factory()

        client.aclose.assert_not_awaited()
