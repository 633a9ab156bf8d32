"""
TrackerFactory for mangatrack

This module provides the registry of tracker services. It maps service ids and
slugs to TrackService classes and creates each service once, wiring in the
shared preference store and a single shared httpx.AsyncClient.

Architecture:
    TrackerFactory
        └── Shikimori (id 4, slug "shikimori")

Usage:
    factory = TrackerFactory(TrackPreferences(SessionLocal))

    shikimori = factory.get_service(TrackerFactory.SHIKIMORI)
    await shikimori.login_with_code(code)

    for service in factory.get_logged_services():
        await service.refresh(track)

    await factory.aclose()
"""

import httpx
import logging
from typing import Dict, List, Optional, Type

from .tracker_adapter import TrackService
from ..config import Config
from ..services.preferences import TrackPreferences

logger = logging.getLogger(__name__)


class TrackerFactory:
    """
    Factory and registry for tracker services.

    Service Registry:
        - 4: Shikimori

    Example:
        >>> factory = TrackerFactory(preferences)
        >>> service = factory.get_service_by_slug("shikimori")
        >>> results = await service.search("Berserk")
    """

    SHIKIMORI = 4

    # Registry mapping service id to service class
    # Services are registered lazily to avoid circular imports
    _REGISTRY: Dict[int, Type[TrackService]] = {}
    _registry_initialized = False

    def __init__(
        self,
        preferences: TrackPreferences,
        client: Optional[httpx.AsyncClient] = None,
        timeout: int = Config.API_REQUEST_TIMEOUT
    ):
        """
        Initialize TrackerFactory.

        Args:
            preferences: Shared preference store
            client: Shared HTTP client (created and owned by the factory if omitted)
            timeout: Request timeout in seconds for an owned client
        """
        self.preferences = preferences
        self._owns_client = client is None
        self.client = client if client is not None else httpx.AsyncClient(timeout=timeout)

        # Initialize registry if not done
        self._ensure_registry()

        # Instantiated services (keyed by service id)
        self._service_cache: Dict[int, TrackService] = {}

    @classmethod
    def _ensure_registry(cls) -> None:
        """Ensure service registry is initialized."""
        if cls._registry_initialized:
            return

        from .shikimori_adapter import Shikimori
        cls._REGISTRY.setdefault(cls.SHIKIMORI, Shikimori)

        cls._registry_initialized = True
        logger.info(f"Tracker service registry initialized: {list(cls._REGISTRY.keys())}")

    @classmethod
    def register_service(cls, service_id: int, service_class: Type[TrackService]) -> None:
        """
        Register a tracker service class.

        Args:
            service_id: Tracker service id (stored in Track.sync_id)
            service_class: Class implementing TrackService

        Example:
            >>> TrackerFactory.register_service(9, MyTracker)
        """
        cls._REGISTRY[service_id] = service_class
        logger.info(f"Registered tracker service: {service_id} -> {service_class.__name__}")

    def get_service(self, service_id: int) -> TrackService:
        """
        Get the service instance for an id, creating it on first use.

        Raises:
            ValueError: If no service is registered for the id
        """
        if service_id in self._service_cache:
            return self._service_cache[service_id]

        if service_id not in self._REGISTRY:
            raise ValueError(
                f"Unknown tracker service: {service_id}. "
                f"Available services: {list(self._REGISTRY.keys())}"
            )

        service = self._create_service(self._REGISTRY[service_id], service_id)
        self._service_cache[service_id] = service

        logger.info(f"Created tracker service: {service.name} (id={service_id})")
        return service

    def get_service_by_slug(self, slug: str) -> TrackService:
        """
        Get the service instance for a slug (e.g., "shikimori").

        Raises:
            ValueError: If no registered service uses the slug
        """
        for service_id, service_class in self._REGISTRY.items():
            if service_class.SLUG == slug:
                return self.get_service(service_id)
        raise ValueError(f"Unknown tracker service: {slug}")

    def _create_service(self, service_class: Type[TrackService], service_id: int) -> TrackService:
        """
        Create a service instance with its configuration.

        Args:
            service_class: Class to instantiate
            service_id: Id given to the instance

        Returns:
            Configured service instance
        """
        from .shikimori_adapter import Shikimori

        if issubclass(service_class, Shikimori):
            if not Config.shikimori_configured():
                logger.warning("Shikimori client credentials are not configured; login will fail")
            return service_class(
                service_id,
                self.preferences,
                self.client,
                base_url=Config.SHIKIMORI_BASE_URL,
                client_id=Config.SHIKIMORI_CLIENT_ID,
                client_secret=Config.SHIKIMORI_CLIENT_SECRET,
                redirect_uri=Config.SHIKIMORI_REDIRECT_URI,
                user_agent=Config.USER_AGENT
            )

        return service_class(service_id, self.preferences)

    def get_all_services(self) -> List[TrackService]:
        """Get instances of every registered service, ordered by id."""
        return [self.get_service(service_id) for service_id in sorted(self._REGISTRY)]

    def get_logged_services(self) -> List[TrackService]:
        """Get services with stored credentials."""
        return [service for service in self.get_all_services() if service.is_logged]

    def has_logged_services(self) -> bool:
        return any(service.is_logged for service in self.get_all_services())

    def clear_cache(self) -> None:
        """Clear the service cache."""
        self._service_cache.clear()
        logger.debug("Tracker service cache cleared")

    async def aclose(self) -> None:
        """Close the shared HTTP client if the factory created it."""
        self.clear_cache()
        if self._owns_client:
            await self.client.aclose()
            logger.debug("Tracker HTTP client closed")


# Singleton factory instance
_factory_instance: Optional[TrackerFactory] = None


def get_tracker_factory(
    preferences: Optional[TrackPreferences] = None,
    client: Optional[httpx.AsyncClient] = None
) -> TrackerFactory:
    """
    Get or create the TrackerFactory instance.

    Args:
        preferences: Preference store (defaults to one over SessionLocal)
        client: Shared HTTP client

    Returns:
        TrackerFactory instance
    """
    global _factory_instance
    if _factory_instance is None:
        if preferences is None:
            from ..database import SessionLocal
            preferences = TrackPreferences(SessionLocal)
        _factory_instance = TrackerFactory(preferences, client)
    return _factory_instance


async def reset_tracker_factory() -> None:
    """Close and drop the singleton factory instance (closes an owned client)."""
    global _factory_instance
    if _factory_instance:
        await _factory_instance.aclose()
    _factory_instance = None
