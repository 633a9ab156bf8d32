"""
Tracker Services for mangatrack

This package provides the tracker-service layer: a common TrackService
contract, its Shikimori implementation, and the factory that wires services
to the preference store and the shared HTTP client.

Available Services:
    - TrackService: Abstract base class defining the service contract
    - Shikimori: Implementation for the Shikimori tracker (id 4)

Supporting Classes:
    - TrackerFactory: Registry creating one instance per service id

Architecture:
    API routes → TrackerFactory → TrackService (interface)
                                      └── Shikimori
                                            ├── ShikimoriApi
                                            └── ShikimoriInterceptor
"""

from .tracker_adapter import TrackService
from .shikimori_adapter import Shikimori
from .tracker_factory import TrackerFactory, get_tracker_factory, reset_tracker_factory

__all__ = [
    'TrackService',
    'Shikimori',
    'TrackerFactory',
    'get_tracker_factory',
    'reset_tracker_factory',
]
