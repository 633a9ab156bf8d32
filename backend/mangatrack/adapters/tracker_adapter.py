"""
TrackService Abstract Base Class for mangatrack

This module defines the TrackService abstract base class (ABC): the contract
every tracker service implements so the application can bind local manga to
remote library entries without knowing which tracker it talks to.

Architecture Pattern:
    - API routes depend only on the TrackService interface
    - Concrete services (Shikimori) implement the interface
    - TrackerFactory creates one instance per service id
    - Credentials live in the shared TrackPreferences store

Contract Methods:
    - add(): Create the remote library entry for a track
    - update(): Push the personal fields of a track to the remote entry
    - bind(): Attach a track to an existing remote entry, or create one
    - search(): Find remote titles by name
    - refresh(): Pull personal fields from the remote entry
    - login(): Authenticate and store credentials

Shared Behavior (concrete here):
    - Credential access (get_username, get_password, save_credentials)
    - is_logged, logout
    - index_to_score

Usage Example:
    service: TrackService = factory.get_service(4)

    if service.is_logged:
        results = await service.search("Berserk")
        track.media_id = results[0].media_id
        await service.bind(track)
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, TYPE_CHECKING

from ..schemas.track import TrackSearch

if TYPE_CHECKING:
    from ..models.track import Track
    from ..services.preferences import TrackPreferences


class TrackService(ABC):
    """
    Abstract base class defining the contract for tracker services.

    A service is identified by a small integer id shared with Track.sync_id
    and with its preference keys. Implementations should:
        - Raise RemoteServiceError (or a subclass) for remote failures
        - Never retry; one request chain per call
        - Mutate and return the Track passed in rather than copying it
        - Log authentication and library writes at INFO level

    Attributes:
        id: Tracker service id
        preferences: Store holding credentials and tokens
    """

    # URL-safe identifier used by the API routes
    SLUG: str = ""

    # Whether the tracker stores reading start/finish dates
    supports_reading_dates: bool = False

    def __init__(self, id: int, preferences: 'TrackPreferences'):
        self.id = id
        self.preferences = preferences

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable tracker name (e.g., "Shikimori")."""
        pass

    @abstractmethod
    def get_logo(self) -> str:
        """Logo resource name."""
        pass

    @abstractmethod
    def get_logo_color(self) -> str:
        """Logo background color as a hex string (e.g., "#282828")."""
        pass

    @abstractmethod
    def get_status_list(self) -> List[int]:
        """Status codes supported by this tracker, in display order."""
        pass

    @abstractmethod
    def get_status(self, status: int) -> str:
        """
        Get the display label for a status code.

        Returns:
            Label for known codes, empty string for anything else
        """
        pass

    @abstractmethod
    def get_completion_status(self) -> int:
        """Status code meaning the manga has been finished."""
        pass

    @abstractmethod
    def get_score_list(self) -> List[str]:
        """Selectable scores, ascending, as display strings."""
        pass

    @abstractmethod
    def display_score(self, track: 'Track') -> str:
        """Format the score of a track the way the tracker shows it."""
        pass

    def index_to_score(self, index: int) -> float:
        """Convert a position in get_score_list() to a score value."""
        return float(index)

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    @abstractmethod
    async def add(self, track: 'Track') -> 'Track':
        """
        Create the remote library entry for a track.

        Returns:
            The same track, updated with remote identifiers

        Raises:
            RemoteServiceError: If the remote call fails
        """
        pass

    @abstractmethod
    async def update(self, track: 'Track') -> 'Track':
        """
        Push the personal fields of a track to its remote library entry.

        Raises:
            RemoteServiceError: If the remote call fails
        """
        pass

    @abstractmethod
    async def bind(self, track: 'Track') -> 'Track':
        """
        Attach a track to the user's remote library entry for its title.

        If an entry exists its personal fields are copied onto the track and
        the entry is updated; otherwise a new entry is added.
        """
        pass

    @abstractmethod
    async def search(self, query: str) -> List[TrackSearch]:
        """Search remote titles. An empty list is a valid result."""
        pass

    @abstractmethod
    async def refresh(self, track: 'Track') -> 'Track':
        """
        Overlay remote personal fields and total chapters onto a track.

        Never pushes local changes.
        """
        pass

    @abstractmethod
    async def login(self, username: str, password: str) -> None:
        """
        Authenticate with the tracker and store credentials.

        Raises:
            RemoteServiceError: If authentication fails
        """
        pass

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def logout(self) -> None:
        """Forget stored credentials. Local only."""
        self.preferences.set_track_credentials(self, "", "")

    @property
    def is_logged(self) -> bool:
        return bool(self.get_username()) and bool(self.get_password())

    def get_username(self) -> str:
        return self.preferences.track_username(self).get()

    def get_password(self) -> str:
        return self.preferences.track_password(self).get()

    def save_credentials(self, username: str, password: str) -> None:
        self.preferences.set_track_credentials(self, username, password)

    def get_service_info(self) -> Dict[str, Any]:
        """
        Describe this service for the API layer.

        Returns:
            Dictionary matching TrackerInfoResponse
        """
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.SLUG,
            'logo': self.get_logo(),
            'logo_color': self.get_logo_color(),
            'logged_in': self.is_logged,
            'statuses': [
                {'code': code, 'label': self.get_status(code)}
                for code in self.get_status_list()
            ],
            'completion_status': self.get_completion_status(),
            'scores': self.get_score_list(),
            'supports_reading_dates': self.supports_reading_dates,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, name='{self.name}')>"
