"""
Tracker Preference Store for mangatrack

Process-wide key/value store used by tracker services to persist their
credentials. Every value is an opaque string stored in the `preferences`
table; keys are scoped by the tracker service id:

    pref_mangasync_username_{id}  - tracker account identity
    pref_mangasync_password_{id}  - tracker password or access token
    track_token_{id}              - serialized OAuth credential

Each operation opens a short-lived session from the configured session
factory, so a single store can be shared by long-lived service objects while
FastAPI requests keep their own sessions.

Usage:
    preferences = TrackPreferences(SessionLocal)
    token = preferences.track_token(service)
    token.set('{"access_token": "..."}')
    token.get()     # -> '{"access_token": "..."}'
    token.delete()
"""

import logging
from typing import Callable, Optional, TYPE_CHECKING

from sqlalchemy.orm import Session

from ..models.preference import TrackerPreference

if TYPE_CHECKING:
    from ..adapters.tracker_adapter import TrackService

logger = logging.getLogger(__name__)


class Preference:
    """A single string preference bound to one key of the store."""

    def __init__(self, store: 'TrackPreferences', key: str, default: str = ""):
        self.store = store
        self.key = key
        self.default = default

    def get(self) -> str:
        """Return the stored value, or the default when the key is not set."""
        value = self.store.get_value(self.key)
        return self.default if value is None else value

    def set(self, value: str) -> None:
        self.store.set_value(self.key, value)

    def delete(self) -> None:
        self.store.delete_value(self.key)

    def is_set(self) -> bool:
        return self.store.get_value(self.key) is not None

    def __repr__(self) -> str:
        return f"<Preference(key='{self.key}')>"


class TrackPreferences:
    """
    Preference store for tracker services.

    Attributes:
        session_factory: Callable returning a new SQLAlchemy session
    """

    USERNAME_KEY = "pref_mangasync_username_{}"
    PASSWORD_KEY = "pref_mangasync_password_{}"
    TOKEN_KEY = "track_token_{}"

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Initialize TrackPreferences.

        Args:
            session_factory: Session factory (e.g., database.SessionLocal)
        """
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Raw key access
    # ------------------------------------------------------------------

    def get_value(self, key: str) -> Optional[str]:
        with self.session_factory() as db:
            return TrackerPreference.get_value(db, key)

    def set_value(self, key: str, value: str) -> None:
        with self.session_factory() as db:
            TrackerPreference.set_value(db, key, value)
        logger.debug(f"Preference stored: {key}")

    def delete_value(self, key: str) -> None:
        with self.session_factory() as db:
            deleted = TrackerPreference.delete_key(db, key)
        if deleted:
            logger.debug(f"Preference deleted: {key}")

    # ------------------------------------------------------------------
    # Tracker-scoped preferences
    # ------------------------------------------------------------------

    def track_username(self, service: 'TrackService') -> Preference:
        return Preference(self, self.USERNAME_KEY.format(service.id))

    def track_password(self, service: 'TrackService') -> Preference:
        return Preference(self, self.PASSWORD_KEY.format(service.id))

    def track_token(self, service: 'TrackService') -> Preference:
        return Preference(self, self.TOKEN_KEY.format(service.id))

    def set_track_credentials(self, service: 'TrackService', username: str, password: str) -> None:
        """
        Store username and password for a tracker service.

        Args:
            service: Tracker service owning the credentials
            username: Account identity (empty string clears it)
            password: Password or access token (empty string clears it)
        """
        self.track_username(service).set(username)
        self.track_password(service).set(password)
