"""
Shikimori Tracker Service for mangatrack

This module implements the TrackService contract for Shikimori
(https://shikimori.one), a Russian anime and manga database with per-user
lists ("user rates").

Features:
    - OAuth2 authorization code login (the code is passed as the password)
    - Token persistence in the preference store, refreshed when near expiry
    - Library entry creation and update through the user_rates upsert endpoint
    - Title search ordered by popularity

Shikimori Status Mapping:
    READING (1)    <-> watching
    COMPLETED (2)  <-> completed
    ON_HOLD (3)    <-> on_hold
    DROPPED (4)    <-> dropped
    PLANNING (5)   <-> planned
    REPEATING (6)  <-> rewatching

Scores are integers 0-10 stored as floats on the Track.
"""

import httpx
import logging
from typing import List, Optional, TYPE_CHECKING

from .tracker_adapter import TrackService
from ..schemas.shikimori import OAuth, ShikimoriStatus
from ..schemas.track import TrackSearch
from ..services.shikimori_client import ShikimoriApi
from ..services.shikimori_interceptor import ShikimoriInterceptor

if TYPE_CHECKING:
    from ..models.track import Track
    from ..services.preferences import TrackPreferences

logger = logging.getLogger(__name__)


class Shikimori(TrackService):
    """
    Shikimori implementation of TrackService.

    The stored username is the Shikimori user id and the stored password is
    the current access token; both are written by a successful login.

    Attributes:
        interceptor: Signs authenticated requests with the OAuth token
        api: REST client for Shikimori
    """

    SLUG = "shikimori"

    READING = ShikimoriStatus.READING.value
    COMPLETED = ShikimoriStatus.COMPLETED.value
    ON_HOLD = ShikimoriStatus.ON_HOLD.value
    DROPPED = ShikimoriStatus.DROPPED.value
    PLANNING = ShikimoriStatus.PLANNING.value
    REPEATING = ShikimoriStatus.REPEATING.value

    DEFAULT_STATUS = READING
    DEFAULT_SCORE = 0

    STATUS_LABELS = {
        READING: "Reading",
        COMPLETED: "Completed",
        ON_HOLD: "On hold",
        DROPPED: "Dropped",
        PLANNING: "Plan to read",
        REPEATING: "Rereading",
    }

    def __init__(
        self,
        id: int,
        preferences: 'TrackPreferences',
        client: httpx.AsyncClient,
        base_url: str = "https://shikimori.one",
        client_id: str = "",
        client_secret: str = "",
        redirect_uri: str = "",
        user_agent: str = "mangatrack"
    ):
        """
        Initialize Shikimori service.

        Args:
            id: Tracker service id (4)
            preferences: Shared preference store
            client: Shared httpx.AsyncClient
            base_url: Shikimori base URL
            client_id: OAuth application id
            client_secret: OAuth application secret
            redirect_uri: Redirect URI registered for the application
            user_agent: User-Agent sent with every request
        """
        super().__init__(id, preferences)
        self.interceptor = ShikimoriInterceptor(self, user_agent=user_agent)
        self.api = ShikimoriApi(
            client,
            self.interceptor,
            base_url=base_url,
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            user_agent=user_agent,
            sync_id=id
        )

    @property
    def name(self) -> str:
        return "Shikimori"

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def get_logo(self) -> str:
        return "ic_tracker_shikimori"

    def get_logo_color(self) -> str:
        return "#282828"

    def get_status_list(self) -> List[int]:
        return [self.READING, self.COMPLETED, self.ON_HOLD, self.DROPPED, self.PLANNING, self.REPEATING]

    def get_status(self, status: int) -> str:
        return self.STATUS_LABELS.get(status, "")

    def get_completion_status(self) -> int:
        return self.COMPLETED

    def get_score_list(self) -> List[str]:
        return [str(score) for score in range(11)]

    def display_score(self, track: 'Track') -> str:
        return str(int(track.score))

    def get_auth_url(self) -> str:
        return self.api.get_auth_url()

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    async def add(self, track: 'Track') -> 'Track':
        logger.info(f"Adding manga {track.media_id} to Shikimori list")
        return await self.api.add_lib_manga(track, self.get_username())

    async def update(self, track: 'Track') -> 'Track':
        logger.info(
            f"Updating Shikimori entry for manga {track.media_id}: "
            f"chapter={track.last_chapter_read}, score={track.score}, status={track.status}"
        )
        return await self.api.update_lib_manga(track, self.get_username())

    async def bind(self, track: 'Track') -> 'Track':
        remote = await self.api.find_lib_manga(track, self.get_username())

        if remote is not None:
            logger.info(f"Binding manga {track.media_id} to existing Shikimori entry {remote.library_id}")
            track.copy_personal_from(remote)
            track.library_id = remote.library_id
            return await self.update(track)

        logger.info(f"Manga {track.media_id} not in Shikimori list, adding as reading")
        track.score = float(self.DEFAULT_SCORE)
        track.status = self.DEFAULT_STATUS
        return await self.add(track)

    async def search(self, query: str) -> List[TrackSearch]:
        return await self.api.search(query)

    async def refresh(self, track: 'Track') -> 'Track':
        remote = await self.api.find_lib_manga(track, self.get_username())

        if remote is None:
            logger.debug(f"No Shikimori entry for manga {track.media_id}, nothing to refresh")
            return track

        track.copy_personal_from(remote)
        track.total_chapters = remote.total_chapters
        return track

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> None:
        """Log in with an authorization code passed as the password."""
        await self.login_with_code(password)

    async def login_with_code(self, code: str) -> None:
        """
        Exchange an OAuth authorization code and store the resulting session.

        Steps:
            1. Exchange the code for a token
            2. Install the token in the interceptor (persisted)
            3. Fetch the current user id
            4. Store user id and access token as credentials

        Any failure logs the service out before the error is re-raised.
        """
        try:
            oauth = await self.api.access_token(code)
            self.interceptor.new_auth(oauth)
            user_id = await self.api.get_current_user()
            self.save_credentials(str(user_id), oauth.access_token)
        except Exception as e:
            logger.warning(f"Shikimori login failed: {type(e).__name__}: {e}")
            self.logout()
            raise

        logger.info(f"Logged in to Shikimori as user {user_id}")

    def logout(self) -> None:
        super().logout()
        self.interceptor.new_auth(None)
        logger.info("Logged out of Shikimori")

    # ------------------------------------------------------------------
    # Token persistence
    # ------------------------------------------------------------------

    def save_token(self, oauth: Optional[OAuth]) -> None:
        """Serialize the token into the preference store (None deletes it)."""
        token = self.preferences.track_token(self)
        if oauth is None:
            token.delete()
        else:
            token.set(oauth.model_dump_json())

    def restore_token(self) -> Optional[OAuth]:
        """
        Load the stored token.

        Returns:
            OAuth credential, or None if absent or unreadable
        """
        raw = self.preferences.track_token(self).get()
        if not raw:
            return None

        try:
            return OAuth.model_validate_json(raw)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable Shikimori token: {e}")
            return None
