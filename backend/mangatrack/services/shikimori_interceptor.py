"""
Shikimori request signing.

ShikimoriInterceptor supplies the headers for authenticated Shikimori calls.
It restores the OAuth token from the preference store on first use, refreshes
it when it is close to expiry, and persists every new token through the
tracker.
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING

from .exceptions import NotAuthenticatedError, RemoteServiceError
from ..schemas.shikimori import OAuth

if TYPE_CHECKING:
    from ..adapters.shikimori_adapter import Shikimori

logger = logging.getLogger(__name__)


class ShikimoriInterceptor:
    """
    Adds Authorization and User-Agent headers to Shikimori requests.

    Attributes:
        shikimori: Tracker owning the token (restore_token/save_token/api)
        user_agent: User-Agent header value
        oauth: Token currently in use, None until restored or logged in
    """

    def __init__(self, shikimori: 'Shikimori', user_agent: str = "mangatrack"):
        self.shikimori = shikimori
        self.user_agent = user_agent
        self.oauth: Optional[OAuth] = None

    async def get_headers(self) -> Dict[str, str]:
        """
        Build the headers for one authenticated request.

        Raises:
            NotAuthenticatedError: If no token is held or stored
        """
        if self.oauth is None:
            self.oauth = self.shikimori.restore_token()

        if self.oauth is None:
            raise NotAuthenticatedError(self.shikimori.name)

        if self.oauth.is_expired() and self.oauth.refresh_token:
            try:
                refreshed = await self.shikimori.api.refresh_token(self.oauth.refresh_token)
            except RemoteServiceError as e:
                # Keep the current token; the request itself reports the failure
                logger.warning(f"Shikimori token refresh failed: {e}")
            else:
                self.new_auth(refreshed)
                # Stored password mirrors the access token
                self.shikimori.save_credentials(self.shikimori.get_username(), refreshed.access_token)

        return {
            "Authorization": f"Bearer {self.oauth.access_token}",
            "User-Agent": self.user_agent,
        }

    def new_auth(self, oauth: Optional[OAuth]) -> None:
        """Replace the token in use and persist it (None clears it)."""
        self.oauth = oauth
        self.shikimori.save_token(oauth)
