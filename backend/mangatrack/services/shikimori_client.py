"""
Shikimori API Client for mangatrack

This module implements the REST client for the Shikimori tracker. Every
method issues one request chain and either returns parsed models or raises a
RemoteServiceError subclass; nothing is retried here.

API Specification:
    - Token exchange: POST {base}/oauth/token (form data)
    - Authorize URL: GET {base}/oauth/authorize?client_id&redirect_uri&response_type=code
    - Current user: GET {base}/api/users/whoami
    - Library entries: GET/POST {base}/api/v2/user_rates
    - Manga details: GET {base}/api/mangas/{id}
    - Search: GET {base}/api/mangas?order=popularity&search=...&limit=20

Authentication:
    Authenticated calls take their Authorization and User-Agent headers from
    ShikimoriInterceptor, which restores and refreshes the stored OAuth token.
    Token exchange and refresh calls are sent unsigned.

Library entry payload (POST /api/v2/user_rates, create or update):
    {
        "user_rate": {
            "user_id": "123",
            "target_id": 2,
            "target_type": "Manga",
            "chapters": 120,
            "score": 9,
            "status": "watching"
        }
    }

Usage:
    async with httpx.AsyncClient(timeout=30) as client:
        api = ShikimoriApi(client, interceptor, client_id="...", client_secret="...")
        results = await api.search("Berserk")
"""

import httpx
import logging
from typing import Dict, Any, Optional, List, TYPE_CHECKING

from pydantic import ValidationError

from .exceptions import RemoteServiceError, RemoteNetworkError, classify_http_error
from ..schemas.shikimori import OAuth, ShikimoriUser, ShikimoriStatus, REMOTE_STATUS
from ..schemas.track import TrackSearch

if TYPE_CHECKING:
    from .shikimori_interceptor import ShikimoriInterceptor
    from ..models.track import Track

logger = logging.getLogger(__name__)


def to_shikimori_status(status: int) -> str:
    """
    Translate a local status code to the user_rate status string.

    Raises:
        ValueError: If the status code is not one of the six Shikimori codes
    """
    try:
        return REMOTE_STATUS[ShikimoriStatus(status)]
    except ValueError:
        raise ValueError(f"Unknown Shikimori status code: {status}")


def to_track_status(remote_status: str) -> int:
    """
    Translate a user_rate status string to the local status code.

    Raises:
        ValueError: If the string is not a known user_rate status
    """
    for code, name in REMOTE_STATUS.items():
        if name == remote_status:
            return int(code)
    raise ValueError(f"Unknown Shikimori status: {remote_status}")


class ShikimoriApi:
    """
    API client for the Shikimori tracker.

    Attributes:
        client: Shared httpx.AsyncClient
        interceptor: Signs authenticated requests
        base_url: Shikimori base URL (e.g., https://shikimori.one)
        client_id / client_secret: OAuth application credentials
        redirect_uri: Redirect URI registered for the OAuth application
        sync_id: Tracker service id stamped on returned TrackSearch objects
    """

    TOKEN_ENDPOINT = "/oauth/token"
    AUTHORIZE_ENDPOINT = "/oauth/authorize"
    WHOAMI_ENDPOINT = "/api/users/whoami"
    USER_RATES_ENDPOINT = "/api/v2/user_rates"
    MANGAS_ENDPOINT = "/api/mangas"

    SEARCH_LIMIT = 20

    def __init__(
        self,
        client: httpx.AsyncClient,
        interceptor: 'ShikimoriInterceptor',
        base_url: str = "https://shikimori.one",
        client_id: str = "",
        client_secret: str = "",
        redirect_uri: str = "",
        user_agent: str = "mangatrack",
        sync_id: int = 4
    ):
        self.client = client
        self.interceptor = interceptor
        self.base_url = base_url.rstrip('/')
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.user_agent = user_agent
        self.sync_id = sync_id

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        **kwargs
    ) -> httpx.Response:
        """
        Send one request to Shikimori and map failures to typed exceptions.

        Raises:
            NotAuthenticatedError: If authenticated and no token is stored
            RemoteNetworkError: On transport failure or transient HTTP status
            AuthenticationError: On HTTP 401/403
            RemoteServiceError: On any other HTTP error status
        """
        headers = dict(kwargs.pop('headers', None) or {})
        if authenticated:
            headers.update(await self.interceptor.get_headers())
        else:
            headers.setdefault("User-Agent", self.user_agent)

        url = f"{self.base_url}{path}"

        try:
            response = await self.client.request(method, url, headers=headers, **kwargs)

        except httpx.TimeoutException as e:
            error_msg = f"Timeout contacting Shikimori ({method} {path}): {e}"
            logger.error(error_msg)
            raise RemoteNetworkError(error_msg, original_exception=e)

        except httpx.HTTPError as e:
            error_msg = f"Cannot connect to Shikimori ({method} {path}): {type(e).__name__}: {e}"
            logger.error(error_msg)
            raise RemoteNetworkError(error_msg, original_exception=e)

        logger.debug(f"Shikimori {method} {path} -> {response.status_code}")

        if response.status_code >= 400:
            response_data = self._error_data(response)
            message = response_data.get('message') or response_data.get('error_description') \
                or f"Shikimori {method} {path} failed: {response.text[:200]}"
            raise classify_http_error(response.status_code, str(message), response_data)

        return response

    def _error_data(self, response: httpx.Response) -> Dict[str, Any]:
        """Collect error details from a failed response for debugging."""
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {'errors': data}

        retry_after = response.headers.get('Retry-After')
        if retry_after and retry_after.isdigit():
            data['retry_after'] = int(retry_after)
        return data

    def _parse_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(
                f"Invalid JSON from Shikimori: {e}",
                status_code=response.status_code
            )

    def _parse_oauth(self, response: httpx.Response) -> OAuth:
        try:
            return OAuth.model_validate(self._parse_json(response))
        except ValidationError as e:
            raise RemoteServiceError(f"Unexpected token response from Shikimori: {e}")

    # ------------------------------------------------------------------
    # OAuth
    # ------------------------------------------------------------------

    def get_auth_url(self) -> str:
        """Build the URL the user opens to authorize this application."""
        url = httpx.URL(
            f"{self.base_url}{self.AUTHORIZE_ENDPOINT}",
            params={
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
            }
        )
        return str(url)

    async def access_token(self, code: str) -> OAuth:
        """
        Exchange an authorization code for an OAuth token.

        Args:
            code: Authorization code from the OAuth redirect

        Returns:
            OAuth credential

        Raises:
            AuthenticationError: If the code or client credentials are rejected
            RemoteServiceError: If the exchange fails
        """
        logger.info("Exchanging Shikimori authorization code for a token")

        response = await self._request(
            "POST",
            self.TOKEN_ENDPOINT,
            authenticated=False,
            data={
                "grant_type": "authorization_code",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
            }
        )
        return self._parse_oauth(response)

    async def refresh_token(self, refresh_token: str) -> OAuth:
        """Obtain a new OAuth token using a refresh token."""
        logger.info("Refreshing Shikimori access token")

        response = await self._request(
            "POST",
            self.TOKEN_ENDPOINT,
            authenticated=False,
            data={
                "grant_type": "refresh_token",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
            }
        )
        return self._parse_oauth(response)

    async def get_current_user(self) -> int:
        """Return the id of the user owning the current token."""
        response = await self._request("GET", self.WHOAMI_ENDPOINT)
        try:
            user = ShikimoriUser.model_validate(self._parse_json(response))
        except ValidationError as e:
            raise RemoteServiceError(f"Unexpected user response from Shikimori: {e}")

        logger.info(f"Shikimori current user: {user.id}")
        return user.id

    # ------------------------------------------------------------------
    # Library entries
    # ------------------------------------------------------------------

    async def add_lib_manga(self, track: 'Track', user_id: str) -> 'Track':
        """
        Create or overwrite the user's library entry for a manga.

        The returned track is the same object, with library_id taken from the
        server response when present.
        """
        payload = {
            "user_rate": {
                "user_id": user_id,
                "target_id": track.media_id,
                "target_type": "Manga",
                "chapters": int(track.last_chapter_read),
                "score": int(track.score),
                "status": to_shikimori_status(track.status),
            }
        }
        logger.debug(f"Shikimori user_rate payload: {payload}")

        response = await self._request("POST", self.USER_RATES_ENDPOINT, json=payload)
        data = self._parse_json(response)

        if isinstance(data, dict) and data.get('id') is not None:
            try:
                track.library_id = int(data['id'])
            except (TypeError, ValueError) as e:
                raise RemoteServiceError(
                    f"Unexpected user_rate response from Shikimori: id={data['id']!r}"
                ) from e

        logger.info(
            f"Shikimori library entry saved: media_id={track.media_id}, "
            f"library_id={track.library_id}"
        )
        return track

    async def update_lib_manga(self, track: 'Track', user_id: str) -> 'Track':
        """Update an existing library entry (same upsert endpoint as add)."""
        return await self.add_lib_manga(track, user_id)

    async def find_lib_manga(self, track: 'Track', user_id: str) -> Optional[TrackSearch]:
        """
        Look up the user's library entry for the manga of a track.

        Args:
            track: Track whose media_id identifies the remote title
            user_id: Shikimori user id

        Returns:
            TrackSearch with the remote personal fields, or None if the manga
            is not in the user's list

        Raises:
            RemoteServiceError: If Shikimori returns more than one entry
        """
        manga_response = await self._request("GET", f"{self.MANGAS_ENDPOINT}/{track.media_id}")
        manga = self._parse_json(manga_response)

        response = await self._request(
            "GET",
            self.USER_RATES_ENDPOINT,
            params={
                "user_id": user_id,
                "target_id": track.media_id,
                "target_type": "Manga",
            }
        )
        entries = self._parse_json(response)

        if not isinstance(entries, list):
            raise RemoteServiceError("Unexpected user_rates response from Shikimori")

        if len(entries) > 1:
            raise RemoteServiceError(
                f"Too many library entries for manga {track.media_id}: {len(entries)}"
            )

        if not entries:
            logger.debug(f"Manga {track.media_id} not in Shikimori list of user {user_id}")
            return None

        return self._json_to_track(entries[0], manga)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: str) -> List[TrackSearch]:
        """
        Search Shikimori manga by title.

        Returns:
            Matching titles, most popular first (possibly empty)
        """
        logger.info(f"Searching Shikimori: query={query}")

        response = await self._request(
            "GET",
            self.MANGAS_ENDPOINT,
            params={
                "order": "popularity",
                "search": query,
                "limit": self.SEARCH_LIMIT,
            }
        )
        data = self._parse_json(response)

        if not isinstance(data, list):
            raise RemoteServiceError("Unexpected search response from Shikimori")

        results = [self._json_to_search(item) for item in data]
        logger.info(f"Shikimori search found {len(results)} titles")
        return results

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _json_to_search(self, obj: Dict[str, Any]) -> TrackSearch:
        try:
            return TrackSearch(
                sync_id=self.sync_id,
                media_id=int(obj['id']),
                title=obj['name'],
                total_chapters=obj.get('chapters') or 0,
                cover_url=self.base_url + obj['image']['preview'],
                summary="",
                tracking_url=self.base_url + obj['url'],
                publishing_status=obj.get('status') or "",
                publishing_type=obj.get('kind') or "",
                start_date=obj.get('aired_on') or "",
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError(f"Unexpected manga entry from Shikimori: {type(e).__name__}: {e}")

    def _json_to_track(self, obj: Dict[str, Any], manga: Dict[str, Any]) -> TrackSearch:
        try:
            return TrackSearch(
                sync_id=self.sync_id,
                library_id=int(obj['id']),
                media_id=int(obj['target_id']),
                title=manga['name'],
                total_chapters=manga.get('chapters') or 0,
                last_chapter_read=float(obj['chapters']),
                score=float(obj['score']),
                status=to_track_status(obj['status']),
                tracking_url=self.base_url + manga['url'],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteServiceError(f"Unexpected user_rate entry from Shikimori: {type(e).__name__}: {e}")

    def __repr__(self) -> str:
        return f"<ShikimoriApi(base_url='{self.base_url}', client_id='{self.client_id}')>"
