"""
Unit tests for ShikimoriApi

Tests cover:
    - OAuth code exchange and refresh (unsigned form posts)
    - Current user lookup
    - Library entry upsert payload and library_id handling
    - Library entry lookup (none, one, too many)
    - Search parsing with absolute cover/tracking URLs
    - HTTP error classification and transport failures
    - Status translation helpers

HTTP traffic is mocked with pytest-httpx.
"""

import json
import time
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from pytest_httpx import HTTPXMock
from unittest.mock import Mock, AsyncMock

from backend.mangatrack.models.track import Track
from backend.mangatrack.services.shikimori_client import (
    ShikimoriApi,
    to_shikimori_status,
    to_track_status,
)
from backend.mangatrack.services.exceptions import (
    AuthenticationError,
    NotAuthenticatedError,
    RemoteNetworkError,
    RemoteServiceError,
)


BASE_URL = "https://shikimori.one"
USER_RATES_URL = f"{BASE_URL}/api/v2/user_rates"
AUTH_HEADERS = {"Authorization": "Bearer access-token", "User-Agent": "mangatrack-test"}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def interceptor():
    """Interceptor stub returning fixed headers."""
    mock = Mock()
    mock.get_headers = AsyncMock(return_value=dict(AUTH_HEADERS))
    return mock


@pytest.fixture
def api(interceptor, http_client):
    return ShikimoriApi(
        http_client,
        interceptor,
        base_url=BASE_URL + "/",
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:8000/auth/shikimori",
        user_agent="mangatrack-test",
        sync_id=4
    )


@pytest.fixture
def track():
    return Track(manga_id=1, sync_id=4, media_id=2, last_chapter_read=42.5, score=8.0, status=2)


@pytest.fixture
def token_response():
    return {
        "access_token": "access-token",
        "token_type": "Bearer",
        "expires_in": 86400,
        "refresh_token": "refresh-token",
        "scope": "user_rates",
        "created_at": int(time.time()),
    }


@pytest.fixture
def manga_response():
    return {
        "id": 2,
        "name": "Berserk",
        "russian": "Берсерк",
        "url": "/mangas/2-berserk",
        "chapters": 380,
        "image": {"preview": "/system/mangas/preview/2.jpg"},
    }


@pytest.fixture
def user_rate_response():
    return {
        "id": 555,
        "user_id": 123,
        "target_id": 2,
        "target_type": "Manga",
        "score": 9,
        "status": "rewatching",
        "chapters": 120,
    }


def _form(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


# ============================================================================
# OAuth
# ============================================================================

class TestShikimoriOAuth:
    """Test token exchange."""

    @pytest.mark.asyncio
    async def test_access_token(self, api, interceptor, httpx_mock: HTTPXMock, token_response):
        httpx_mock.add_response(method="POST", url=f"{BASE_URL}/oauth/token", json=token_response)

        oauth = await api.access_token("auth-code")

        assert oauth.access_token == "access-token"
        assert oauth.refresh_token == "refresh-token"
        assert oauth.expires_in == 86400

        request = httpx_mock.get_request()
        assert _form(request) == {
            "grant_type": "authorization_code",
            "client_id": "client-id",
            "client_secret": "client-secret",
            "code": "auth-code",
            "redirect_uri": "http://localhost:8000/auth/shikimori",
        }
        assert "Authorization" not in request.headers
        assert request.headers["User-Agent"] == "mangatrack-test"
        interceptor.get_headers.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_access_token_rejected(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="POST",
            url=f"{BASE_URL}/oauth/token",
            status_code=401,
            json={"error": "invalid_grant", "error_description": "The provided authorization grant is invalid"}
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await api.access_token("bad-code")

        assert exc_info.value.status_code == 401
        assert "authorization grant is invalid" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_access_token_malformed(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="POST", url=f"{BASE_URL}/oauth/token", json={"foo": "bar"})

        with pytest.raises(RemoteServiceError):
            await api.access_token("auth-code")

    @pytest.mark.asyncio
    async def test_refresh_token(self, api, httpx_mock: HTTPXMock, token_response):
        httpx_mock.add_response(method="POST", url=f"{BASE_URL}/oauth/token", json=token_response)

        oauth = await api.refresh_token("refresh-token")

        assert oauth.access_token == "access-token"
        form = _form(httpx_mock.get_request())
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "refresh-token"

    def test_auth_url(self, api):
        url = urlsplit(api.get_auth_url())
        assert f"{url.scheme}://{url.netloc}{url.path}" == f"{BASE_URL}/oauth/authorize"
        assert {key: values[0] for key, values in parse_qs(url.query).items()} == {
            "client_id": "client-id",
            "redirect_uri": "http://localhost:8000/auth/shikimori",
            "response_type": "code",
        }

    @pytest.mark.asyncio
    async def test_current_user(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE_URL}/api/users/whoami",
            json={"id": 123, "nickname": "guts"}
        )

        assert await api.get_current_user() == 123
        assert httpx_mock.get_request().headers["Authorization"] == "Bearer access-token"


# ============================================================================
# Library entries
# ============================================================================

class TestShikimoriLibrary:
    """Test user_rates calls."""

    @pytest.mark.asyncio
    async def test_add_lib_manga_payload(self, api, httpx_mock: HTTPXMock, track, user_rate_response):
        httpx_mock.add_response(method="POST", url=USER_RATES_URL, json=user_rate_response)

        result = await api.add_lib_manga(track, "123")

        assert result is track
        assert track.library_id == 555

        payload = json.loads(httpx_mock.get_request().content)
        assert payload == {
            "user_rate": {
                "user_id": "123",
                "target_id": 2,
                "target_type": "Manga",
                "chapters": 42,
                "score": 8,
                "status": "completed",
            }
        }

    @pytest.mark.asyncio
    async def test_add_lib_manga_without_id_keeps_library_id(self, api, httpx_mock: HTTPXMock, track):
        track.library_id = 777
        httpx_mock.add_response(method="POST", url=USER_RATES_URL, json={})

        await api.add_lib_manga(track, "123")

        assert track.library_id == 777

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["not-a-number", [1], {"id": 1}])
    async def test_add_lib_manga_malformed_id(self, api, httpx_mock: HTTPXMock, track, bad_id):
        """A non-integer entry id is reported as a remote error."""
        track.library_id = 777
        httpx_mock.add_response(method="POST", url=USER_RATES_URL, json={"id": bad_id})

        with pytest.raises(RemoteServiceError) as exc_info:
            await api.add_lib_manga(track, "123")

        assert "Unexpected user_rate response" in str(exc_info.value)
        assert track.library_id == 777

    @pytest.mark.asyncio
    async def test_update_uses_upsert_endpoint(self, api, httpx_mock: HTTPXMock, track, user_rate_response):
        httpx_mock.add_response(method="POST", url=USER_RATES_URL, json=user_rate_response)

        await api.update_lib_manga(track, "123")

        assert httpx_mock.get_request().method == "POST"

    @pytest.mark.asyncio
    async def test_add_rejected_payload(self, api, httpx_mock: HTTPXMock, track):
        httpx_mock.add_response(
            method="POST",
            url=USER_RATES_URL,
            status_code=422,
            json={"errors": ["Score is invalid"]}
        )

        with pytest.raises(RemoteServiceError) as exc_info:
            await api.add_lib_manga(track, "123")

        assert type(exc_info.value) is RemoteServiceError
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_add_unknown_status(self, api, track):
        track.status = 0
        with pytest.raises(ValueError):
            await api.add_lib_manga(track, "123")

    @pytest.mark.asyncio
    async def test_find_lib_manga(self, api, httpx_mock: HTTPXMock, track, manga_response, user_rate_response):
        httpx_mock.add_response(method="GET", url=f"{BASE_URL}/api/mangas/2", json=manga_response)
        httpx_mock.add_response(
            method="GET",
            url=f"{USER_RATES_URL}?user_id=123&target_id=2&target_type=Manga",
            json=[user_rate_response]
        )

        remote = await api.find_lib_manga(track, "123")

        assert remote.library_id == 555
        assert remote.media_id == 2
        assert remote.title == "Berserk"
        assert remote.last_chapter_read == 120.0
        assert remote.score == 9.0
        assert remote.status == 6
        assert remote.total_chapters == 380
        assert remote.tracking_url == f"{BASE_URL}/mangas/2-berserk"
        assert remote.sync_id == 4

    @pytest.mark.asyncio
    async def test_find_lib_manga_not_in_list(self, api, httpx_mock: HTTPXMock, track, manga_response):
        httpx_mock.add_response(method="GET", url=f"{BASE_URL}/api/mangas/2", json=manga_response)
        httpx_mock.add_response(
            method="GET",
            url=f"{USER_RATES_URL}?user_id=123&target_id=2&target_type=Manga",
            json=[]
        )

        assert await api.find_lib_manga(track, "123") is None

    @pytest.mark.asyncio
    async def test_find_lib_manga_too_many(self, api, httpx_mock: HTTPXMock, track, manga_response, user_rate_response):
        httpx_mock.add_response(method="GET", url=f"{BASE_URL}/api/mangas/2", json=manga_response)
        httpx_mock.add_response(
            method="GET",
            url=f"{USER_RATES_URL}?user_id=123&target_id=2&target_type=Manga",
            json=[user_rate_response, dict(user_rate_response, id=556)]
        )

        with pytest.raises(RemoteServiceError, match="Too many"):
            await api.find_lib_manga(track, "123")

    @pytest.mark.asyncio
    async def test_find_lib_manga_unknown_remote_status(self, api, httpx_mock: HTTPXMock, track, manga_response, user_rate_response):
        httpx_mock.add_response(method="GET", url=f"{BASE_URL}/api/mangas/2", json=manga_response)
        httpx_mock.add_response(
            method="GET",
            url=f"{USER_RATES_URL}?user_id=123&target_id=2&target_type=Manga",
            json=[dict(user_rate_response, status="watching_later")]
        )

        with pytest.raises(RemoteServiceError):
            await api.find_lib_manga(track, "123")


# ============================================================================
# Search
# ============================================================================

class TestShikimoriSearch:
    """Test title search."""

    SEARCH_URL = f"{BASE_URL}/api/mangas?order=popularity&search=Berserk&limit=20"

    @pytest.mark.asyncio
    async def test_search(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            method="GET",
            url=self.SEARCH_URL,
            json=[
                {
                    "id": 2,
                    "name": "Berserk",
                    "url": "/mangas/2-berserk",
                    "chapters": 380,
                    "image": {"preview": "/system/mangas/preview/2.jpg"},
                    "kind": "manga",
                    "status": "ongoing",
                    "aired_on": "1989-08-25",
                },
                {
                    "id": 1245,
                    "name": "Berserk: The Prototype",
                    "url": "/mangas/1245-berserk-the-prototype",
                    "chapters": 0,
                    "image": {"preview": "/system/mangas/preview/1245.jpg"},
                    "kind": "one_shot",
                    "status": "released",
                    "aired_on": None,
                },
            ]
        )

        results = await api.search("Berserk")

        assert len(results) == 2
        first = results[0]
        assert first.media_id == 2
        assert first.title == "Berserk"
        assert first.total_chapters == 380
        assert first.cover_url == f"{BASE_URL}/system/mangas/preview/2.jpg"
        assert first.tracking_url == f"{BASE_URL}/mangas/2-berserk"
        assert first.publishing_type == "manga"
        assert first.publishing_status == "ongoing"
        assert first.start_date == "1989-08-25"
        assert first.summary == ""
        assert results[1].start_date == ""

        assert httpx_mock.get_request().headers["Authorization"] == "Bearer access-token"

    @pytest.mark.asyncio
    async def test_search_empty(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=self.SEARCH_URL, json=[])

        assert await api.search("Berserk") == []

    @pytest.mark.asyncio
    async def test_search_malformed_entry(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(method="GET", url=self.SEARCH_URL, json=[{"id": 2}])

        with pytest.raises(RemoteServiceError):
            await api.search("Berserk")

    @pytest.mark.asyncio
    async def test_search_not_authenticated(self, api, interceptor):
        interceptor.get_headers.side_effect = NotAuthenticatedError("Shikimori")

        with pytest.raises(NotAuthenticatedError):
            await api.search("Berserk")


# ============================================================================
# Error handling
# ============================================================================

class TestShikimoriErrors:
    """Test HTTP and transport failure mapping."""

    WHOAMI_URL = f"{BASE_URL}/api/users/whoami"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [502, 503, 504])
    async def test_gateway_errors_are_network_errors(self, api, httpx_mock: HTTPXMock, status_code):
        httpx_mock.add_response(url=self.WHOAMI_URL, status_code=status_code, text="Bad gateway")

        with pytest.raises(RemoteNetworkError) as exc_info:
            await api.get_current_user()

        assert exc_info.value.status_code == status_code

    @pytest.mark.asyncio
    async def test_rate_limited(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=self.WHOAMI_URL,
            status_code=429,
            headers={"Retry-After": "5"},
            text="Retry later"
        )

        with pytest.raises(RemoteNetworkError) as exc_info:
            await api.get_current_user()

        assert exc_info.value.retry_after == 5

    @pytest.mark.asyncio
    async def test_forbidden(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=self.WHOAMI_URL, status_code=403, json={"message": "Forbidden"})

        with pytest.raises(AuthenticationError):
            await api.get_current_user()

    @pytest.mark.asyncio
    async def test_timeout(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ReadTimeout("Timed out"))

        with pytest.raises(RemoteNetworkError) as exc_info:
            await api.get_current_user()

        assert isinstance(exc_info.value.original_exception, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_connection_error(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with pytest.raises(RemoteNetworkError, match="Cannot connect"):
            await api.get_current_user()

    @pytest.mark.asyncio
    async def test_invalid_json(self, api, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=self.WHOAMI_URL, text="<html>maintenance</html>")

        with pytest.raises(RemoteServiceError, match="Invalid JSON"):
            await api.get_current_user()


# ============================================================================
# Status helpers
# ============================================================================

class TestStatusTranslation:
    """Test local <-> remote status mapping."""

    @pytest.mark.parametrize("code,remote", [
        (1, "watching"),
        (2, "completed"),
        (3, "on_hold"),
        (4, "dropped"),
        (5, "planned"),
        (6, "rewatching"),
    ])
    def test_mapping(self, code, remote):
        assert to_shikimori_status(code) == remote
        assert to_track_status(remote) == code

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            to_shikimori_status(7)

    def test_unknown_remote_status(self):
        with pytest.raises(ValueError):
            to_track_status("reading")
