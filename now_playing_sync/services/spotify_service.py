"""Spotify Web API service."""

from typing import Any

import httpx

from now_playing_sync.exceptions import FetchError, FetchErrorKind
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.models import RecentTrack, TrackDetails
from now_playing_sync.state_managers import CredentialCache

logger = get_logger(__name__)

SPOTIFY_API_BASE = "https://api.spotify.com/v1"


class SpotifyClient:
    """Authorized requests against the Spotify Web API.

    A 401 response triggers exactly one forced credential refresh and one
    retry. Timeouts and transport errors surface as transient FetchErrors.
    """

    def __init__(self, client: httpx.AsyncClient, credentials: CredentialCache, timeout: float = 10.0):
        self._client = client
        self._credentials = credentials
        self._timeout = timeout

    @property
    def credentials(self) -> CredentialCache:
        return self._credentials

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send an authorized request and return the raw response.

        Args:
            method: HTTP method
            path: Path below the API base, e.g. "/me/player/pause"
            **kwargs: Passed through to httpx (params, json, ...)

        Raises:
            AuthError: If the credential cannot be refreshed
            FetchError: On timeout or transport failure
        """
        credential = await self._credentials.get_token()
        response = await self._send(method, path, credential.token, **kwargs)
        if response.status_code == 401:
            log_with_context(
                logger,
                "info",
                "Spotify rejected access token, refreshing once",
                path=path,
                event_type="token_rejected",
            )
            credential = await self._credentials.refresh(stale=credential)
            response = await self._send(method, path, credential.token, **kwargs)
        return response

    async def _send(self, method: str, path: str, token: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(
                method,
                f"{SPOTIFY_API_BASE}{path}",
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
                **kwargs,
            )
        except httpx.TimeoutException as e:
            raise FetchError(f"Spotify request timed out: {method} {path}", FetchErrorKind.TRANSIENT) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Spotify request failed: {e}", FetchErrorKind.TRANSIENT) from e


def raise_for_spotify_status(response: httpx.Response, what: str) -> None:
    """Map a non-success Spotify response to a FetchError.

    401, 429 and 5xx are worth retrying later; anything else is permanent.
    """
    if response.is_success:
        return
    status = response.status_code
    kind = FetchErrorKind.TRANSIENT if status in (401, 429) or status >= 500 else FetchErrorKind.PERMANENT
    raise FetchError(
        f"Failed to get {what}: Spotify returned {status}",
        kind,
        details={"status_code": status},
    )


async def get_track_details(spotify: SpotifyClient) -> TrackDetails | None:
    """Get album, explicit flag and popularity of the current track.

    Returns:
        TrackDetails, or None when nothing is playing
    """
    response = await spotify.request("GET", "/me/player/currently-playing")
    if response.status_code == 204:
        return None
    raise_for_spotify_status(response, "track details")

    try:
        item = response.json().get("item")
        if not item:
            return None
        return TrackDetails(
            title=item["name"],
            artists=[artist["name"] for artist in item.get("artists", [])],
            album=(item.get("album") or {}).get("name"),
            explicit=bool(item.get("explicit", False)),
            popularity=item.get("popularity"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise FetchError(f"Unexpected track payload: {e}", FetchErrorKind.PERMANENT) from e


async def get_recently_played(spotify: SpotifyClient, limit: int = 5) -> list[RecentTrack]:
    """Get the most recently played tracks, newest first."""
    response = await spotify.request("GET", "/me/player/recently-played", params={"limit": limit})
    raise_for_spotify_status(response, "recently played tracks")

    try:
        return [
            RecentTrack(
                title=entry["track"]["name"],
                artists=[artist["name"] for artist in entry["track"].get("artists", [])],
                played_at=entry.get("played_at"),
            )
            for entry in response.json().get("items", [])
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise FetchError(f"Unexpected recently played payload: {e}", FetchErrorKind.PERMANENT) from e
