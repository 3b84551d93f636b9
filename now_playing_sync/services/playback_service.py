"""Currently-playing polling and normalization into the canonical state."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from now_playing_sync.exceptions import FetchError, FetchErrorKind
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.models import IDLE, Observation, PlaybackState
from now_playing_sync.services.spotify_service import SpotifyClient, raise_for_spotify_status
from now_playing_sync.utils.text import smart_lowercase

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def parse_playback(
    data: dict[str, Any],
    now: datetime,
    smart_case: bool = True,
) -> Observation:
    """Build a PlaybackState from a currently-playing payload.

    Args:
        data: Decoded JSON body
        now: Observation instant, used to place the track on the timeline
        smart_case: Apply smart_lowercase to title and artist names

    Returns:
        PlaybackState, or IDLE when the payload carries no track (ads, private session)

    Raises:
        FetchError: Permanent, if the payload does not have the expected shape
    """
    if not isinstance(data, dict):
        raise FetchError("Unexpected playback payload: not an object", FetchErrorKind.PERMANENT)

    item = data.get("item")
    if not item:
        return IDLE

    try:
        title = item["name"]
        artists = [artist["name"] for artist in item.get("artists") or []]
        duration_ms = int(item["duration_ms"])
        progress_ms = int(data.get("progress_ms") or 0)
        images = (item.get("album") or {}).get("images") or []
        album_art_url = images[0].get("url") if images else None
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise FetchError(f"Unexpected playback payload: {e!r}", FetchErrorKind.PERMANENT) from e

    duration_ms = max(duration_ms, 0)
    progress_ms = min(max(progress_ms, 0), duration_ms)

    if smart_case:
        title = smart_lowercase(title)
        artists = [smart_lowercase(artist) for artist in artists]

    started_at = now - timedelta(milliseconds=progress_ms)
    return PlaybackState(
        track_id=item.get("id") or item.get("uri") or title,
        title=title,
        artist_names=tuple(artists),
        album_art_url=album_art_url,
        started_at=started_at,
        ends_at=started_at + timedelta(milliseconds=duration_ms),
        progress_ms=progress_ms,
        duration_ms=duration_ms,
        is_playing=bool(data.get("is_playing", False)),
    )


class PlaybackStateFetcher:
    """Reads the currently-playing endpoint and returns the canonical state."""

    def __init__(
        self,
        spotify: SpotifyClient,
        smart_case: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._spotify = spotify
        self.smart_case = smart_case
        self._clock = clock

    async def fetch(self) -> Observation:
        """Poll Spotify once.

        Returns:
            PlaybackState, or IDLE when Spotify reports no content

        Raises:
            AuthError: If the credential cannot be refreshed
            FetchError: Transient for timeouts, 401 after retry, 429 and 5xx;
                permanent for other statuses and malformed payloads
        """
        response = await self._spotify.request("GET", "/me/player/currently-playing")
        if response.status_code == 204:
            log_with_context(logger, "debug", "Nothing playing", event_type="playback_idle")
            return IDLE
        raise_for_spotify_status(response, "playback state")

        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(f"Playback payload is not JSON: {e}", FetchErrorKind.PERMANENT) from e

        state = parse_playback(data, self._clock(), smart_case=self.smart_case)
        if isinstance(state, PlaybackState):
            log_with_context(
                logger,
                "debug",
                "Playback observed",
                track_id=state.track_id,
                is_playing=state.is_playing,
                progress_ms=state.progress_ms,
                event_type="playback_observed",
            )
        return state
