"""Discord embed rendering for the canonical playback state."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from now_playing_sync.models import Observation, PlaybackState

SPOTIFY_GREEN = 0x1DB954
IDLE_GREY = 0x535353


def discord_timestamp(moment: datetime, style: str = "t") -> str:
    """Format an instant as a Discord timestamp tag rendered in the reader's timezone."""
    return f"<t:{int(moment.timestamp())}:{style}>"


class EmbedRenderer:
    """Turns PlaybackState or IDLE into a Discord message payload."""

    def __init__(self, listener_name: str, clock: Callable[[], datetime] = lambda: datetime.now(UTC)):
        self.listener_name = listener_name
        self._clock = clock

    def render(self, state: Observation) -> dict[str, Any]:
        """Render a message payload: {"embeds": [embed]}."""
        if isinstance(state, PlaybackState):
            embed = self._render_track(state)
        else:
            embed = self._render_idle()
        embed["timestamp"] = self._clock().isoformat()
        return {"embeds": [embed]}

    def _render_track(self, state: PlaybackState) -> dict[str, Any]:
        title = f"{state.title} — {state.artist_line}" if state.artist_names else state.title
        if state.is_playing:
            description = f"{self.listener_name} is currently listening to:"
            color = SPOTIFY_GREEN
        else:
            description = f"{self.listener_name} paused:"
            color = IDLE_GREY

        embed: dict[str, Any] = {
            "title": title,
            "description": description,
            "color": color,
            "fields": [
                {"name": "started", "value": discord_timestamp(state.started_at), "inline": True},
                {"name": "ends", "value": discord_timestamp(state.ends_at), "inline": True},
                {"name": "progress", "value": f"{state.progress_label} / {state.duration_label}", "inline": True},
            ],
        }
        if state.album_art_url:
            embed["image"] = {"url": state.album_art_url}
        return embed

    def _render_idle(self) -> dict[str, Any]:
        return {
            "title": "nothing playing",
            "description": f"{self.listener_name} is not listening to anything right now.",
            "color": IDLE_GREY,
        }
