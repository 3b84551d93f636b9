"""Canonical playback models derived from Spotify responses."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PlaybackSentinel(str, Enum):
    """Observations that carry no track."""

    IDLE = "idle"
    UNKNOWN = "unknown"


IDLE = PlaybackSentinel.IDLE
UNKNOWN = PlaybackSentinel.UNKNOWN


def format_duration(ms: int) -> str:
    """Format milliseconds as m:ss."""
    total_seconds = ms // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


class Credential(BaseModel):
    """Bearer token with the instant (epoch seconds) it stops being trusted."""

    model_config = ConfigDict(frozen=True)

    token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class PlaybackState(BaseModel):
    """One observation of the player. A new value is built on every poll."""

    model_config = ConfigDict(frozen=True)

    track_id: str
    title: str
    artist_names: tuple[str, ...] = ()
    album_art_url: str | None = None
    started_at: datetime
    ends_at: datetime
    progress_ms: int = Field(ge=0)
    duration_ms: int = Field(ge=0)
    is_playing: bool

    @property
    def artist_line(self) -> str:
        return ", ".join(self.artist_names)

    @property
    def progress_label(self) -> str:
        return format_duration(self.progress_ms)

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration_ms)


Observation = PlaybackState | PlaybackSentinel
