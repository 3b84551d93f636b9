"""Models for the sync target, the scheduler and the HTTP control surface."""

from enum import Enum
from pydantic import BaseModel, Field

from now_playing_sync.models.playback import UNKNOWN, PlaybackSentinel, PlaybackState


class Outcome(str, Enum):
    """Result of one fetch-then-reconcile cycle."""

    SUCCESS = "success"
    FAILURE = "failure"


class ControlAction(str, Enum):
    """Playback control actions forwarded to Spotify."""

    PAUSE = "pause"
    RESUME = "resume"
    SKIP = "skip"


class SyncTarget(BaseModel):
    """Destination channel and the message currently mirroring playback."""

    surface_id: str
    artifact_id: str | None = None


class ScheduleState(BaseModel):
    """Inputs of the next delay computation. Only the scheduler mutates it."""

    last_outcome: Outcome | None = None
    last_state: PlaybackState | PlaybackSentinel = UNKNOWN
    consecutive_failures: int = 0
    current_delay: float = 0.0
    backoff_base: float = 0.0


class ToggleRequest(BaseModel):
    """Request body for on/off switches."""

    enabled: bool


class ControlResponse(BaseModel):
    """Response of a control action."""

    status: str
    action: ControlAction


class ScheduleSnapshot(BaseModel):
    """Read-only view of the scheduler for status and diagnostics."""

    last_outcome: Outcome | None = None
    last_state: str = Field(..., description="Track id of the last observation, or idle/unknown")
    consecutive_failures: int = 0
    current_delay: float = Field(..., description="Seconds until the next cycle once the current one ends")
    in_flight: bool = False
    cycles_completed: int = 0


class SyncStatusResponse(BaseModel):
    """Snapshot of the sync engine."""

    running: bool
    auto_updates: bool
    smart_case: bool
    uptime_seconds: int
    target: SyncTarget
    schedule: ScheduleSnapshot


class TrackDetails(BaseModel):
    """Detailed info about the current track."""

    title: str
    artists: list[str]
    album: str | None = None
    explicit: bool = False
    popularity: int | None = None


class RecentTrack(BaseModel):
    """One entry of the recently played list."""

    title: str
    artists: list[str]
    played_at: str | None = None
