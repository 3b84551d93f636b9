"""Now Playing Sync models"""

from now_playing_sync.models.base_models import (
    CadenceSettings,
    DebugInfo,
    HealthResponse,
    ReadinessChecks,
    ReadinessResponse,
)
from now_playing_sync.models.playback import IDLE, UNKNOWN, Credential, Observation, PlaybackSentinel, PlaybackState
from now_playing_sync.models.sync import (
    ControlAction,
    ControlResponse,
    Outcome,
    RecentTrack,
    ScheduleSnapshot,
    ScheduleState,
    SyncStatusResponse,
    SyncTarget,
    ToggleRequest,
    TrackDetails,
)

__all__ = [
    "CadenceSettings",
    "DebugInfo",
    "HealthResponse",
    "ReadinessChecks",
    "ReadinessResponse",
    "IDLE",
    "UNKNOWN",
    "Credential",
    "Observation",
    "PlaybackSentinel",
    "PlaybackState",
    "ControlAction",
    "ControlResponse",
    "Outcome",
    "RecentTrack",
    "ScheduleSnapshot",
    "ScheduleState",
    "SyncStatusResponse",
    "SyncTarget",
    "ToggleRequest",
    "TrackDetails",
]
