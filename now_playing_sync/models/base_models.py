"""Response models for the health and diagnostics endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from now_playing_sync.models.sync import SyncStatusResponse


class HealthResponse(BaseModel):
    """Liveness answer; says nothing about the sync loop."""

    status: str
    version: str


class ReadinessChecks(BaseModel):
    """Per-component readiness of the sync loop."""

    sync_loop: Literal["ok", "paused", "stopped"] = Field(
        ..., description="paused means auto-updates were switched off on purpose"
    )
    spotify_auth: Literal["ok", "no_token"] = Field(..., description="Whether a usable access token is cached")
    consecutive_failures: int = Field(..., ge=0, description="Failed cycles since the last success")


class ReadinessResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    version: str
    timestamp: datetime
    checks: ReadinessChecks


class CadenceSettings(BaseModel):
    """Effective polling cadence, in seconds unless a growth factor."""

    idle_interval: float
    playing_interval: float
    playing_growth: float
    playing_max_interval: float
    startup_delay: float
    backoff_growth: float
    max_backoff: float


class DebugInfo(BaseModel):
    """Process, engine and sanitized configuration snapshot. Never carries secrets."""

    version: str
    python_version: str
    platform: str
    uptime_seconds: int
    log_level: str
    sync: SyncStatusResponse
    spotify_authenticated: bool
    token_exchanges: int = Field(..., description="Refresh-token exchanges since startup")
    listener_name: str
    trusted_hosts: list[str]
    cadence: CadenceSettings
    total_requests: int
