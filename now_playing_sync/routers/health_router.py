"""Health and debug endpoints."""

import platform
import sys
import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from now_playing_sync import __version__
from now_playing_sync.config import Settings
from now_playing_sync.core.engine import SyncEngine
from now_playing_sync.dependencies import get_app_settings, get_engine
from now_playing_sync.models import CadenceSettings, DebugInfo, HealthResponse, ReadinessChecks, ReadinessResponse
from now_playing_sync.security import get_trusted_hosts, verify_api_key

router = APIRouter()

UNHEALTHY_AFTER_FAILURES = 3


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic health check endpoint for container healthchecks."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(engine: SyncEngine = Depends(get_engine)):
    """Readiness of the sync loop.

    - sync_loop: running, or deliberately paused through auto-updates
    - spotify_auth: whether a usable access token is cached
    - consecutive_failures: failed cycles since the last success

    **Returns:**
    - 200: the loop is healthy
    - 503: the loop is stopped unexpectedly or failing repeatedly
    """
    if engine.scheduler.running:
        sync_loop = "ok"
    elif not engine.auto_updates:
        sync_loop = "paused"
    else:
        sync_loop = "stopped"

    checks = ReadinessChecks(
        sync_loop=sync_loop,
        spotify_auth="ok" if engine.credentials.has_valid_token() else "no_token",
        consecutive_failures=engine.scheduler.state.consecutive_failures,
    )
    healthy = checks.sync_loop != "stopped" and checks.consecutive_failures < UNHEALTHY_AFTER_FAILURES

    return JSONResponse(
        status_code=200 if healthy else 503,
        content=ReadinessResponse(
            status="healthy" if healthy else "unhealthy",
            version=__version__,
            timestamp=datetime.now(UTC),
            checks=checks,
        ).model_dump(mode="json"),
    )


@router.get(
    "/debug",
    response_model=DebugInfo,
    dependencies=[Depends(verify_api_key)],
    responses={
        200: {"description": "System diagnostics and state information"},
        401: {"description": "Unauthorized - missing or invalid API key"},
    },
)
async def debug_info(
    request: Request,
    engine: SyncEngine = Depends(get_engine),
    settings: Settings = Depends(get_app_settings),
):
    """Process info, sync engine state and the effective cadence.

    **Authentication Required:** Bearer token.
    """
    startup_time = getattr(request.app.state, "startup_time", time.time())
    return DebugInfo(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        platform=platform.system(),
        uptime_seconds=int(time.time() - startup_time),
        log_level=settings.log_level,
        sync=engine.status(),
        spotify_authenticated=engine.credentials.has_valid_token(),
        token_exchanges=engine.credentials.exchange_count,
        listener_name=settings.listener_name,
        trusted_hosts=get_trusted_hosts(settings),
        cadence=CadenceSettings(
            idle_interval=settings.idle_interval,
            playing_interval=settings.playing_interval,
            playing_growth=settings.playing_growth,
            playing_max_interval=settings.playing_max_interval,
            startup_delay=settings.startup_delay,
            backoff_growth=settings.backoff_growth,
            max_backoff=settings.max_backoff,
        ),
        total_requests=getattr(request.app.state, "request_count", 0),
    )
