"""Playback control routes (pause / resume / skip)."""

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from now_playing_sync.core.engine import SyncEngine
from now_playing_sync.dependencies import get_engine
from now_playing_sync.models import ControlAction, ControlResponse
from now_playing_sync.security import verify_api_key

router = APIRouter(dependencies=[Depends(verify_api_key)])
limiter = Limiter(key_func=get_remote_address)

ACTION_STATUS = {
    ControlAction.PAUSE: "paused",
    ControlAction.RESUME: "playing",
    ControlAction.SKIP: "skipped",
}


@router.post(
    "/{action}",
    response_model=ControlResponse,
    summary="Control Spotify playback",
    description="""
    Forward a control action to the active Spotify device and refresh the
    now-playing message right after.

    Failures are reported once and never retried.

    **Rate Limited:** 30 requests/minute
    """,
    responses={
        200: {
            "description": "Action accepted",
            "content": {"application/json": {"example": {"status": "paused", "action": "pause"}}},
        },
        401: {"description": "Missing or invalid API key"},
        502: {"description": "Spotify rejected the action (no active device, etc.)"},
    },
)
@limiter.limit("30/minute")
async def control(
    request: Request,
    action: ControlAction,
    engine: SyncEngine = Depends(get_engine),
) -> ControlResponse:
    """Execute a control action."""
    await engine.execute(action)
    return ControlResponse(status=ACTION_STATUS[action], action=action)
