"""Routes that inspect and steer the sync loop."""

from typing import Any

from fastapi import APIRouter, Depends

from now_playing_sync.core.engine import SyncEngine
from now_playing_sync.dependencies import get_engine
from now_playing_sync.models import SyncStatusResponse, ToggleRequest
from now_playing_sync.security import verify_api_key

router = APIRouter(dependencies=[Depends(verify_api_key)])


@router.get("/status", response_model=SyncStatusResponse, summary="Sync loop status")
async def sync_status(engine: SyncEngine = Depends(get_engine)) -> SyncStatusResponse:
    """Uptime, toggles, current message id and scheduler state."""
    return engine.status()


@router.post("/smart-case", summary="Toggle smart capitalization")
async def set_smart_case(body: ToggleRequest, engine: SyncEngine = Depends(get_engine)) -> dict[str, Any]:
    """Lowercase titles unless they are all caps. Takes effect on the next poll."""
    engine.smart_case = body.enabled
    return {"smart_case": engine.smart_case}


@router.post("/auto-updates", summary="Start or stop the sync loop")
async def set_auto_updates(body: ToggleRequest, engine: SyncEngine = Depends(get_engine)) -> dict[str, Any]:
    """Stopping lets a running cycle finish; starting begins again from the Idle state."""
    await engine.set_auto_updates(body.enabled)
    return {"auto_updates": engine.auto_updates, "running": engine.scheduler.running}


@router.post("/resend", summary="Post a fresh now-playing message")
async def resend(engine: SyncEngine = Depends(get_engine)) -> dict[str, Any]:
    """Forget the current message and post a new one.

    While the loop runs the new message is posted by the next cycle,
    which is started right away.
    """
    message_id = await engine.resend()
    if message_id is None and engine.scheduler.running:
        return {"status": "scheduled"}
    return {"status": "sent" if message_id else "failed", "message_id": message_id}


@router.get("/preview", summary="Render the embed without posting it")
async def preview(engine: SyncEngine = Depends(get_engine)) -> dict[str, Any]:
    """Current embed payload, or a notice when nothing is playing."""
    payload = await engine.preview()
    if payload is None:
        return {"playing": False, "message": "No track is currently playing."}
    return {"playing": True, "payload": payload}
