"""Informational Spotify routes."""

from fastapi import APIRouter, Depends, Query

from now_playing_sync.core.engine import SyncEngine
from now_playing_sync.dependencies import get_engine
from now_playing_sync.models import RecentTrack, TrackDetails
from now_playing_sync.security import verify_api_key
from now_playing_sync.services import spotify_service

router = APIRouter(dependencies=[Depends(verify_api_key)])


@router.get(
    "/track",
    response_model=TrackDetails | None,
    summary="Details of the current track",
    responses={
        200: {
            "description": "Track details, or null when nothing is playing",
            "content": {
                "application/json": {
                    "example": {
                        "title": "Bohemian Rhapsody",
                        "artists": ["Queen"],
                        "album": "A Night at the Opera",
                        "explicit": False,
                        "popularity": 83,
                    }
                }
            },
        },
        502: {"description": "Spotify API error"},
    },
)
async def track_details(engine: SyncEngine = Depends(get_engine)) -> TrackDetails | None:
    """Album, explicit flag and popularity of the current track."""
    return await spotify_service.get_track_details(engine.spotify)


@router.get("/recent", response_model=list[RecentTrack], summary="Recently played tracks")
async def recently_played(
    engine: SyncEngine = Depends(get_engine),
    limit: int = Query(default=5, ge=1, le=50, description="Number of tracks"),
) -> list[RecentTrack]:
    """Most recently played tracks, newest first."""
    return await spotify_service.get_recently_played(engine.spotify, limit)
