"""FastAPI dependencies for dependency injection."""

from typing import TYPE_CHECKING

from fastapi import Request

from now_playing_sync.config import Settings

if TYPE_CHECKING:
    from now_playing_sync.core.engine import SyncEngine


async def get_app_settings(request: Request) -> Settings:
    """
    Get the settings the application was created with.

    Raises:
        RuntimeError: If the app was built without settings.
    """
    settings: Settings | None = getattr(request.app.state, "settings", None)

    if settings is None:
        raise RuntimeError("Settings not initialized.")

    return settings


async def get_engine(request: Request) -> "SyncEngine":
    """
    Get the sync engine from app state.

    Raises:
        RuntimeError: If the engine is not initialized.
    """
    engine = getattr(request.app.state, "engine", None)

    if engine is None:
        raise RuntimeError("Sync engine not initialized.")

    return engine
