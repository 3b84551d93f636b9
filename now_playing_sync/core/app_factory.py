"""Application factory for creating and configuring the FastAPI app."""

from fastapi import FastAPI

from now_playing_sync import __version__
from now_playing_sync.config import Settings, get_settings
from now_playing_sync.core.lifespan import lifespan
from now_playing_sync.core.middleware import setup_middleware
from now_playing_sync.middleware.error_handlers import register_error_handlers
from now_playing_sync.routers import control_router, health_router, spotify_router, sync_router


def custom_openapi(app: FastAPI):
    """Generate OpenAPI schema with the Bearer security scheme on /api routes."""
    if app.openapi_schema:
        return app.openapi_schema

    from fastapi.openapi.utils import get_openapi

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "API Key",
            "description": "Enter your API key",
        }
    }

    for path, path_item in openapi_schema.get("paths", {}).items():
        for method, operation in path_item.items():
            if method in ["get", "post", "put", "delete", "patch"]:
                if path.startswith("/api/") or path == "/debug":
                    operation["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use (defaults to the environment singleton)

    Returns:
        Configured FastAPI application instance
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Now Playing Sync API",
        description="""
        Keeps one Discord message in sync with what is playing on Spotify.

        ## Authentication
        All `/api` endpoints and `/debug` require `Authorization: Bearer <API_KEY>`.

        ## Health & Monitoring
        - `/health` - Basic health check
        - `/health/ready` - Sync loop readiness
        - `/debug` - Engine state and diagnostics

        ## Rate Limits
        - Most endpoints: 60 requests/minute per IP
        - Playback control: 30 requests/minute per IP
        """,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_middleware(app, settings)
    register_error_handlers(app)

    app.include_router(health_router.router, tags=["health"])
    app.include_router(control_router.router, prefix="/api/control", tags=["control"])
    app.include_router(sync_router.router, prefix="/api/sync", tags=["sync"])
    app.include_router(spotify_router.router, prefix="/api/spotify", tags=["spotify"])

    app.openapi = lambda: custom_openapi(app)

    return app
