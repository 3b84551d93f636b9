"""Application lifespan management."""

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI

from now_playing_sync import __version__
from now_playing_sync.core.engine import SyncEngine
from now_playing_sync.logging_config import get_logger, log_with_context, redact_sensitive_data

logger = get_logger(__name__)


async def log_request(request: httpx.Request) -> None:
    """Event hook to log outbound requests with redacted sensitive data."""
    log_with_context(
        logger,
        "debug",
        "HTTP Request",
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="http_request",
    )


async def log_response(response: httpx.Response) -> None:
    """Event hook to log responses with redacted sensitive data."""
    log_with_context(
        logger,
        "debug",
        "HTTP Response",
        status_code=response.status_code,
        url=redact_sensitive_data(str(response.request.url)),
        event_type="http_response",
    )


def create_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    """Shared client with connection pooling and bounded timeouts on every phase."""
    event_hooks: dict[str, list[Callable[..., Any]]] = {
        "request": [log_request],
        "response": [log_response],
    }
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=5.0,
            read=timeout,
            write=5.0,
            pool=5.0,
        ),
        limits=httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,
        ),
        follow_redirects=True,
        event_hooks=event_hooks,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the HTTP client and the sync engine, tear both down on shutdown.

    Exceptions after yield are re-raised so cleanup is never skipped silently.
    """
    settings = app.state.settings
    app.state.startup_time = time.time()
    app.state.request_count = 0

    log_with_context(
        logger,
        "info",
        "Starting Now Playing Sync",
        version=__version__,
        event_type="app_startup",
    )

    client = create_http_client(settings.http_timeout)
    app.state.http_client = client

    engine = SyncEngine(settings, client)
    app.state.engine = engine
    await engine.initialize()

    try:
        yield
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Application error during lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="app_error",
        )
        raise
    finally:
        log_with_context(logger, "info", "Shutting down Now Playing Sync", event_type="app_shutdown")
        await engine.cleanup()
        await client.aclose()
        log_with_context(logger, "info", "HTTP client closed", event_type="http_client_cleanup")
