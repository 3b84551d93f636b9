"""Middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from slowapi import Limiter
from slowapi.util import get_remote_address

from now_playing_sync.config import Settings
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.security import get_trusted_hosts

logger = get_logger(__name__)


def setup_middleware(app: FastAPI, settings: Settings) -> Limiter:
    """Configure all middleware for the application.

    Returns:
        Limiter instance for rate limiting
    """
    trusted_hosts = get_trusted_hosts(settings)
    log_with_context(
        logger,
        "info",
        "Configuring TrustedHost middleware",
        event_type="security_config",
        hosts=trusted_hosts,
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

    # 60 requests per minute per IP unless a route says otherwise
    limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])
    app.state.limiter = limiter
    app.state.request_count = 0

    @app.middleware("http")
    async def count_requests(request, call_next):
        """Count total requests for the debug endpoint."""
        app.state.request_count += 1
        return await call_next(request)

    return limiter
