"""API key authentication for the control endpoints."""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from now_playing_sync.config import Settings
from now_playing_sync.dependencies import get_app_settings
from now_playing_sync.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(request: Request, reason: str) -> HTTPException:
    log_with_context(
        logger,
        "warning",
        reason,
        event_type="auth_failure",
        path=str(request.url.path),
        ip=request.client.host if request.client else "unknown",
    )
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=reason,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_api_key(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Require `Authorization: Bearer <API_KEY>`.

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    if not credentials:
        raise _unauthorized(request, "Missing API key")
    if not secrets.compare_digest(credentials.credentials.encode(), settings.api_key.encode()):
        raise _unauthorized(request, "Invalid API key")


def get_trusted_hosts(settings: Settings) -> list[str]:
    """Split the comma-separated TRUSTED_HOSTS setting."""
    return [host.strip() for host in settings.trusted_hosts.split(",") if host.strip()]
