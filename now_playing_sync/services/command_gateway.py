"""Playback control actions forwarded to Spotify."""

from now_playing_sync.exceptions import AuthError, ControlError, FetchError
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.models import ControlAction
from now_playing_sync.services.spotify_service import SpotifyClient

logger = get_logger(__name__)

# action -> (method, path)
CONTROL_ENDPOINTS: dict[ControlAction, tuple[str, str]] = {
    ControlAction.PAUSE: ("PUT", "/me/player/pause"),
    ControlAction.RESUME: ("PUT", "/me/player/play"),
    ControlAction.SKIP: ("POST", "/me/player/next"),
}


class CommandGateway:
    """Maps each control action to one Spotify call. Failures are reported once, never retried."""

    def __init__(self, spotify: SpotifyClient):
        self._spotify = spotify

    async def execute(self, action: ControlAction) -> None:
        """Execute a control action.

        Raises:
            ControlError: If Spotify does not accept the action
        """
        method, path = CONTROL_ENDPOINTS[action]
        try:
            response = await self._spotify.request(method, path)
        except (AuthError, FetchError) as e:
            log_with_context(
                logger,
                "warning",
                "Control action failed",
                action=action.value,
                error=e.message,
                event_type="control_failed",
            )
            raise ControlError(f"Spotify {action.value} error: {e.message}", details={"action": action.value}) from e

        if not response.is_success:
            log_with_context(
                logger,
                "warning",
                "Control action rejected",
                action=action.value,
                status_code=response.status_code,
                event_type="control_rejected",
            )
            raise ControlError(
                f"Spotify {action.value} error: status {response.status_code}",
                details={"action": action.value, "status_code": response.status_code},
            )

        log_with_context(logger, "info", "Control action executed", action=action.value, event_type="control_ok")
