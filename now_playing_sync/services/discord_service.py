"""Discord REST API access for the now-playing message."""

from typing import Any

import httpx

from now_playing_sync.exceptions import MessagingError, MessagingErrorKind

DISCORD_API_BASE = "https://discord.com/api/v10"


class DiscordSurface:
    """Channel and message operations over the Discord REST API.

    404 responses raise MessagingError(NOT_FOUND); any other failure,
    including timeouts, raises MessagingError(OTHER).
    """

    def __init__(self, client: httpx.AsyncClient, bot_token: str, timeout: float = 10.0):
        self._client = client
        self._headers = {"Authorization": f"Bot {bot_token}"}
        self._timeout = timeout

    async def fetch_surface(self, channel_id: str) -> dict[str, Any]:
        """Get a channel by id."""
        response = await self._call("GET", f"/channels/{channel_id}")
        return response.json()

    async def fetch_artifact(self, channel_id: str, message_id: str) -> dict[str, Any]:
        """Get a message by id. Raises NOT_FOUND if it was deleted."""
        response = await self._call("GET", f"/channels/{channel_id}/messages/{message_id}")
        return response.json()

    async def create_artifact(self, channel_id: str, payload: dict[str, Any]) -> str:
        """Post a new message and return its id."""
        response = await self._call("POST", f"/channels/{channel_id}/messages", json=payload)
        try:
            return str(response.json()["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise MessagingError(f"Discord returned no message id: {e}") from e

    async def update_artifact(self, channel_id: str, message_id: str, payload: dict[str, Any]) -> None:
        """Edit an existing message in place."""
        await self._call("PATCH", f"/channels/{channel_id}/messages/{message_id}", json=payload)

    async def _call(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                f"{DISCORD_API_BASE}{path}",
                headers=self._headers,
                timeout=self._timeout,
                **kwargs,
            )
        except httpx.TimeoutException as e:
            raise MessagingError(f"Discord request timed out: {method} {path}") from e
        except httpx.HTTPError as e:
            raise MessagingError(f"Discord request failed: {e}") from e

        if response.status_code == 404:
            raise MessagingError(
                f"Discord resource not found: {path}",
                MessagingErrorKind.NOT_FOUND,
                details={"path": path},
            )
        if not response.is_success:
            raise MessagingError(
                f"Discord error {response.status_code} on {method} {path}",
                details={"status_code": response.status_code, "path": path},
            )
        return response
