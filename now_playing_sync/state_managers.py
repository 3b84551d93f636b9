"""State managers for handling application-wide mutable state.

All state managers inherit from StateManager ABC and are safe to share
between tasks on one event loop.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import httpx

from now_playing_sync.config import Settings
from now_playing_sync.exceptions import AuthError, FetchError, FetchErrorKind
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.models import Credential

logger = get_logger(__name__)

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
DEFAULT_TOKEN_TTL = 3600


class StateManager(ABC):
    """Base class for all state managers."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the state manager (called during app startup)."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Cleanup resources (called during app shutdown)."""
        pass


class CredentialCache(StateManager):
    """Caches the Spotify access token and refreshes it on expiry.

    At most one refresh exchange is in flight at any time. Callers arriving
    while a refresh runs await the same task and receive its credential or
    its exception.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ):
        self._client = client
        self._client_id = settings.spotify_client_id
        self._client_secret = settings.spotify_client_secret
        self._refresh_token = settings.spotify_refresh_token
        self._safety_factor = settings.token_safety_factor
        self._timeout = settings.http_timeout
        self._clock = clock
        self._credential: Credential | None = None
        self._refresh_task: asyncio.Task[Credential] | None = None
        self.exchange_count = 0

    async def initialize(self) -> None:
        """Nothing to prefetch; the first caller triggers the exchange."""
        pass

    async def cleanup(self) -> None:
        """Drop the credential and abandon any in-flight refresh."""
        task = self._refresh_task
        self._refresh_task = None
        self._credential = None
        if task is not None and not task.done():
            task.cancel()

    def has_valid_token(self) -> bool:
        return self._credential is not None and self._credential.is_valid(self._clock())

    async def get_token(self) -> Credential:
        """Return a usable credential, refreshing it if expired.

        Raises:
            AuthError: If Spotify rejects the refresh exchange
            FetchError: If the token endpoint is unreachable or times out
        """
        credential = self._credential
        if credential is not None and credential.is_valid(self._clock()):
            return credential
        return await self._join_refresh()

    async def refresh(self, stale: Credential | None = None) -> Credential:
        """Force a refresh after Spotify rejected `stale`.

        If the cache already holds a different credential, somebody else
        refreshed in the meantime and that credential is returned as-is.
        """
        current = self._credential
        if stale is not None and current is not None and current.token != stale.token:
            return current
        self._credential = None
        return await self._join_refresh()

    async def _join_refresh(self) -> Credential:
        if self._refresh_task is None:
            task = asyncio.create_task(self._exchange())
            task.add_done_callback(self._on_refresh_done)
            self._refresh_task = task
        # Shielded so a cancelled waiter does not cancel the shared exchange
        return await asyncio.shield(self._refresh_task)

    def _on_refresh_done(self, task: asyncio.Task[Credential]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # Mark the exception as retrieved; waiters get it through the shield
            task.exception()

    async def _exchange(self) -> Credential:
        self.exchange_count += 1
        log_with_context(logger, "debug", "Refreshing Spotify access token", event_type="token_refresh")
        try:
            response = await self._client.post(
                SPOTIFY_TOKEN_URL,
                auth=(self._client_id, self._client_secret),
                data={"grant_type": "refresh_token", "refresh_token": self._refresh_token},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise FetchError("Spotify token endpoint timed out", FetchErrorKind.TRANSIENT) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Spotify token endpoint unreachable: {e}", FetchErrorKind.TRANSIENT) from e

        if not response.is_success:
            log_with_context(
                logger,
                "warning",
                "Spotify token refresh rejected",
                status_code=response.status_code,
                event_type="token_refresh_rejected",
            )
            raise AuthError(
                f"Spotify token refresh failed with status {response.status_code}",
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = float(data.get("expires_in") or DEFAULT_TOKEN_TTL)
        except (KeyError, ValueError, TypeError) as e:
            raise AuthError(f"Invalid Spotify auth response: {e}") from e

        if data.get("refresh_token"):
            self._refresh_token = data["refresh_token"]

        credential = Credential(
            token=access_token,
            expires_at=self._clock() + expires_in * self._safety_factor,
        )
        self._credential = credential
        log_with_context(
            logger,
            "info",
            "Spotify access token refreshed",
            expires_in=expires_in,
            event_type="token_refreshed",
        )
        return credential
