"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from now_playing_sync.config import Settings
from now_playing_sync.exceptions import MessagingError, MessagingErrorKind


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimer:
    """Timer that only fires when the test says so."""

    def __init__(self):
        self.pending: list[tuple[float, Callable[[], Any]]] = []
        self.armed_delays: list[float] = []

    def arm(self, delay: float, callback: Callable[[], Any]):
        handle = (delay, callback)
        self.pending.append(handle)
        self.armed_delays.append(delay)
        return handle

    def cancel(self, handle) -> None:
        if handle in self.pending:
            self.pending.remove(handle)

    @property
    def next_delay(self) -> float | None:
        return self.pending[-1][0] if self.pending else None

    async def fire(self) -> None:
        _, callback = self.pending.pop(0)
        await callback()


class FakeSurface:
    """In-memory Discord channel."""

    def __init__(self):
        self.messages: dict[str, dict[str, Any]] = {}
        self.created: list[str] = []
        self.updated: list[str] = []
        self.fail_update: MessagingError | None = None
        self.fail_create: MessagingError | None = None
        self._next_id = 1000

    async def fetch_surface(self, channel_id: str) -> dict[str, Any]:
        return {"id": channel_id}

    async def fetch_artifact(self, channel_id: str, message_id: str) -> dict[str, Any]:
        if message_id not in self.messages:
            raise MessagingError("Unknown Message", MessagingErrorKind.NOT_FOUND)
        return {"id": message_id, **self.messages[message_id]}

    async def create_artifact(self, channel_id: str, payload: dict[str, Any]) -> str:
        if self.fail_create is not None:
            raise self.fail_create
        self._next_id += 1
        message_id = str(self._next_id)
        self.messages[message_id] = payload
        self.created.append(message_id)
        return message_id

    async def update_artifact(self, channel_id: str, message_id: str, payload: dict[str, Any]) -> None:
        if self.fail_update is not None:
            raise self.fail_update
        if message_id not in self.messages:
            raise MessagingError("Unknown Message", MessagingErrorKind.NOT_FOUND)
        self.messages[message_id] = payload
        self.updated.append(message_id)

    def delete(self, message_id: str) -> None:
        self.messages.pop(message_id, None)


def make_settings(**overrides) -> Settings:
    values = {
        "api_key": "test-api-key",
        "spotify_client_id": "test-spotify-client-id",
        "spotify_client_secret": "test-spotify-client-secret",
        "spotify_refresh_token": "test-refresh-token",
        "discord_bot_token": "test-bot-token",
        "discord_channel_id": "123456789012345678",
        "listener_name": "Jack",
        "idle_interval": 30.0,
        "playing_interval": 5.0,
        "playing_growth": 1.5,
        "playing_max_interval": 20.0,
        "startup_delay": 2.0,
        "backoff_growth": 2.0,
        "max_backoff": 120.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def token_response(token: str = "access-1", expires_in: int = 3600) -> httpx.Response:
    return httpx.Response(200, json={"access_token": token, "token_type": "Bearer", "expires_in": expires_in})


def mock_client(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manual_timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture
def fake_surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def mock_spotify_playback_response() -> dict[str, Any]:
    """Currently-playing payload."""
    return {
        "is_playing": True,
        "progress_ms": 60000,
        "currently_playing_type": "track",
        "item": {
            "id": "track-123",
            "uri": "spotify:track:track-123",
            "name": "Test Song",
            "artists": [{"name": "Test Artist"}, {"name": "MF DOOM"}],
            "album": {
                "name": "Test Album",
                "images": [
                    {"url": "https://example.com/640.jpg", "width": 640},
                    {"url": "https://example.com/300.jpg", "width": 300},
                ],
            },
            "duration_ms": 240000,
            "explicit": True,
            "popularity": 71,
        },
    }


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    """Build Settings with test defaults and per-test overrides."""
    return make_settings


@pytest.fixture
def client_factory() -> Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]:
    """Build an AsyncClient backed by httpx.MockTransport."""
    return mock_client


@pytest.fixture
def token_response_factory() -> Callable[..., httpx.Response]:
    return token_response
