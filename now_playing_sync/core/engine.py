"""Sync engine wiring credential cache, fetcher, message sync and scheduler."""

import asyncio
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from now_playing_sync.config import Settings
from now_playing_sync.core.scheduler import AdaptiveScheduler, DelayPolicy
from now_playing_sync.exceptions import FetchError, MessagingError
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.models import (
    IDLE,
    ControlAction,
    Observation,
    PlaybackState,
    ScheduleSnapshot,
    SyncStatusResponse,
    SyncTarget,
)
from now_playing_sync.protocols import MessagingSurface, Timer
from now_playing_sync.services.command_gateway import CommandGateway
from now_playing_sync.services.discord_service import DiscordSurface
from now_playing_sync.services.message_sync import MessageSync
from now_playing_sync.services.playback_service import PlaybackStateFetcher
from now_playing_sync.services.spotify_service import SpotifyClient
from now_playing_sync.state_managers import CredentialCache
from now_playing_sync.views.embed_renderer import EmbedRenderer

logger = get_logger(__name__)


class SyncEngine:
    """One sync target with its own loop.

    Several engines may share a CredentialCache; everything else is per
    engine, so targets never see each other's state.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        *,
        credentials: CredentialCache | None = None,
        surface: MessagingSurface | None = None,
        timer: Timer | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self._clock = clock
        self._owns_credentials = credentials is None
        self.credentials = credentials or CredentialCache(client, settings, clock=clock)
        self.spotify = SpotifyClient(client, self.credentials, timeout=settings.http_timeout)
        self.fetcher = PlaybackStateFetcher(
            self.spotify,
            smart_case=settings.smart_case,
            clock=lambda: datetime.fromtimestamp(self._clock(), UTC),
        )
        self.target = SyncTarget(surface_id=settings.discord_channel_id, artifact_id=settings.discord_message_id)
        self.surface = surface or DiscordSurface(client, settings.discord_bot_token, timeout=settings.http_timeout)
        self.renderer = EmbedRenderer(settings.listener_name)
        self.message_sync = MessageSync(self.surface, self.target, self.renderer)
        self.gateway = CommandGateway(self.spotify)
        self.scheduler = AdaptiveScheduler(self.run_cycle, DelayPolicy.from_settings(settings), timer)
        self.auto_updates = settings.auto_updates
        self.started_at = clock()
        self._cycle_lock = asyncio.Lock()
        self._fresh_post_requested = False
        self._resend_task: asyncio.Task[str | None] | None = None

    @property
    def smart_case(self) -> bool:
        return self.fetcher.smart_case

    @smart_case.setter
    def smart_case(self, enabled: bool) -> None:
        self.fetcher.smart_case = enabled
        log_with_context(logger, "info", "Smart capitalization toggled", enabled=enabled, event_type="smart_case")

    async def initialize(self) -> None:
        """Check the channel, verify a warm-start message id and start the loop if auto-updates are on.

        An unreachable channel is logged, not fatal; the loop keeps retrying.
        """
        await self.credentials.initialize()
        try:
            await self.surface.fetch_surface(self.target.surface_id)
        except MessagingError as e:
            log_with_context(
                logger,
                "warning",
                "Discord channel not reachable",
                channel_id=self.target.surface_id,
                error=e.message,
                event_type="channel_unreachable",
            )
        await self.message_sync.verify()
        if self.auto_updates:
            self.scheduler.start()
        log_with_context(
            logger,
            "info",
            "Sync engine initialized",
            channel_id=self.target.surface_id,
            message_id=self.target.artifact_id,
            auto_updates=self.auto_updates,
            event_type="engine_ready",
        )

    async def cleanup(self) -> None:
        """Stop the loop and drop the credential if this engine owns it."""
        await self.scheduler.stop()
        if self._owns_credentials:
            await self.credentials.cleanup()
        log_with_context(logger, "info", "Sync engine stopped", event_type="engine_stopped")

    async def run_cycle(self) -> Observation:
        """Fetch playback and reconcile the message once.

        Cycles are serialized per engine, whoever starts them. Malformed
        payloads are treated as IDLE for this cycle. Transient fetch and
        auth errors propagate so the scheduler backs off.
        """
        async with self._cycle_lock:
            try:
                state = await self.fetcher.fetch()
            except FetchError as e:
                if e.transient:
                    raise
                log_with_context(
                    logger,
                    "error",
                    "Unusable playback response, treating as idle",
                    error=e.message,
                    event_type="fetch_permanent_error",
                )
                state = IDLE
            if self._fresh_post_requested:
                self._fresh_post_requested = False
                self.target.artifact_id = None
            await self.message_sync.reconcile(state)
            return state

    async def execute(self, action: ControlAction) -> None:
        """Run a control action, then sync early so the message reflects it.

        Raises:
            ControlError: If Spotify does not accept the action
        """
        await self.gateway.execute(action)
        self.scheduler.trigger()

    async def set_auto_updates(self, enabled: bool) -> None:
        """Start or stop the loop. Restarting begins again from the Idle state."""
        self.auto_updates = enabled
        if enabled:
            self.scheduler.start()
        else:
            await self.scheduler.stop()
        log_with_context(logger, "info", "Auto-updates toggled", enabled=enabled, event_type="auto_updates")

    async def resend(self) -> str | None:
        """Post a fresh message and make it the one that gets edited from now on.

        The previous message is left in the channel untouched. The switch
        happens inside the next cycle, so a cycle already in flight cannot
        overwrite it. Resends arriving while a direct post is still running
        share that post.

        Returns:
            The new message id, or None when the running loop will post it
        """
        if self._resend_task is None:
            self._fresh_post_requested = True
            if self.scheduler.trigger():
                return None
            task = asyncio.create_task(self._post_fresh())
            task.add_done_callback(self._on_resend_done)
            self._resend_task = task
        return await asyncio.shield(self._resend_task)

    async def _post_fresh(self) -> str | None:
        await self.run_cycle()
        return self.target.artifact_id

    def _on_resend_done(self, task: asyncio.Task) -> None:
        if self._resend_task is task:
            self._resend_task = None
        if not task.cancelled():
            task.exception()

    async def preview(self) -> dict[str, Any] | None:
        """Render the current playback without touching the channel.

        Returns:
            Message payload, or None when nothing is playing
        """
        state = await self.fetcher.fetch()
        if not isinstance(state, PlaybackState):
            return None
        return self.renderer.render(state)

    def status(self) -> SyncStatusResponse:
        schedule = self.scheduler.state
        last_state = schedule.last_state
        return SyncStatusResponse(
            running=self.scheduler.running,
            auto_updates=self.auto_updates,
            smart_case=self.smart_case,
            uptime_seconds=int(self._clock() - self.started_at),
            target=self.target.model_copy(),
            schedule=ScheduleSnapshot(
                last_outcome=schedule.last_outcome,
                last_state=last_state.track_id if isinstance(last_state, PlaybackState) else last_state.value,
                consecutive_failures=schedule.consecutive_failures,
                current_delay=schedule.current_delay,
                in_flight=self.scheduler.in_flight,
                cycles_completed=self.scheduler.cycles_completed,
            ),
        )
