"""Self-rescheduling poll loop with adaptive cadence and backoff."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from now_playing_sync.config import Settings
from now_playing_sync.exceptions import SyncException
from now_playing_sync.logging_config import get_logger, log_with_context
from now_playing_sync.models import UNKNOWN, Observation, Outcome, PlaybackSentinel, PlaybackState, ScheduleState
from now_playing_sync.protocols import Timer

logger = get_logger(__name__)


class AsyncioTimer:
    """Timer backed by loop.call_later. Each fired callback runs in its own task."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def arm(self, delay: float, callback: Callable[[], Awaitable[Any]]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self._spawn, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()

    def _spawn(self, callback: Callable[[], Awaitable[Any]]) -> None:
        task = asyncio.ensure_future(callback())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class DelayPolicy:
    """Chooses the delay before the next poll from the last outcome."""

    def __init__(
        self,
        idle_interval: float = 30.0,
        playing_interval: float = 5.0,
        playing_growth: float = 1.0,
        playing_max_interval: float = 15.0,
        startup_delay: float = 2.0,
        backoff_growth: float = 2.0,
        max_backoff: float = 300.0,
    ):
        self.idle_interval = idle_interval
        self.playing_interval = playing_interval
        self.playing_growth = playing_growth
        self.playing_max_interval = max(playing_max_interval, playing_interval)
        self.startup_delay = startup_delay
        self.backoff_growth = backoff_growth
        self.max_backoff = max_backoff

    @classmethod
    def from_settings(cls, settings: Settings) -> "DelayPolicy":
        return cls(
            idle_interval=settings.idle_interval,
            playing_interval=settings.playing_interval,
            playing_growth=settings.playing_growth,
            playing_max_interval=settings.playing_max_interval,
            startup_delay=settings.startup_delay,
            backoff_growth=settings.backoff_growth,
            max_backoff=settings.max_backoff,
        )

    def success_delay(
        self,
        previous: PlaybackState | PlaybackSentinel,
        previous_delay: float,
        observation: Observation,
    ) -> float:
        """Delay after a successful cycle.

        Playing polls fast and slows down geometrically while the same track
        persists; a new track snaps back to the base playing interval.
        Idle and paused poll at the idle interval.
        """
        if not (isinstance(observation, PlaybackState) and observation.is_playing):
            return self.idle_interval
        same_track = (
            isinstance(previous, PlaybackState)
            and previous.is_playing
            and previous.track_id == observation.track_id
        )
        if not same_track:
            return self.playing_interval
        grown = max(previous_delay, self.playing_interval) * self.playing_growth
        return min(grown, self.playing_max_interval)

    def backoff_base(self, current_delay: float) -> float:
        """Delay the backoff sequence starts from. Never below the playing interval."""
        return max(current_delay, self.playing_interval)

    def backoff_delay(self, base: float, failures: int) -> float:
        """min(base * growth ** failures, max_backoff)."""
        return min(base * self.backoff_growth**failures, self.max_backoff)


class AdaptiveScheduler:
    """Runs `cycle` forever, one at a time, re-arming from each cycle's completion.

    The next cycle is armed only at the end of the current one, so cycles
    never overlap no matter how long one takes. stop() prevents the next
    re-arm and waits for an in-flight cycle without interrupting it.
    """

    def __init__(
        self,
        cycle: Callable[[], Awaitable[Observation]],
        policy: DelayPolicy,
        timer: Timer | None = None,
    ):
        self._cycle = cycle
        self.policy = policy
        self._timer = timer or AsyncioTimer()
        self._state = ScheduleState(current_delay=policy.startup_delay)
        self._handle: Any = None
        self._running = False
        self._cycle_running = False
        self._rerun = False
        self._inflight: asyncio.Task | None = None
        self._generation = 0
        self.cycles_completed = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._cycle_running

    @property
    def state(self) -> ScheduleState:
        return self._state

    def start(self) -> None:
        """Start polling from the initial Idle state with the startup delay."""
        if self._running:
            return
        self._running = True
        self._generation += 1
        self._rerun = False
        self._state = ScheduleState(current_delay=self.policy.startup_delay)
        log_with_context(
            logger,
            "info",
            "Sync loop started",
            startup_delay=self.policy.startup_delay,
            event_type="scheduler_started",
        )
        self._arm(self.policy.startup_delay)

    async def stop(self) -> None:
        """Stop re-arming. A cycle already running is allowed to finish."""
        if not self._running and self._handle is None:
            return
        self._running = False
        self._rerun = False
        if self._handle is not None:
            self._timer.cancel(self._handle)
            self._handle = None
        task = self._inflight
        if task is not None and not task.done() and task is not asyncio.current_task():
            await asyncio.wait({task})
        log_with_context(logger, "info", "Sync loop stopped", event_type="scheduler_stopped")

    def trigger(self) -> bool:
        """Run a cycle as soon as possible without breaking single-flight.

        Returns:
            False if the scheduler is not running
        """
        if not self._running:
            return False
        if self._cycle_running:
            self._rerun = True
            return True
        if self._handle is not None:
            self._timer.cancel(self._handle)
        self._arm(0.0)
        return True

    def _arm(self, delay: float) -> None:
        self._handle = self._timer.arm(delay, self._run_cycle)

    async def _run_cycle(self) -> None:
        self._handle = None
        if not self._running:
            return
        if self._cycle_running:
            # a timer fired while an older cycle is still finishing; run once it ends
            self._rerun = True
            return
        generation = self._generation
        self._cycle_running = True
        self._inflight = asyncio.current_task()
        observation: Observation = UNKNOWN
        try:
            try:
                observation = await self._cycle()
                outcome = Outcome.SUCCESS
            except SyncException as e:
                outcome = Outcome.FAILURE
                log_with_context(
                    logger,
                    "warning",
                    "Sync cycle failed",
                    error=e.message,
                    error_code=e.code.value,
                    event_type="cycle_failed",
                )
            except Exception as e:
                outcome = Outcome.FAILURE
                log_with_context(
                    logger,
                    "error",
                    "Unexpected error in sync cycle",
                    error=str(e),
                    error_type=type(e).__name__,
                    event_type="cycle_crashed",
                )
                logger.error("Sync cycle traceback:", exc_info=True)
        finally:
            self._cycle_running = False
            self._inflight = None

        self.cycles_completed += 1
        if generation == self._generation:
            self._record(outcome, observation)

        # after a restart the new run may already have its own timer pending
        if not self._running or self._handle is not None:
            return
        delay = 0.0 if self._rerun else self._state.current_delay
        self._rerun = False
        self._arm(delay)

    def _record(self, outcome: Outcome, observation: Observation) -> None:
        state = self._state
        if outcome is Outcome.SUCCESS:
            state.current_delay = self.policy.success_delay(state.last_state, state.current_delay, observation)
            state.consecutive_failures = 0
            state.backoff_base = 0.0
            state.last_state = observation
        else:
            if state.consecutive_failures == 0:
                state.backoff_base = self.policy.backoff_base(state.current_delay)
            state.consecutive_failures += 1
            state.current_delay = self.policy.backoff_delay(state.backoff_base, state.consecutive_failures)
            state.last_state = UNKNOWN
        state.last_outcome = outcome
        log_with_context(
            logger,
            "debug",
            "Next sync cycle scheduled",
            outcome=outcome.value,
            delay=state.current_delay,
            consecutive_failures=state.consecutive_failures,
            event_type="cycle_scheduled",
        )
