"""Asyncio driver that executes playback controller effects."""

import asyncio
from collections.abc import Callable

from loguru import logger

from radio_relay.schemas import PlaybackStatus
from radio_relay.utils.app_errors import PlaybackRejected

from .audio_source import AudioSource
from .backoff import ReconnectPolicy
from .controller import PlaybackController
from .keep_awake import KeepAwakeManager
from .playback_models import (
    CancelReconnect,
    Effect,
    LoadAndPlay,
    PlaybackEvent,
    PlaybackSnapshot,
    PublishStatus,
    ReleaseKeepAwake,
    RequestKeepAwake,
    ScheduleReconnect,
    StopPlayback,
    Transition,
)
from .status_display import describe_status

StatusListener = Callable[[PlaybackSnapshot], None]


class ReconnectTimer:
    """The single reconnect timer handle. Arming replaces any previous timer."""

    def __init__(self):
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay_ms / 1000, self._fire, callback)

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True


class RadioPlayer:
    """Connects a `PlaybackController` to an audio source, a timer and keep-awake.

    All entry points (user calls, source events, timer callbacks) funnel into
    `dispatch`, which runs the transition and its effects to completion on the
    event loop.
    """

    def __init__(
        self,
        source: AudioSource,
        *,
        stream_url: str,
        policy: ReconnectPolicy | None = None,
        keep_awake: KeepAwakeManager | None = None,
    ):
        self.controller = PlaybackController(stream_url, policy)
        self.source = source
        self.source.set_event_handler(self.dispatch)
        self.keep_awake = keep_awake or KeepAwakeManager()

        self._timer = ReconnectTimer()
        self._attempt_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[StatusListener] = []
        self._waiters: list[tuple[set[PlaybackStatus], asyncio.Future]] = []

    @property
    def snapshot(self) -> PlaybackSnapshot:
        return self.controller.snapshot()

    @property
    def reconnect_pending(self) -> bool:
        return self._timer.pending

    def add_status_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    # -------- user intents --------

    def play(self) -> Transition:
        return self.dispatch(PlaybackEvent.PLAY_REQUESTED)

    def pause(self) -> Transition:
        return self.dispatch(PlaybackEvent.PAUSE_REQUESTED)

    def stop(self) -> Transition:
        return self.dispatch(PlaybackEvent.STOP_REQUESTED)

    # -------- event loop plumbing --------

    def dispatch(self, event: PlaybackEvent) -> Transition:
        transition = self.controller.handle(event)
        for effect in transition.effects:
            self._apply(effect)
        return transition

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, LoadAndPlay):
            self._start_attempt(effect)
        elif isinstance(effect, StopPlayback):
            self._cancel_attempt()
            self._spawn(self.source.stop())
        elif isinstance(effect, ScheduleReconnect):
            logger.info(
                "Reconnecting in {}ms (attempt {}/{})",
                effect.delay_ms,
                effect.attempt,
                self.controller.policy.max_attempts,
            )
            self._timer.arm(effect.delay_ms, self._on_timer)
        elif isinstance(effect, CancelReconnect):
            if self._timer.cancel():
                logger.debug("Pending reconnect cancelled")
        elif isinstance(effect, RequestKeepAwake):
            self._spawn(self.keep_awake.acquire())
        elif isinstance(effect, ReleaseKeepAwake):
            self._spawn(self.keep_awake.release())
        elif isinstance(effect, PublishStatus):
            self._publish(effect.snapshot)

    def _on_timer(self) -> None:
        self.dispatch(PlaybackEvent.RECONNECT_TIMER_FIRED)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_attempt(self) -> None:
        task, self._attempt_task = self._attempt_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _start_attempt(self, effect: LoadAndPlay) -> None:
        self._cancel_attempt()
        self._attempt_task = self._spawn(self._attempt(effect))

    async def _attempt(self, effect: LoadAndPlay) -> None:
        if effect.attempt:
            logger.info("Reconnect attempt {} to {}", effect.attempt, effect.url)
        else:
            logger.info("Starting playback of {}", effect.url)
        try:
            await self.source.load(effect.url)
            await self.source.play()
        except PlaybackRejected as e:
            logger.warning("Playback rejected: {}", e)
            self.dispatch(PlaybackEvent.PLAYBACK_REJECTED)

    def _publish(self, snapshot: PlaybackSnapshot) -> None:
        logger.info("Player status: {}", describe_status(snapshot))

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning("Status listener failed: {}: {}", type(e).__name__, e)

        remaining = []
        for statuses, future in self._waiters:
            if future.done():
                continue
            if snapshot.status in statuses:
                future.set_result(snapshot)
            else:
                remaining.append((statuses, future))
        self._waiters = remaining

    async def wait_until(self, *statuses: PlaybackStatus) -> PlaybackSnapshot:
        """Wait until the player reaches one of the given statuses."""
        snapshot = self.snapshot
        if snapshot.status in statuses:
            return snapshot
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((set(statuses), future))
        return await future

    async def close(self) -> None:
        """Stop everything this player owns: timer, tasks, source, keep-awake."""
        self._timer.cancel()
        self._cancel_attempt()
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.source.close()
        await self.keep_awake.release()
