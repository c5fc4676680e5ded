"""Playback controller: the reconnect/backoff state machine as a transition function."""

from collections.abc import Callable

from loguru import logger

from radio_relay.schemas import PlaybackStatus

from .backoff import ReconnectPolicy
from .playback_models import (
    CancelReconnect,
    Effect,
    LoadAndPlay,
    PlaybackEvent,
    PlaybackSnapshot,
    PlaybackState,
    PublishStatus,
    ReleaseKeepAwake,
    RequestKeepAwake,
    ScheduleReconnect,
    StopPlayback,
    Transition,
)
from .playback_state_machine import PlaybackStateMachine


class InvalidPlaybackTransition(ValueError):
    pass


class PlaybackController:
    """Pure playback state machine.

    `handle(event)` mutates the owned `PlaybackState` and returns the effects
    the caller must perform. Nothing here touches audio, network or timers,
    so every transition can be exercised directly.

    Reconnect policy:
    - A failure while loading, playing, buffering, or reconnecting with no
      timer armed schedules exactly one reconnect if attempts remain,
      otherwise the player moves to ERROR.
    - A failure while a reconnect timer is armed is ignored.
    - The attempt counter is incremented when the timer fires, so a failed
      initial play does not consume an attempt by itself.
    - Reaching PLAYING always resets the counter.
    - A user play while reconnecting cancels the armed timer and retries at once.
    """

    def __init__(
        self,
        stream_url: str,
        policy: ReconnectPolicy | None = None,
        state: PlaybackState | None = None,
    ):
        self.stream_url = stream_url
        self.policy = policy or ReconnectPolicy()
        self.state = state or PlaybackState()

        self._handlers: dict[PlaybackEvent, Callable[[PlaybackEvent], list[Effect]]] = {
            PlaybackEvent.PLAY_REQUESTED: self._on_play_requested,
            PlaybackEvent.PAUSE_REQUESTED: self._on_halt_requested,
            PlaybackEvent.STOP_REQUESTED: self._on_halt_requested,
            PlaybackEvent.PLAYBACK_STARTED: self._on_playback_started,
            PlaybackEvent.WAITING: self._on_waiting,
            PlaybackEvent.RECONNECT_TIMER_FIRED: self._on_reconnect_timer_fired,
        }
        for failure in PlaybackEvent.failure_events():
            self._handlers[failure] = self._on_failure

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            status=self.state.status,
            reconnect_attempts=self.state.reconnect_attempts,
            max_reconnect_attempts=self.policy.max_attempts,
            reconnect_pending=self.state.reconnect_pending,
        )

    def handle(self, event: PlaybackEvent) -> Transition:
        """Apply one event and return the resulting snapshot and effects."""
        previous = self.snapshot()
        effects = self._handlers[event](event)
        snapshot = self.snapshot()

        if snapshot != previous:
            effects.append(PublishStatus(snapshot))
            logger.debug(
                "Playback {}: {} -> {} (attempts {}/{})",
                event,
                previous.status,
                snapshot.status,
                snapshot.reconnect_attempts,
                snapshot.max_reconnect_attempts,
            )

        return Transition(
            event=event,
            previous=previous,
            snapshot=snapshot,
            effects=tuple(effects),
        )

    # -------- helpers --------

    def _move(self, new_status: PlaybackStatus) -> None:
        current = self.state.status
        if current == new_status:
            return
        if not PlaybackStateMachine.can_transition(current, new_status):
            raise InvalidPlaybackTransition(f"Invalid playback transition: {current} -> {new_status}")
        self.state.status = new_status
        if new_status == PlaybackStatus.PLAYING:
            self.state.reconnect_attempts = 0

    def _cancel_pending(self) -> list[Effect]:
        if not self.state.reconnect_pending:
            return []
        self.state.reconnect_pending = False
        return [CancelReconnect()]

    # -------- handlers --------

    def _on_play_requested(self, event: PlaybackEvent) -> list[Effect]:
        if not PlaybackStateMachine.can_start(self.state.status):
            return []

        effects = self._cancel_pending()
        self.state.reconnect_attempts = 0
        self._move(PlaybackStatus.LOADING)
        effects.append(LoadAndPlay(url=self.stream_url, attempt=0))
        return effects

    def _on_halt_requested(self, event: PlaybackEvent) -> list[Effect]:
        target = PlaybackStatus.PAUSED if event == PlaybackEvent.PAUSE_REQUESTED else PlaybackStatus.STOPPED
        if not PlaybackStateMachine.can_transition(self.state.status, target):
            return []

        effects = self._cancel_pending()
        self.state.reconnect_attempts = 0
        self._move(target)
        effects.extend([StopPlayback(reason=str(event)), ReleaseKeepAwake()])
        return effects

    def _on_playback_started(self, event: PlaybackEvent) -> list[Effect]:
        status = self.state.status
        if status not in {
            PlaybackStatus.LOADING,
            PlaybackStatus.PLAYING,
            PlaybackStatus.BUFFERING,
            PlaybackStatus.RECONNECTING,
        }:
            # Late signal from a source that was already paused or stopped
            return []

        effects = self._cancel_pending()
        self._move(PlaybackStatus.PLAYING)
        self.state.reconnect_attempts = 0
        if status not in {PlaybackStatus.PLAYING, PlaybackStatus.BUFFERING}:
            # Buffering keeps the lock it took when playback first started
            effects.append(RequestKeepAwake())
        return effects

    def _on_waiting(self, event: PlaybackEvent) -> list[Effect]:
        if self.state.status == PlaybackStatus.PLAYING:
            self._move(PlaybackStatus.BUFFERING)
        return []

    def _on_failure(self, event: PlaybackEvent) -> list[Effect]:
        status = self.state.status
        if status not in {
            PlaybackStatus.LOADING,
            PlaybackStatus.PLAYING,
            PlaybackStatus.BUFFERING,
            PlaybackStatus.RECONNECTING,
        }:
            return []
        if self.state.reconnect_pending:
            # A reconnect is already armed; one timer at a time
            return []

        if self.state.reconnect_attempts < self.policy.max_attempts:
            attempt = self.state.reconnect_attempts + 1
            self.state.reconnect_pending = True
            self._move(PlaybackStatus.RECONNECTING)
            return [ScheduleReconnect(attempt=attempt, delay_ms=self.policy.delay_for(attempt))]

        self._move(PlaybackStatus.ERROR)
        return [StopPlayback(reason=str(event)), ReleaseKeepAwake()]

    def _on_reconnect_timer_fired(self, event: PlaybackEvent) -> list[Effect]:
        if self.state.status != PlaybackStatus.RECONNECTING or not self.state.reconnect_pending:
            return []

        self.state.reconnect_pending = False
        self.state.reconnect_attempts += 1
        return [LoadAndPlay(url=self.stream_url, attempt=self.state.reconnect_attempts)]
