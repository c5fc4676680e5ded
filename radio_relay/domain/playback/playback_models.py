"""Playback state, events and side effects.

The controller consumes `PlaybackEvent` values and produces a `Transition`:
the resulting `PlaybackSnapshot` plus an ordered tuple of effects the driver
must execute. Effects are plain data so transitions can be asserted on without
audio, network or timers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from radio_relay.schemas import PlaybackStatus


class PlaybackEvent(str, Enum):
    """Inputs to the playback state machine."""

    # User intents
    PLAY_REQUESTED = "play_requested"
    PAUSE_REQUESTED = "pause_requested"
    STOP_REQUESTED = "stop_requested"

    # Audio source lifecycle
    PLAYBACK_STARTED = "playback_started"
    PLAYBACK_REJECTED = "playback_rejected"
    WAITING = "waiting"
    STALLED = "stalled"
    ERRORED = "errored"
    ENDED = "ended"

    # Timer
    RECONNECT_TIMER_FIRED = "reconnect_timer_fired"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def failure_events(cls) -> set[PlaybackEvent]:
        """Events that route through the reconnect policy."""
        return {cls.PLAYBACK_REJECTED, cls.STALLED, cls.ERRORED, cls.ENDED}


@dataclass
class PlaybackState:
    """Mutable player state, owned by exactly one controller."""

    status: PlaybackStatus = PlaybackStatus.IDLE
    reconnect_attempts: int = 0
    reconnect_pending: bool = False

    @property
    def is_playing(self) -> bool:
        return self.status in PlaybackStatus.active_states()


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Read-only view handed to status listeners."""

    status: PlaybackStatus
    reconnect_attempts: int
    max_reconnect_attempts: int
    reconnect_pending: bool = False

    @property
    def is_playing(self) -> bool:
        return self.status in PlaybackStatus.active_states()

    @property
    def current_attempt(self) -> int:
        """Attempt number to display: the armed one while waiting, else the running one."""
        if self.reconnect_pending:
            return self.reconnect_attempts + 1
        return self.reconnect_attempts


# -------- effects --------


@dataclass(frozen=True)
class LoadAndPlay:
    """(Re)load the audio source from url and start playback."""

    url: str
    attempt: int = 0


@dataclass(frozen=True)
class StopPlayback:
    reason: str


@dataclass(frozen=True)
class ScheduleReconnect:
    attempt: int
    delay_ms: int


@dataclass(frozen=True)
class CancelReconnect:
    pass


@dataclass(frozen=True)
class RequestKeepAwake:
    pass


@dataclass(frozen=True)
class ReleaseKeepAwake:
    pass


@dataclass(frozen=True)
class PublishStatus:
    snapshot: PlaybackSnapshot


Effect = (
    LoadAndPlay
    | StopPlayback
    | ScheduleReconnect
    | CancelReconnect
    | RequestKeepAwake
    | ReleaseKeepAwake
    | PublishStatus
)


@dataclass(frozen=True)
class Transition:
    event: PlaybackEvent
    previous: PlaybackSnapshot
    snapshot: PlaybackSnapshot
    effects: tuple[Effect, ...] = field(default_factory=tuple)

    @property
    def status(self) -> PlaybackStatus:
        return self.snapshot.status

    @property
    def changed(self) -> bool:
        return self.previous != self.snapshot

    def effects_of(self, kind: type) -> list:
        return [effect for effect in self.effects if isinstance(effect, kind)]
