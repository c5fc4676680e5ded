"""Common enums used across schemas."""

from enum import Enum


class PlaybackStatus(str, Enum):
    """Player lifecycle states.

    State Transition Flow:

    IDLE → LOADING → PLAYING ⇄ BUFFERING
              ↓         ↓          ↓
              └──→ RECONNECTING ←──┘ → PLAYING | ERROR

    State Descriptions:
    - IDLE: Player created, nothing requested yet.
    - LOADING: User asked to play; the stream is being opened.
    - PLAYING: Audio is flowing. Resets the reconnect counter.
    - BUFFERING: Audio paused by the source while it waits for data.
    - RECONNECTING: The stream failed; a reconnect is scheduled or in flight.
    - PAUSED: User paused playback.
    - STOPPED: User stopped playback.
    - ERROR: Reconnect attempts exhausted. Only a new play request leaves it.
    """

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    BUFFERING = "buffering"
    RECONNECTING = "reconnecting"
    ERROR = "error"
    STOPPED = "stopped"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def active_states(cls) -> list["PlaybackStatus"]:
        """States in which the player is considered playing."""
        return [
            PlaybackStatus.PLAYING,
            PlaybackStatus.BUFFERING,
            PlaybackStatus.RECONNECTING,
        ]


__all__ = ["PlaybackStatus"]
