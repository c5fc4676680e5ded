"""Playback state machine for validating status transitions."""

from radio_relay.schemas import PlaybackStatus


class PlaybackStateMachine:
    """State machine for managing player status transitions.

    State flow with triggers:
    - IDLE -> LOADING (user play)
    - LOADING -> PLAYING (stream started) | RECONNECTING (play rejected / stream failed) | PAUSED | STOPPED
    - PLAYING -> BUFFERING (source waiting for data) | RECONNECTING (stall/error/end) | PAUSED | STOPPED
    - BUFFERING -> PLAYING | RECONNECTING | PAUSED | STOPPED
    - RECONNECTING -> PLAYING (reconnect succeeded) | ERROR (attempts exhausted) | LOADING (user play,
      retries at once) | PAUSED | STOPPED
    - PAUSED -> LOADING (user play) | STOPPED
    - STOPPED -> LOADING (user play)
    - ERROR -> LOADING (user play)

    LOADING, PLAYING and BUFFERING may also move to ERROR directly when the
    reconnect budget is already spent.
    """

    TRANSITIONS: dict[PlaybackStatus, set[PlaybackStatus]] = {
        PlaybackStatus.IDLE: {PlaybackStatus.LOADING},
        PlaybackStatus.LOADING: {
            PlaybackStatus.PLAYING,
            PlaybackStatus.RECONNECTING,
            PlaybackStatus.ERROR,
            PlaybackStatus.PAUSED,
            PlaybackStatus.STOPPED,
        },
        PlaybackStatus.PLAYING: {
            PlaybackStatus.BUFFERING,
            PlaybackStatus.RECONNECTING,
            PlaybackStatus.ERROR,
            PlaybackStatus.PAUSED,
            PlaybackStatus.STOPPED,
        },
        PlaybackStatus.BUFFERING: {
            PlaybackStatus.PLAYING,
            PlaybackStatus.RECONNECTING,
            PlaybackStatus.ERROR,
            PlaybackStatus.PAUSED,
            PlaybackStatus.STOPPED,
        },
        PlaybackStatus.RECONNECTING: {
            PlaybackStatus.PLAYING,
            PlaybackStatus.LOADING,
            PlaybackStatus.ERROR,
            PlaybackStatus.PAUSED,
            PlaybackStatus.STOPPED,
        },
        PlaybackStatus.PAUSED: {PlaybackStatus.LOADING, PlaybackStatus.STOPPED},
        PlaybackStatus.STOPPED: {PlaybackStatus.LOADING},
        PlaybackStatus.ERROR: {PlaybackStatus.LOADING},
    }

    # States a user play request starts from
    STARTABLE_STATES: set[PlaybackStatus] = {
        PlaybackStatus.IDLE,
        PlaybackStatus.PAUSED,
        PlaybackStatus.STOPPED,
        PlaybackStatus.ERROR,
        PlaybackStatus.RECONNECTING,
    }

    @classmethod
    def can_transition(cls, current: PlaybackStatus, new: PlaybackStatus) -> bool:
        """Check if status transition is valid.

        Args:
            current: Current player status
            new: Target status to transition to

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def can_start(cls, state: PlaybackStatus) -> bool:
        """Check if a user play request is accepted from this status."""
        return state in cls.STARTABLE_STATES

    @classmethod
    def get_valid_transitions(cls, state: PlaybackStatus) -> set[PlaybackStatus]:
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def get_valid_sources(cls, target: PlaybackStatus) -> set[PlaybackStatus]:
        """Get all statuses that can transition to the target status."""
        return {state for state, targets in cls.TRANSITIONS.items() if target in targets}
