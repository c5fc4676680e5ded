from radio_relay.schemas import PlaybackStatus

from .playback_models import PlaybackSnapshot

_STATUS_TEXT = {
    PlaybackStatus.IDLE: "Ready",
    PlaybackStatus.LOADING: "Loading...",
    PlaybackStatus.PLAYING: "Now playing",
    PlaybackStatus.PAUSED: "Paused",
    PlaybackStatus.BUFFERING: "Buffering...",
    PlaybackStatus.ERROR: "Connection failed",
    PlaybackStatus.STOPPED: "Stopped",
}


def describe_status(snapshot: PlaybackSnapshot) -> str:
    """Human readable status line for a player snapshot."""
    if snapshot.status == PlaybackStatus.RECONNECTING:
        return f"Reconnecting... ({snapshot.current_attempt}/{snapshot.max_reconnect_attempts})"
    return _STATUS_TEXT[snapshot.status]
