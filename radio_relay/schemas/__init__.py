from .playback_status import PlaybackStatus

__all__ = ["PlaybackStatus"]
