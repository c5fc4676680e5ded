from .backoff import ReconnectPolicy
from .controller import InvalidPlaybackTransition, PlaybackController
from .playback_models import PlaybackEvent, PlaybackSnapshot, PlaybackState, Transition
from .playback_state_machine import PlaybackStateMachine
from .radio_player import RadioPlayer

__all__ = [
    "InvalidPlaybackTransition",
    "PlaybackController",
    "PlaybackEvent",
    "PlaybackSnapshot",
    "PlaybackState",
    "PlaybackStateMachine",
    "RadioPlayer",
    "ReconnectPolicy",
    "Transition",
]
