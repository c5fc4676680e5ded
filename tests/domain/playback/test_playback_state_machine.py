"""Tests for PlaybackStateMachine."""

import pytest

from radio_relay.domain.playback.playback_state_machine import PlaybackStateMachine
from radio_relay.schemas import PlaybackStatus


class TestPlaybackStateMachine:
    """Test PlaybackStateMachine transition rules."""

    def test_idle_can_only_load(self):
        """Test IDLE only moves to LOADING."""
        assert PlaybackStateMachine.get_valid_transitions(PlaybackStatus.IDLE) == {PlaybackStatus.LOADING}

    def test_reconnecting_outcomes(self):
        """Test RECONNECTING resolves to PLAYING or ERROR."""
        assert PlaybackStateMachine.can_transition(PlaybackStatus.RECONNECTING, PlaybackStatus.PLAYING)
        assert PlaybackStateMachine.can_transition(PlaybackStatus.RECONNECTING, PlaybackStatus.ERROR)
        assert not PlaybackStateMachine.can_transition(PlaybackStatus.RECONNECTING, PlaybackStatus.BUFFERING)

    def test_playing_and_buffering_alternate(self):
        assert PlaybackStateMachine.can_transition(PlaybackStatus.PLAYING, PlaybackStatus.BUFFERING)
        assert PlaybackStateMachine.can_transition(PlaybackStatus.BUFFERING, PlaybackStatus.PLAYING)

    @pytest.mark.parametrize(
        "status",
        [PlaybackStatus.PAUSED, PlaybackStatus.STOPPED, PlaybackStatus.ERROR],
    )
    def test_halted_states_cannot_resume_directly(self, status: PlaybackStatus):
        """Test halted states go back through LOADING, never straight to PLAYING."""
        assert not PlaybackStateMachine.can_transition(status, PlaybackStatus.PLAYING)
        assert PlaybackStateMachine.can_transition(status, PlaybackStatus.LOADING)

    def test_error_only_reached_from_active_states(self):
        """Test ERROR is entered only while trying to play."""
        assert PlaybackStateMachine.get_valid_sources(PlaybackStatus.ERROR) == {
            PlaybackStatus.LOADING,
            PlaybackStatus.PLAYING,
            PlaybackStatus.BUFFERING,
            PlaybackStatus.RECONNECTING,
        }

    @pytest.mark.parametrize(
        "status, expected",
        [
            (PlaybackStatus.IDLE, True),
            (PlaybackStatus.PAUSED, True),
            (PlaybackStatus.STOPPED, True),
            (PlaybackStatus.ERROR, True),
            (PlaybackStatus.RECONNECTING, True),
            (PlaybackStatus.LOADING, False),
            (PlaybackStatus.PLAYING, False),
            (PlaybackStatus.BUFFERING, False),
        ],
    )
    def test_can_start(self, status: PlaybackStatus, expected: bool):
        assert PlaybackStateMachine.can_start(status) is expected

    def test_every_status_has_transitions(self):
        for status in PlaybackStatus:
            assert PlaybackStateMachine.get_valid_transitions(status)
