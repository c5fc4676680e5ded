import pytest

from radio_relay.domain.playback.playback_models import PlaybackSnapshot
from radio_relay.domain.playback.status_display import describe_status
from radio_relay.schemas import PlaybackStatus


class TestDescribeStatus:
    @pytest.mark.parametrize(
        "status, text",
        [
            (PlaybackStatus.IDLE, "Ready"),
            (PlaybackStatus.LOADING, "Loading..."),
            (PlaybackStatus.PLAYING, "Now playing"),
            (PlaybackStatus.PAUSED, "Paused"),
            (PlaybackStatus.BUFFERING, "Buffering..."),
            (PlaybackStatus.ERROR, "Connection failed"),
            (PlaybackStatus.STOPPED, "Stopped"),
        ],
    )
    def test_plain_statuses(self, status: PlaybackStatus, text: str):
        snapshot = PlaybackSnapshot(status=status, reconnect_attempts=0, max_reconnect_attempts=5)

        assert describe_status(snapshot) == text

    def test_reconnecting_shows_armed_attempt(self):
        """Test the attempt being waited for is shown while the timer is armed."""
        snapshot = PlaybackSnapshot(
            status=PlaybackStatus.RECONNECTING,
            reconnect_attempts=1,
            max_reconnect_attempts=5,
            reconnect_pending=True,
        )

        assert describe_status(snapshot) == "Reconnecting... (2/5)"

    def test_reconnecting_shows_running_attempt(self):
        snapshot = PlaybackSnapshot(
            status=PlaybackStatus.RECONNECTING,
            reconnect_attempts=3,
            max_reconnect_attempts=3,
        )

        assert describe_status(snapshot) == "Reconnecting... (3/3)"
