"""Tests for keep-awake capabilities and the refresh manager."""

import asyncio
import sys

import pytest

from radio_relay.domain.playback.keep_awake import CommandKeepAwake, KeepAwakeManager, NullKeepAwake
from radio_relay.utils.app_errors import CapabilityUnavailable
from tests.fixtures.playback_fixtures import FakeKeepAwake, wait_for_condition


class ExplodingKeepAwake(FakeKeepAwake):
    async def release(self) -> None:
        await super().release()
        raise RuntimeError("platform refused release")


class TestKeepAwakeManager:
    async def test_acquire_and_release(self, fake_keep_awake: FakeKeepAwake):
        manager = KeepAwakeManager(fake_keep_awake, refresh_interval=60)

        await manager.acquire()
        assert manager.active is True
        assert fake_keep_awake.held is True

        await manager.release()
        assert manager.active is False
        assert fake_keep_awake.held is False
        assert fake_keep_awake.releases == 1

    async def test_refresh_reacquires_after_external_release(self, fake_keep_awake: FakeKeepAwake):
        """Test a lock taken away by the platform is re-requested on the next refresh."""
        # Arrange
        manager = KeepAwakeManager(fake_keep_awake, refresh_interval=0.01)
        await manager.acquire()

        # Act
        fake_keep_awake.drop()
        await wait_for_condition(lambda: fake_keep_awake.requests >= 2)

        # Assert
        assert fake_keep_awake.held is True

        await manager.release()

    async def test_refresh_skips_when_still_held(self, fake_keep_awake: FakeKeepAwake):
        manager = KeepAwakeManager(fake_keep_awake, refresh_interval=0.01)
        await manager.acquire()

        await asyncio.sleep(0.05)

        assert fake_keep_awake.requests == 1

        await manager.release()

    async def test_no_refresh_after_release(self, fake_keep_awake: FakeKeepAwake):
        manager = KeepAwakeManager(fake_keep_awake, refresh_interval=0.01)
        await manager.acquire()
        await manager.release()

        fake_keep_awake.drop()
        with pytest.raises(TimeoutError):
            await wait_for_condition(lambda: fake_keep_awake.requests > 1, timeout=0.05)

    async def test_unavailable_capability_is_logged_not_raised(self):
        """Test CapabilityUnavailable never escapes acquire."""
        keep_awake = FakeKeepAwake(fail=True)
        manager = KeepAwakeManager(keep_awake, refresh_interval=60)

        await manager.acquire()

        assert manager.active is True
        assert keep_awake.requests == 1

        await manager.release()

    async def test_release_failure_is_logged_not_raised(self):
        keep_awake = ExplodingKeepAwake()
        manager = KeepAwakeManager(keep_awake, refresh_interval=60)
        await manager.acquire()

        await manager.release()

        assert manager.active is False
        assert keep_awake.releases == 1

    async def test_default_capability_is_null(self):
        manager = KeepAwakeManager()

        await manager.acquire()
        await manager.release()

        assert isinstance(manager.capability, NullKeepAwake)
        assert manager.capability.held is False


class TestCommandKeepAwake:
    async def test_missing_command_is_unavailable(self):
        keep_awake = CommandKeepAwake("radio-relay-no-such-inhibitor --what=idle")

        with pytest.raises(CapabilityUnavailable):
            await keep_awake.request()
        assert keep_awake.held is False

    async def test_holds_process_until_release(self):
        """Test the inhibitor process lives exactly as long as the lock."""
        keep_awake = CommandKeepAwake([sys.executable, "-c", "import time; time.sleep(30)"])

        await keep_awake.request()
        assert keep_awake.held is True

        await keep_awake.release()
        assert keep_awake.held is False

    async def test_process_exit_reports_release(self):
        """Test an inhibitor that exits on its own triggers on_released."""
        keep_awake = CommandKeepAwake([sys.executable, "-c", "pass"])
        released = []
        keep_awake.on_released = lambda: released.append(True)

        await keep_awake.request()
        await wait_for_condition(lambda: released == [True], timeout=10)

        assert keep_awake.held is False
        await keep_awake.release()
