"""Best-effort keep-awake capability.

The capability is requested when playback starts and released when it stops
or fails for good. It may be missing or fail at any time; that is logged and
never turned into a playback error.
"""

import asyncio
import contextlib
import shlex
from collections.abc import Callable, Sequence
from typing import Protocol

from loguru import logger

from radio_relay.utils.app_errors import CapabilityUnavailable


class KeepAwake(Protocol):
    on_released: Callable[[], None] | None

    @property
    def held(self) -> bool: ...

    async def request(self) -> None: ...

    async def release(self) -> None: ...


class NullKeepAwake:
    """Used when the platform offers nothing; every call is a no-op."""

    def __init__(self):
        self.on_released: Callable[[], None] | None = None

    @property
    def held(self) -> bool:
        return False

    async def request(self) -> None:
        return None

    async def release(self) -> None:
        return None


class CommandKeepAwake:
    """Holds an inhibitor process (`systemd-inhibit ... sleep infinity`, `caffeinate`)
    for as long as the lock is held. The process exiting on its own counts as
    an external release and triggers `on_released`.
    """

    def __init__(self, command: str | Sequence[str]):
        self.argv = shlex.split(command) if isinstance(command, str) else list(command)
        self.on_released: Callable[[], None] | None = None
        self._proc: asyncio.subprocess.Process | None = None
        self._watcher: asyncio.Task | None = None

    @property
    def held(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def request(self) -> None:
        if self.held:
            return
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            self._proc = None
            raise CapabilityUnavailable(f"Keep-awake command failed to start: {e}") from e

        logger.info("Keep-awake acquired (pid {})", self._proc.pid)
        self._watcher = asyncio.create_task(self._watch(self._proc))

    async def _watch(self, proc: asyncio.subprocess.Process) -> None:
        returncode = await proc.wait()
        if self._proc is proc:
            self._proc = None
            logger.info("Keep-awake released externally (exit code {})", returncode)
            if self.on_released is not None:
                self.on_released()

    async def release(self) -> None:
        watcher, self._watcher = self._watcher, None
        proc, self._proc = self._proc, None
        if watcher is not None:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
        if proc is not None and proc.returncode is None:
            proc.terminate()
            await proc.wait()
            logger.info("Keep-awake released")


class KeepAwakeManager:
    """Owns the keep-awake capability and its single refresh task.

    While active, the lock is re-requested every `refresh_interval` seconds if
    something released it behind our back. Acquire and release are serialized
    so the last call wins.
    """

    def __init__(self, capability: KeepAwake | None = None, refresh_interval: float = 60.0):
        self.capability = capability or NullKeepAwake()
        self.capability.on_released = self._on_released
        self.refresh_interval = refresh_interval
        self.active = False
        self._refresh_task: asyncio.Task | None = None
        self._lock = asyncio.Lock()

    def _on_released(self) -> None:
        if self.active:
            logger.debug("Keep-awake lost while active, will re-request on next refresh")

    async def _request(self) -> None:
        try:
            await self.capability.request()
        except CapabilityUnavailable as e:
            logger.warning("Keep-awake not available: {}", e)
        except Exception as e:
            logger.warning("Keep-awake request failed: {}: {}", type(e).__name__, e)

    async def acquire(self) -> None:
        async with self._lock:
            self.active = True
            await self._request()
            if self._refresh_task is None or self._refresh_task.done():
                self._refresh_task = asyncio.create_task(self._refresh_loop())

    async def release(self) -> None:
        async with self._lock:
            self.active = False
            task, self._refresh_task = self._refresh_task, None
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            try:
                await self.capability.release()
            except Exception as e:
                logger.warning("Keep-awake release failed: {}: {}", type(e).__name__, e)

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            if not self.active:
                return
            if not self.capability.held:
                async with self._lock:
                    if self.active:
                        await self._request()
