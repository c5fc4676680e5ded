"""Destinations for relayed audio bytes."""

import asyncio
import shlex
import sys
from typing import BinaryIO, Protocol

from loguru import logger


class AudioSink(Protocol):
    async def write(self, chunk: bytes) -> None: ...

    async def close(self) -> None: ...


class NullSink:
    """Discards audio; counts what it was given."""

    def __init__(self):
        self.bytes_written = 0

    async def write(self, chunk: bytes) -> None:
        self.bytes_written += len(chunk)

    async def close(self) -> None:
        return None


class FileSink:
    """Writes audio to a binary file object, or to a path opened for append on first write.

    Writes run in a worker thread.
    """

    def __init__(self, target: str | BinaryIO):
        self._path: str | None = None
        self._file: BinaryIO | None = None
        self._owned = False
        if isinstance(target, str) and target != "-":
            self._path = target
        elif isinstance(target, str):
            self._file = sys.stdout.buffer
        else:
            self._file = target
        self.bytes_written = 0

    def _write(self, chunk: bytes) -> None:
        if self._file is None:
            self._file = open(self._path, "ab")
            self._owned = True
        self._file.write(chunk)
        self._file.flush()

    async def write(self, chunk: bytes) -> None:
        await asyncio.to_thread(self._write, chunk)
        self.bytes_written += len(chunk)

    async def close(self) -> None:
        if self._owned and self._file is not None:
            self._file.close()
            self._file = None
            self._owned = False


class CommandSink:
    """Pipes audio into the stdin of an external player (e.g. `ffplay -nodisp -`)."""

    def __init__(self, command: str):
        self.argv = shlex.split(command)
        self._proc: asyncio.subprocess.Process | None = None
        self.bytes_written = 0

    async def _ensure_process(self) -> asyncio.subprocess.Process:
        if self._proc is None or self._proc.returncode is not None:
            logger.info("Starting audio sink command: {}", " ".join(self.argv))
            self._proc = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
            )
        return self._proc

    async def write(self, chunk: bytes) -> None:
        proc = await self._ensure_process()
        proc.stdin.write(chunk)  # type: ignore[union-attr]
        await proc.stdin.drain()  # type: ignore[union-attr]
        self.bytes_written += len(chunk)

    async def close(self) -> None:
        proc = self._proc
        self._proc = None
        if proc is None or proc.returncode is not None:
            return
        if proc.stdin is not None:
            proc.stdin.close()
        try:
            await asyncio.wait_for(proc.wait(), timeout=5)
        except asyncio.TimeoutError:
            logger.warning("Audio sink command did not exit, terminating")
            proc.terminate()
            await proc.wait()
