"""Audio sources driven by the radio player.

A source loads a URL, starts playback on request, and reports lifecycle
signals (`PLAYBACK_STARTED`, `WAITING`, `STALLED`, `ERRORED`, `ENDED`) through
the handler installed with `set_event_handler`. `play()` raises
`PlaybackRejected` when the attempt is refused before any audio arrives.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from typing import Protocol

import httpx
from loguru import logger

from radio_relay.utils.app_errors import PlaybackRejected

from .audio_sink import AudioSink
from .playback_models import PlaybackEvent

EventHandler = Callable[[PlaybackEvent], object]


async def _next_chunk(chunks: AsyncIterator[bytes]) -> bytes | None:
    """Next raw chunk, or None once the stream is exhausted."""
    try:
        return await anext(chunks)
    except StopAsyncIteration:
        return None


class AudioSource(Protocol):
    def set_event_handler(self, handler: EventHandler) -> None: ...

    async def load(self, url: str) -> None: ...

    async def play(self) -> None: ...

    async def stop(self) -> None: ...

    async def close(self) -> None: ...


class HttpAudioSource:
    """Streams audio from an HTTP URL (normally the relay) into a sink.

    Emits PLAYBACK_STARTED on the first received chunk, WAITING when a chunk
    takes longer than `buffering_after` seconds and PLAYBACK_STARTED again once
    data resumes, STALLED when no bytes arrive for `stall_timeout` seconds,
    ERRORED on transport or sink failure, and ENDED when the server closes the
    stream.
    """

    def __init__(
        self,
        sink: AudioSink,
        *,
        stall_timeout: float | None = 15.0,
        buffering_after: float | None = 3.0,
        connect_timeout: float = 10.0,
        user_agent: str = "radio-relay-player/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.sink = sink
        self.stall_timeout = stall_timeout
        self.buffering_after = buffering_after
        self.connect_timeout = connect_timeout
        self.user_agent = user_agent
        self._transport = transport

        self._handler: EventHandler | None = None
        self._url: str | None = None
        self._client: httpx.AsyncClient | None = None
        self._response: httpx.Response | None = None
        self._reader: asyncio.Task | None = None

    def set_event_handler(self, handler: EventHandler) -> None:
        self._handler = handler

    def _emit(self, event: PlaybackEvent) -> None:
        logger.debug("Audio source event: {}", event)
        if self._handler is not None:
            self._handler(event)

    @property
    def url(self) -> str | None:
        return self._url

    @property
    def streaming(self) -> bool:
        return self._reader is not None and not self._reader.done()

    async def load(self, url: str) -> None:
        """Drop any current stream and remember the URL for the next play()."""
        await self.stop()
        self._url = url

    async def play(self) -> None:
        if not self._url:
            raise PlaybackRejected("No stream URL loaded")
        if self.streaming:
            return

        client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.stall_timeout, connect=self.connect_timeout),
            follow_redirects=True,
            transport=self._transport,
        )
        request = client.build_request("GET", self._url, headers={"User-Agent": self.user_agent})

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise PlaybackRejected(f"Stream connection failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            status = response.status_code
            await response.aclose()
            await client.aclose()
            raise PlaybackRejected(f"Stream responded with status {status}")

        self._client = client
        self._response = response
        self._reader = asyncio.create_task(self._read(response))

    async def _read(self, response: httpx.Response) -> None:
        chunks = response.aiter_raw()
        started = False
        buffering = False
        try:
            while True:
                next_chunk = asyncio.ensure_future(_next_chunk(chunks))
                try:
                    if started and self.buffering_after:
                        done, _ = await asyncio.wait({next_chunk}, timeout=self.buffering_after)
                        if not done and not buffering:
                            buffering = True
                            logger.info("No audio for {}s, buffering", self.buffering_after)
                            self._emit(PlaybackEvent.WAITING)
                    chunk = await next_chunk
                finally:
                    if not next_chunk.done():
                        next_chunk.cancel()

                if chunk is None:
                    break
                if not chunk:
                    continue
                if not started or buffering:
                    # First chunk, or data flowing again after a gap
                    started = True
                    buffering = False
                    self._emit(PlaybackEvent.PLAYBACK_STARTED)
                await self.sink.write(chunk)
        except httpx.ReadTimeout:
            logger.warning("No audio received for {}s, stream stalled", self.stall_timeout)
            self._emit(PlaybackEvent.STALLED)
        except httpx.HTTPError as e:
            logger.warning("Stream error: {}: {}", type(e).__name__, e)
            self._emit(PlaybackEvent.ERRORED)
        except OSError as e:
            logger.error("Audio sink failed: {}: {}", type(e).__name__, e)
            self._emit(PlaybackEvent.ERRORED)
        else:
            # A live radio stream should never end on its own
            logger.warning("Stream ended by server")
            self._emit(PlaybackEvent.ENDED)

    async def stop(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader

        response, self._response = self._response, None
        client, self._client = self._client, None
        if response is not None:
            await response.aclose()
        if client is not None:
            await client.aclose()

    async def close(self) -> None:
        await self.stop()
        await self.sink.close()
