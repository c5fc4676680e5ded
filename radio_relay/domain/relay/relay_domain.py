"""Relay service: pipes the upstream audio stream to one client."""

from collections.abc import AsyncIterator

import anyio
from loguru import logger

from radio_relay.services.upstream.stream_client import StreamSession, UpstreamStreamClient
from radio_relay.utils.app_errors import StreamInterrupted

AUDIO_MEDIA_TYPE = "audio/mpeg"


class RelayService:
    """Opens one upstream session per client request and forwards its bytes."""

    def __init__(self, upstream: UpstreamStreamClient):
        self.upstream = upstream

    async def open_session(self) -> StreamSession:
        """
        Open the upstream stream for a single client.

        Failures propagate as UpstreamUnavailable; the relay never retries.
        """
        logger.info("Opening upstream stream {}", self.upstream.url)
        return await self.upstream.open()

    async def relay(self, session: StreamSession) -> AsyncIterator[bytes]:
        """
        Forward the session's bytes until the upstream ends, fails, or the
        client disconnects. The session is always closed on exit.
        """
        sent = 0
        try:
            async for chunk in session.iter_raw():
                sent += len(chunk)
                yield chunk
            logger.info("Upstream stream ended after {} bytes", sent)
        except StreamInterrupted as e:
            # End the response as-is; already sent bytes are never patched
            logger.warning("Upstream stream interrupted after {} bytes: {}", sent, e)
        finally:
            with anyio.CancelScope(shield=True):
                await session.aclose()
            logger.debug("Upstream session closed ({} bytes relayed)", sent)
