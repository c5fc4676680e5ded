from collections.abc import AsyncIterator

import httpx
from loguru import logger

from radio_relay.utils.app_errors import StreamInterrupted, UpstreamUnavailable


class StreamSession:
    """A single live connection to the upstream origin.

    Owns its own HTTP client so one session maps to exactly one upstream
    connection. Closed when the upstream ends, fails, or the consumer goes away.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def closed(self) -> bool:
        return self._closed

    async def iter_raw(self) -> AsyncIterator[bytes]:
        """Yield the upstream body exactly as received, without content decoding."""
        try:
            async for chunk in self._response.aiter_raw():
                if chunk:
                    yield chunk
        except httpx.HTTPError as e:
            raise StreamInterrupted(f"Upstream stream failed: {type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class UpstreamStreamClient:
    def __init__(
        self,
        url: str,
        *,
        connect_timeout: float = 10.0,
        user_agent: str = "radio-relay/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.connect_timeout = connect_timeout
        self.user_agent = user_agent
        self._transport = transport

    def _build_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "*/*",
        }

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=self.connect_timeout),
            follow_redirects=True,
            transport=self._transport,
        )

    async def open(self) -> StreamSession:
        """Open one streaming GET against the upstream URL.

        Raises:
            UpstreamUnavailable: connection failed or upstream answered non-2xx
        """
        client = self._build_client()
        request = client.build_request("GET", self.url, headers=self._build_headers())

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise UpstreamUnavailable(f"Upstream connection failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            status = response.status_code
            await response.aclose()
            await client.aclose()
            raise UpstreamUnavailable(
                f"Stream request failed with status {status}",
                upstream_status=status,
            )

        logger.debug(
            "Upstream stream opened: status={} content_type={}",
            response.status_code,
            response.headers.get("content-type"),
        )
        return StreamSession(client, response)
