"""Tests for RelayService."""

from unittest.mock import AsyncMock

import httpx
import pytest

from radio_relay.domain.relay.relay_domain import RelayService
from radio_relay.services.upstream.stream_client import UpstreamStreamClient
from radio_relay.utils.app_errors import UpstreamUnavailable

UPSTREAM_URL = "https://upstream.test/live"


class FailingStream(httpx.AsyncByteStream):
    def __init__(self, chunks: list[bytes]):
        self.chunks = chunks

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise httpx.RemoteProtocolError("peer closed connection")


def make_relay(handler) -> RelayService:
    return RelayService(UpstreamStreamClient(UPSTREAM_URL, transport=httpx.MockTransport(handler)))


class TestRelayService:
    async def test_relay_forwards_all_bytes_and_closes(self):
        relay = make_relay(lambda request: httpx.Response(200, content=b"\xff\xfb" * 10))

        session = await relay.open_session()
        received = b"".join([chunk async for chunk in relay.relay(session)])

        assert received == b"\xff\xfb" * 10
        assert session.closed is True

    async def test_upstream_failure_ends_relay_quietly(self):
        """Test a mid-stream failure ends the response with what was already sent."""
        relay = make_relay(lambda request: httpx.Response(200, stream=FailingStream([b"one", b"two"])))

        session = await relay.open_session()
        received = [chunk async for chunk in relay.relay(session)]

        assert received == [b"one", b"two"]
        assert session.closed is True

    async def test_client_disconnect_closes_upstream(self):
        """Test closing the relay generator early releases the upstream connection."""
        relay = make_relay(lambda request: httpx.Response(200, stream=FailingStream([b"one", b"two"])))
        session = await relay.open_session()
        stream = relay.relay(session)

        first = await stream.__anext__()
        await stream.aclose()

        assert first == b"one"
        assert session.closed is True

    async def test_one_upstream_request_per_session(self):
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, content=b"x")

        relay = make_relay(handler)

        for _ in range(3):
            session = await relay.open_session()
            [chunk async for chunk in relay.relay(session)]

        assert len(calls) == 3

    async def test_open_session_propagates_upstream_failure(self):
        """Test the relay does not retry a failed upstream open."""
        upstream = AsyncMock(spec=UpstreamStreamClient)
        upstream.url = UPSTREAM_URL
        upstream.open.side_effect = UpstreamUnavailable("Stream request failed with status 503", upstream_status=503)
        relay = RelayService(upstream)

        with pytest.raises(UpstreamUnavailable):
            await relay.open_session()

        upstream.open.assert_awaited_once()
