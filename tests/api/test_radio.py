"""Unit tests for the radio relay router."""

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from radio_relay.api.errors import upstream_unavailable_handler
from radio_relay.api.radio import get_relay_service, router
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
        raise httpx.ReadError("connection reset by peer")


class FakeUpstream:
    """Records upstream requests and answers with a scripted response."""

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.respond = lambda request: httpx.Response(200, content=b"")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.respond(request)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def test_app(upstream: FakeUpstream) -> FastAPI:
    """Create FastAPI test app with the relay wired to a fake upstream."""
    app = FastAPI()

    relay = RelayService(UpstreamStreamClient(UPSTREAM_URL, transport=httpx.MockTransport(upstream.handler)))
    app.dependency_overrides[get_relay_service] = lambda: relay

    # Add exception handler for upstream failures
    app.add_exception_handler(UpstreamUnavailable, upstream_unavailable_handler)  # type: ignore[arg-type]

    app.include_router(router)
    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(test_app)


class TestRadioPreflight:
    """Tests for OPTIONS /api/radio."""

    def test_preflight_returns_cors_headers(self, client: TestClient, upstream: FakeUpstream):
        """Should answer 200 with CORS headers and never contact the upstream."""
        # Act
        response = client.options("/api/radio")

        # Assert
        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "GET, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type"
        assert upstream.calls == []

    def test_preflight_with_origin(self, client: TestClient, upstream: FakeUpstream):
        response = client.options(
            "/api/radio",
            headers={"Origin": "https://player.example", "Access-Control-Request-Method": "GET"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert upstream.calls == []


class TestRadioStream:
    """Tests for GET /api/radio."""

    def test_streams_upstream_audio(self, client: TestClient, upstream: FakeUpstream):
        """Should relay the upstream bytes as audio/mpeg."""
        # Arrange
        body = b"\xff\xfb\x90\x00" * 256
        upstream.respond = lambda request: httpx.Response(200, content=body)

        # Act
        response = client.get("/api/radio")

        # Assert
        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["cache-control"] == "no-store"
        assert response.content == body
        assert len(upstream.calls) == 1

    def test_content_type_is_forced(self, client: TestClient, upstream: FakeUpstream):
        """Should label the stream audio/mpeg whatever the upstream claims."""
        upstream.respond = lambda request: httpx.Response(
            200, content=b"\xff\xfb", headers={"Content-Type": "application/octet-stream"}
        )

        response = client.get("/api/radio")

        assert response.headers["content-type"] == "audio/mpeg"

    def test_each_client_gets_its_own_upstream(self, client: TestClient, upstream: FakeUpstream):
        upstream.respond = lambda request: httpx.Response(200, content=b"\xff\xfb")

        client.get("/api/radio")
        client.get("/api/radio")

        assert len(upstream.calls) == 2

    @pytest.mark.parametrize("status", [403, 500, 503])
    def test_upstream_error_status_returns_500(self, client: TestClient, upstream: FakeUpstream, status: int):
        """Should answer 500 text/plain with a diagnostic and no audio."""
        # Arrange
        upstream.respond = lambda request: httpx.Response(status, text="upstream says no")

        # Act
        response = client.get("/api/radio")

        # Assert
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("Error fetching radio stream: ")
        assert str(status) in response.text
        assert response.headers["access-control-allow-origin"] == "*"

    def test_upstream_unreachable_returns_500(self, client: TestClient, upstream: FakeUpstream):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        upstream.respond = refuse

        response = client.get("/api/radio")

        assert response.status_code == 500
        assert "ConnectError" in response.text
        assert len(upstream.calls) == 1

    def test_mid_stream_failure_ends_response(self, client: TestClient, upstream: FakeUpstream):
        """Should end the body after the bytes already relayed, keeping the 200."""
        upstream.respond = lambda request: httpx.Response(200, stream=FailingStream([b"first", b"second"]))

        response = client.get("/api/radio")

        assert response.status_code == 200
        assert response.content == b"firstsecond"
