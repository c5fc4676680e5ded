"""Radio relay endpoints."""

from functools import lru_cache

from fastapi import APIRouter, Depends, Response
from fastapi.responses import StreamingResponse

from radio_relay.app_config import get_app_environ_config
from radio_relay.domain.relay.relay_domain import AUDIO_MEDIA_TYPE, RelayService
from radio_relay.services.upstream.stream_client import UpstreamStreamClient

# The player may be served from a different host than the relay
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

router = APIRouter(prefix="/api")


@lru_cache
def get_relay_service() -> RelayService:
    app_config = get_app_environ_config()
    upstream = UpstreamStreamClient(
        app_config.UPSTREAM_STREAM_URL,
        connect_timeout=app_config.UPSTREAM_CONNECT_TIMEOUT_SECONDS,
        user_agent=app_config.UPSTREAM_USER_AGENT,
    )
    return RelayService(upstream)


@router.options("/radio")
async def radio_preflight() -> Response:
    """Answer CORS pre-flight without touching the upstream."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.get("/radio")
async def radio(relay: RelayService = Depends(get_relay_service)) -> StreamingResponse:
    """Relay the live upstream audio stream.

    Returns:
        The raw upstream byte stream as audio/mpeg

    Raises:
        UpstreamUnavailable: rendered as 500 text/plain by the registered handler
    """
    session = await relay.open_session()

    headers = {**CORS_HEADERS, "Cache-Control": "no-store"}
    return StreamingResponse(
        relay.relay(session),
        media_type=AUDIO_MEDIA_TYPE,
        headers=headers,
    )
