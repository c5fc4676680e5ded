from pydantic import BaseModel

from radio_relay.shared.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_bool("DEBUG")

    API_HOST: str = config.get("API_HOST", "0.0.0.0").strip()  # type: ignore
    API_PORT: int = config.get_int("API_PORT", 8000)
    API_WORKERS: int = config.get_int("API_WORKERS", 1)

    # Upstream origin relayed by /api/radio
    UPSTREAM_STREAM_URL: str = (
        config.get("UPSTREAM_STREAM_URL") or ""
    ).strip() or "https://omshanti.in/amudhamazhai"
    # Only the connect phase is bounded; reads last as long as the client stays connected
    UPSTREAM_CONNECT_TIMEOUT_SECONDS: float = config.get_float("UPSTREAM_CONNECT_TIMEOUT_SECONDS", 10.0)
    UPSTREAM_USER_AGENT: str = (config.get("UPSTREAM_USER_AGENT") or "").strip() or "radio-relay/1.0"

    # Headless player
    PLAYER_STREAM_URL: str = (
        config.get("PLAYER_STREAM_URL") or ""
    ).strip() or "http://localhost:8000/api/radio"
    PLAYER_MAX_RECONNECT_ATTEMPTS: int = config.get_int("PLAYER_MAX_RECONNECT_ATTEMPTS", 5)
    PLAYER_RECONNECT_BASE_DELAY_MS: int = config.get_int("PLAYER_RECONNECT_BASE_DELAY_MS", 1000)
    PLAYER_RECONNECT_CAP_DELAY_MS: int = config.get_int("PLAYER_RECONNECT_CAP_DELAY_MS", 10000)
    PLAYER_BUFFERING_AFTER_SECONDS: float = config.get_float("PLAYER_BUFFERING_AFTER_SECONDS", 3.0)
    PLAYER_STALL_TIMEOUT_SECONDS: float = config.get_float("PLAYER_STALL_TIMEOUT_SECONDS", 15.0)
    PLAYER_KEEP_AWAKE_COMMAND: str | None = (config.get("PLAYER_KEEP_AWAKE_COMMAND") or "").strip() or None
    PLAYER_KEEP_AWAKE_REFRESH_SECONDS: float = config.get_float("PLAYER_KEEP_AWAKE_REFRESH_SECONDS", 60.0)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
