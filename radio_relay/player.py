"""Headless radio player.

Connects to the relay, writes the audio to a file, stdout or an external
player command, and keeps reconnecting with backoff until stopped or out of
attempts. Exits 0 when stopped by a signal and 1 when the connection failed
for good.
"""

import argparse
import asyncio
import signal
import sys

from loguru import logger

from radio_relay.app_config import get_app_environ_config
from radio_relay.domain.playback.audio_sink import AudioSink, CommandSink, FileSink, NullSink
from radio_relay.domain.playback.audio_source import HttpAudioSource
from radio_relay.domain.playback.backoff import (
    MAX_RECONNECT_ATTEMPTS,
    MIN_RECONNECT_ATTEMPTS,
    ReconnectPolicy,
)
from radio_relay.domain.playback.keep_awake import CommandKeepAwake, KeepAwakeManager, NullKeepAwake
from radio_relay.domain.playback.radio_player import RadioPlayer
from radio_relay.schemas import PlaybackStatus
from radio_relay.shared.api.utils import init_logger


def build_parser() -> argparse.ArgumentParser:
    app_config = get_app_environ_config()
    parser = argparse.ArgumentParser(prog="radio-player", description=__doc__.splitlines()[0])
    parser.add_argument("--url", default=app_config.PLAYER_STREAM_URL, help="Relay stream URL")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--output", help="Write audio to this file ('-' for stdout)")
    output.add_argument("--sink-command", help="Pipe audio into this command, e.g. 'ffplay -nodisp -'")
    parser.add_argument(
        "--max-reconnect-attempts",
        type=int,
        default=app_config.PLAYER_MAX_RECONNECT_ATTEMPTS,
        choices=range(MIN_RECONNECT_ATTEMPTS, MAX_RECONNECT_ATTEMPTS + 1),
        help="Reconnect attempts before giving up (3-5)",
    )
    parser.add_argument(
        "--stall-timeout",
        type=float,
        default=app_config.PLAYER_STALL_TIMEOUT_SECONDS,
        help="Seconds without audio before the stream counts as stalled",
    )
    parser.add_argument(
        "--buffering-after",
        type=float,
        default=app_config.PLAYER_BUFFERING_AFTER_SECONDS,
        help="Seconds of silence before the player reports buffering (0 disables)",
    )
    parser.add_argument(
        "--keep-awake-command",
        default=app_config.PLAYER_KEEP_AWAKE_COMMAND,
        help="Inhibitor command held while playing, e.g. 'systemd-inhibit --what=idle sleep infinity'",
    )
    return parser


def build_sink(args: argparse.Namespace) -> AudioSink:
    if args.sink_command:
        return CommandSink(args.sink_command)
    if args.output:
        return FileSink(args.output)
    return NullSink()


def build_player(args: argparse.Namespace) -> RadioPlayer:
    app_config = get_app_environ_config()

    policy = ReconnectPolicy(
        max_attempts=args.max_reconnect_attempts,
        base_delay_ms=app_config.PLAYER_RECONNECT_BASE_DELAY_MS,
        cap_delay_ms=app_config.PLAYER_RECONNECT_CAP_DELAY_MS,
    )
    capability = CommandKeepAwake(args.keep_awake_command) if args.keep_awake_command else NullKeepAwake()
    keep_awake = KeepAwakeManager(capability, refresh_interval=app_config.PLAYER_KEEP_AWAKE_REFRESH_SECONDS)
    source = HttpAudioSource(
        build_sink(args),
        stall_timeout=args.stall_timeout or None,
        buffering_after=args.buffering_after or None,
    )

    return RadioPlayer(source, stream_url=args.url, policy=policy, keep_awake=keep_awake)


async def run(args: argparse.Namespace) -> int:
    player = build_player(args)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, player.stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C raises instead
            pass

    try:
        player.play()
        final = await player.wait_until(PlaybackStatus.STOPPED, PlaybackStatus.ERROR)
    finally:
        await player.close()

    if final.status == PlaybackStatus.ERROR:
        logger.error("Giving up after {} reconnect attempts", final.reconnect_attempts)
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    init_logger()
    args = build_parser().parse_args(argv)
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
