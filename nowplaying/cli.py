"""
nowplaying CLI entry point.

Loads a playlist, applies the requested queue operations and prints the
resulting now-playing metadata.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from nowplaying import __version__
from nowplaying.app import NowPlayingApp
from nowplaying.config import Config, ConfigError, _set_nested, load_config
from nowplaying.playback import (
    NowPlayingMetadata,
    PlaylistError,
    QueueError,
    ResolveError,
)
from nowplaying.playback.metadata import format_duration

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_PLAYLIST_ERROR = 2
EXIT_PLAYBACK_ERROR = 3


def setup_logging(level: str = "info") -> None:
    """Configure logging to stdout."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nowplaying",
        description="Now-playing queue with metadata and cover art refresh",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nowplaying --playlist queue.yaml
  nowplaying --playlist queue.yaml --play track-3 --skip 1 --skip -2
  nowplaying --config config.yaml --shuffle --json

Environment Variables:
  NOWPLAYING_PLAYLIST, NOWPLAYING_SHUFFLE, NOWPLAYING_LOG_LEVEL
  NOWPLAYING_ARTWORK_ENABLED, NOWPLAYING_ARTWORK_SIZE
  NOWPLAYING_ARTWORK_TIMEOUT, NOWPLAYING_ARTWORK_CACHE_SIZE
""",
    )

    # General
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("./config.yaml"),
        metavar="PATH",
        help="Path to config file (default: ./config.yaml)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output metadata as JSON",
    )

    # Queue
    queue_group = parser.add_argument_group("Queue")
    queue_group.add_argument(
        "--playlist",
        metavar="PATH",
        help="YAML playlist file",
    )
    queue_group.add_argument(
        "--play",
        metavar="ID",
        help="Track id to make current",
    )
    queue_group.add_argument(
        "--skip",
        type=int,
        action="append",
        default=[],
        metavar="N",
        help="Skip by N positions (repeatable, applied in order)",
    )
    queue_group.add_argument(
        "--shuffle",
        action="store_true",
        help="Use shuffled traversal",
    )

    # Artwork
    artwork_group = parser.add_argument_group("Artwork")
    artwork_group.add_argument(
        "--artwork-size",
        type=int,
        metavar="PX",
        help="Cover art edge length in pixels (default: 144)",
    )
    artwork_group.add_argument(
        "--no-artwork",
        action="store_true",
        help="Do not fetch cover art",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        metavar="LEVEL",
        help="Log level: debug, info, warning, error",
    )

    return parser.parse_args(argv)


def args_to_dict(args: argparse.Namespace) -> dict:
    """Convert argparse namespace to nested config dict."""
    result: dict = {}

    mappings = {
        "playlist": ("queue", "playlist"),
        "artwork_size": ("artwork", "size"),
        "log_level": ("logging", "level"),
    }

    for arg_name, path in mappings.items():
        value = getattr(args, arg_name, None)
        if value is None:
            continue
        _set_nested(result, path, value)

    # Flags only override when explicitly set
    if getattr(args, "shuffle", False):
        _set_nested(result, ("queue", "shuffle"), True)
    if getattr(args, "no_artwork", False):
        _set_nested(result, ("artwork", "enabled"), False)

    return result


def log_config(config: Config) -> None:
    """Log configuration summary."""
    logger.info(f"Playlist: {config.queue.playlist}")
    logger.info(f"Mode: {'shuffled' if config.queue.shuffle else 'sequential'}")
    if config.artwork.enabled:
        logger.info(f"Artwork: {config.artwork.size}px, timeout {config.artwork.timeout}s")
    else:
        logger.info("Artwork: disabled")


def print_metadata(
    metadata: Optional[NowPlayingMetadata], index: int, size: int, json_output: bool
) -> None:
    """Print the now-playing result."""
    if json_output:
        output = {
            "index": index,
            "queue_size": size,
            "metadata": metadata.to_dict() if metadata else None,
        }
        print(json.dumps(output, indent=2))
        return

    if metadata is None:
        print("Nothing playing.")
        return

    print(f"Now playing [{index + 1}/{size}]: {metadata.title or metadata.track_id}")
    print(f"  ID: {metadata.track_id}")
    print(f"  Duration: {format_duration(metadata.duration_ms)}")
    if metadata.media_url:
        print(f"  URL: {metadata.media_url}")
    if metadata.artwork:
        art = metadata.artwork
        print(f"  Artwork: {art.width}x{art.height} from {art.url}")
    elif metadata.cover_url:
        print(f"  Artwork: unavailable ({metadata.cover_url})")


async def run_session(config: Config, args: argparse.Namespace) -> int:
    """
    Run the requested queue operations.

    Args:
        config: Validated configuration
        args: Parsed arguments

    Returns:
        Exit code
    """
    async with NowPlayingApp(config) as app:
        if args.play:
            metadata = await app.play(args.play)
        else:
            metadata = await app.refresh()

        for amount in args.skip:
            skipped = await app.skip(amount)
            if skipped is not None:
                metadata = skipped

        state = app.queue.get_state()
        print_metadata(metadata, state.current_index, state.queue_size, args.json_output)

    return EXIT_SUCCESS if metadata is not None else EXIT_PLAYBACK_ERROR


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0=success, 1=config error, 2=playlist error, 3=playback error
    """
    args = parse_args(argv)

    # Setup basic logging first (will be reconfigured after config load)
    setup_logging("info")

    try:
        config = load_config(args.config, args_to_dict(args))
        setup_logging(config.logging.level)
        log_config(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    try:
        return asyncio.run(run_session(config, args))

    except PlaylistError as e:
        logger.error(f"Playlist error: {e}")
        return EXIT_PLAYLIST_ERROR

    except (QueueError, ResolveError) as e:
        logger.error(f"Playback error: {e}")
        return EXIT_PLAYBACK_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
