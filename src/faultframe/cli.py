"""
faultframe command line entry point.

Usage:
    faultframe --frames-dir frames --fps 30
    faultframe --config faultframe.yaml --pool-capacity 20

SIGINT and SIGTERM cancel playback; pooled workers are terminated before
exit.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from pydantic import ValidationError

from faultframe.catalog import CatalogError
from faultframe.config import Settings, load_config, setup_logging
from faultframe.models.telemetry import PlaybackOutcome
from faultframe.pipeline import play
from faultframe.playback import PlaybackError


logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faultframe",
        description="Play a directory of bitmap frames as a sequence of crash traces",
    )
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument("--frames-dir", type=str, help="Directory of .bmp frames")
    parser.add_argument("--artifacts-dir", type=str, help="Directory for worker scripts")
    parser.add_argument("--fps", type=float, help="Target frames per second")
    parser.add_argument("--pool-capacity", type=int, help="Workers started ahead of playback")
    parser.add_argument("--warmup-ms", type=int, help="Delay before the first frame")
    parser.add_argument("--timeout-ms", type=int, help="Per-frame completion bound")
    parser.add_argument(
        "--timeout-policy",
        choices=["abort", "skip"],
        help="Action when a frame exceeds --timeout-ms",
    )
    parser.add_argument("--log-level", type=str, help="Log level (DEBUG, INFO, ...)")
    return parser


def apply_arguments(settings: Settings, args: argparse.Namespace) -> Settings:
    """Overlay command line arguments on loaded settings."""
    data = settings.model_dump()

    overrides = {
        ("catalog", "frames_dir"): args.frames_dir,
        ("artifacts", "output_dir"): args.artifacts_dir,
        ("playback", "fps"): args.fps,
        ("playback", "pool_capacity"): args.pool_capacity,
        ("playback", "warmup_ms"): args.warmup_ms,
        ("playback", "completion_timeout_ms"): args.timeout_ms,
        ("playback", "timeout_policy"): args.timeout_policy,
        ("logging", "level"): args.log_level,
    }
    for (section, key), value in overrides.items():
        if value is not None:
            data[section][key] = value

    return Settings.model_validate(data)


async def _run(settings: Settings) -> PlaybackOutcome:
    cancel_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, cancel_event.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform's event loop
            pass

    telemetry = await play(settings, cancel_event=cancel_event)
    return telemetry.outcome


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = apply_arguments(load_config(args.config), args)
    except (FileNotFoundError, ValidationError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(settings)

    try:
        outcome = asyncio.run(_run(settings))
    except CatalogError as e:
        logger.error(f"Cannot read frames: {e}")
        return EXIT_ERROR
    except PlaybackError as e:
        logger.error(f"Playback failed: {e}")
        return EXIT_ERROR

    return EXIT_CANCELLED if outcome is PlaybackOutcome.CANCELLED else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
