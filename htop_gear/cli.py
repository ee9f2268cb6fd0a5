"""
Command line entry point.

Usage:
    htop-gear [--aggressive] [--ascii] [--lanes N] [--tick-ms MS]

Flags override the HTOP_GEAR_* environment variables (see htop_gear.config).
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from htop_gear.config import SAMPLERS, RaceOptions, configure_logging, load_options
from htop_gear.engine import DisplayMode, RaceLoop, RNGContainer, TelemetryCollector, TrackRenderer
from htop_gear.errors import ConfigError
from htop_gear.sampler import make_sample_provider
from htop_gear.terminal import Terminal

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Watch your processes race across the terminal.")
    parser.add_argument(
        "-m",
        "--aggressive",
        action="store_true",
        default=None,
        help="Browser processes drive heavy but fast vehicles.",
    )
    parser.add_argument("--ascii", action="store_true", help="Use the multi-line ASCII cars instead of pictographs.")
    parser.add_argument("--lanes", type=int, help="Maximum number of lanes shown.")
    parser.add_argument("--tick-ms", type=int, help="Tick interval in milliseconds.")
    parser.add_argument("--sampler", choices=SAMPLERS, help="Where process samples come from.")
    parser.add_argument("--seed", type=int, help="Seed for spawn positions and obstacles.")
    parser.add_argument("--frames", type=int, help="Stop after this many frames.")
    return parser


def resolve_options(args: argparse.Namespace, base: RaceOptions) -> RaceOptions:
    return base.override(
        max_lanes=args.lanes,
        aggressive_mode=args.aggressive,
        tick_interval=args.tick_ms / 1000.0 if args.tick_ms is not None else None,
        display_mode=DisplayMode.ASCII if args.ascii else None,
        sampler=args.sampler,
        seed=args.seed,
    )


def build_loop(options: RaceOptions, telemetry: Optional[TelemetryCollector] = None) -> RaceLoop:
    return RaceLoop(
        max_lanes=options.max_lanes,
        tick_interval=options.tick_interval,
        aggressive_mode=options.aggressive_mode,
        rng=RNGContainer(seed=options.seed),
        telemetry=telemetry,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging()
        options = resolve_options(args, load_options())
    except ConfigError as exc:
        print(f"htop-gear: {exc}", file=sys.stderr)
        return 2

    # bounded runs keep every tick so they can report on the race afterwards
    telemetry = TelemetryCollector() if args.frames is not None else None
    loop = build_loop(options, telemetry=telemetry)
    renderer = TrackRenderer(display_mode=options.display_mode, aggressive_mode=options.aggressive_mode)
    provider = make_sample_provider(options.sampler)
    logger.info("Starting race with %s", options)
    try:
        loop.run(provider, renderer, Terminal(), max_frames=args.frames)
    except KeyboardInterrupt:
        logger.info("Race stopped by user.")
    if telemetry is not None:
        logger.info("Race summary: %s", telemetry.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
