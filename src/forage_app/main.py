"""robot-forage: run the forage simulation in a terminal.

Usage:
    robot-forage                       # 150x50 map, 1 explorer, 2 miners
    robot-forage --seed 7 --miners 4 --until-done
    robot-forage --no-render --max-ticks 500 --log-level DEBUG

Ctrl+C stops the robots at the next tick boundary, joins every thread and
prints a summary.
"""

from __future__ import annotations

import argparse
import signal
import sys
import time
from dataclasses import replace

from loguru import logger

from forage.comms.event_bus import EventLog
from forage.errors import ConfigError
from forage.simulation.config import roster_from_counts
from forage.simulation.engine import SimulationEngine

from .config import Settings, settings
from .render import CLEAR_SCREEN, render_frame


def parse_args(argv: list[str] | None = None, defaults: Settings = settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="robot-forage",
        description="Explorer and miner robots foraging on a procedural map",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  robot-forage --width 60 --height 20 --seed 3
  robot-forage --explorers 2 --miners 3 --capacity 4 --until-done
""",
    )
    parser.add_argument("--width", type=int, default=defaults.width, help="Map width in cells")
    parser.add_argument("--height", type=int, default=defaults.height, help="Map height in cells")
    parser.add_argument("--seed", type=int, default=defaults.seed, help="Terrain seed")
    parser.add_argument("--explorers", type=int, default=defaults.explorers, help="Number of explorers")
    parser.add_argument("--miners", type=int, default=defaults.miners, help="Number of miners")
    parser.add_argument("--capacity", type=int, default=defaults.miner_capacity, help="Miner carry capacity")
    parser.add_argument("--obstacle-density", type=float, default=defaults.obstacle_density)
    parser.add_argument("--resource-density", type=float, default=defaults.resource_density)
    parser.add_argument("--tick-interval", type=float, default=defaults.tick_interval,
                        help="Seconds between ticks")
    parser.add_argument("--max-ticks", type=int, default=0, help="Stop after this many ticks (0 = no limit)")
    parser.add_argument("--until-done", action="store_true", help="Stop once every resource is at base")
    parser.add_argument("--no-render", action="store_true", help="Do not draw the map")
    parser.add_argument("--log-level", default=defaults.log_level, help="Log level for stderr")
    parser.add_argument("--log-file", default=defaults.log_file, help="Also log to this file")
    return parser.parse_args(argv)


def configure_logging(level: str, log_file: str | None = None) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    if log_file:
        logger.add(str(log_file), level="DEBUG", rotation="10 MB", enqueue=True)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        config = replace(
            settings.to_simulation_config(),
            width=args.width,
            height=args.height,
            seed=args.seed,
            obstacle_density=args.obstacle_density,
            resource_density=args.resource_density,
            roster=roster_from_counts(args.explorers, args.miners),
            miner_capacity=args.capacity,
            tick_interval=args.tick_interval,
        )
        engine = SimulationEngine(config)
    except ConfigError as e:
        for err in e.errors:
            print(f"  ERROR: {err}", file=sys.stderr)
        return 2

    log = EventLog(engine.event_bus, max_lines=settings.max_logs)

    def shutdown(sig, frame):
        logger.info(f"Signal {sig} received, stopping robots")
        engine.request_stop()

    previous = {sig: signal.signal(sig, shutdown) for sig in (signal.SIGINT, signal.SIGTERM)}

    engine.start()
    frame_interval = max(args.tick_interval, 0.05)
    try:
        while not engine.stop_requested:
            lines = log.drain()
            if not args.no_render:
                print(CLEAR_SCREEN + render_frame(engine.snapshot(), lines), flush=True)
            if args.max_ticks and engine.tick >= args.max_ticks:
                break
            if args.until_done and engine.is_quiescent():
                logger.info("All resources delivered to base")
                break
            time.sleep(frame_interval)
    finally:
        engine.stop()
        log.close()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    snap = engine.snapshot()
    stored = {k.value: n for k, n in snap.base_inventory.items()}
    initial = {k.value: n for k, n in engine.world.initial_totals.items()}
    print(f"Stopped after {snap.tick} ticks. Base inventory {stored} of {initial}.")
    return 1 if engine.failed_robots else 0


if __name__ == "__main__":
    sys.exit(main())
