from __future__ import annotations

import argparse
import asyncio
import logging
import math
import sys
from typing import TextIO

from . import config
from .errors import ConfigurationError, StartupResolutionError
from .resolver import ChainResolver, Resolver, RouteResolver, StaticResolver, resolve_targets
from .runner import TrafficGenerator
from .transport import HttpxTransport

logger = logging.getLogger("trafficgen")

EPILOG = """\
examples:
  trafficgen
  trafficgen --workers 20 --interval 1
  trafficgen --duration 120
  TARGET_URLS=east=http://localhost:8000 trafficgen --target east
"""


def positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value!r}")
    return n


def finite_float(value: str) -> float:
    try:
        n = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if not math.isfinite(n):
        raise argparse.ArgumentTypeError(f"must be a finite number: {value!r}")
    return n


def positive_float(value: str) -> float:
    n = finite_float(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return n


def non_negative_float(value: str) -> float:
    n = finite_float(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {value!r}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="trafficgen",
        description="Realistic-ish traffic generator for the Bookinfo demo",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--workers", type=positive_int, default=config.WORKERS_PER_TARGET,
                   help=f"Workers per target (default: {config.WORKERS_PER_TARGET})")
    p.add_argument("--interval", type=positive_float, default=config.STATS_INTERVAL,
                   help=f"Stats print interval in seconds (default: {config.STATS_INTERVAL:g})")
    p.add_argument("--duration", type=non_negative_float, default=config.DURATION_SECONDS,
                   help="Stop after N seconds (default: 0 = forever)")
    p.add_argument("--verbose", action="store_true", help="Print every request line (default: stats only)")
    p.add_argument("--target", dest="targets", action="append", metavar="NAME",
                   help="Target/context name, repeatable (default: TARGETS env, east,west)")
    p.add_argument("--seed", type=int, default=None, help="Seed the random sources for a reproducible run")
    return p


def parse_settings(argv: list[str] | None = None, parser: argparse.ArgumentParser | None = None) -> config.Settings:
    parser = parser or build_parser()
    args = parser.parse_args(argv)
    settings = config.Settings(
        targets=args.targets or list(config.TARGETS),
        workers=args.workers,
        interval=args.interval,
        duration=args.duration,
        verbose=args.verbose,
        seed=args.seed,
    )
    try:
        return settings.validate()
    except ConfigurationError as e:
        parser.error(str(e))


def default_resolver() -> Resolver:
    return ChainResolver(StaticResolver(config.TARGET_URLS), RouteResolver())


def print_banner(targets, settings: config.Settings, out: TextIO) -> None:
    print("-" * 48, file=out)
    for target in targets:
        print(f"{target.name} base URL: {target.base_url}", file=out)
    print(f"Workers/target:  {settings.workers}", file=out)
    print(f"Stats interval:  {settings.interval:g}s", file=out)
    if settings.duration:
        print(f"Duration:        {settings.duration:g}s", file=out)
    else:
        print("Duration:        forever (CTRL+C to stop)", file=out)
    print("-" * 48, file=out)
    out.flush()


async def run(targets, settings: config.Settings, out: TextIO) -> None:
    async with HttpxTransport(settings.connect_timeout, settings.request_timeout) as transport:
        generator = TrafficGenerator(
            targets,
            transport,
            interval=settings.interval,
            verbose=settings.verbose,
            out=out,
            seed=settings.seed,
        )
        await generator.run(settings.duration)


def main(argv: list[str] | None = None, resolver: Resolver | None = None, out: TextIO | None = None) -> int:
    settings = parse_settings(argv)
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    out = out or sys.stdout

    print(f"Discovering targets ({', '.join(settings.targets)})...", file=out)
    try:
        targets = resolve_targets(settings.targets, resolver or default_resolver(), settings.workers)
    except StartupResolutionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print_banner(targets, settings, out)
    try:
        asyncio.run(run(targets, settings, out))
    except KeyboardInterrupt:
        # Signal handlers were unavailable; the interrupt still means "stop".
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
