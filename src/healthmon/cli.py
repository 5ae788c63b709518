#!/usr/bin/env python3
# cli.py: command line entry point for healthmon

import argparse
import asyncio
import logging
import sys

from healthmon.config import ConfigError, load_config
from healthmon.core import Monitor
from healthmon.logging_config import setup_logging


def positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"{value!r} must be at least 1")
    return n


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="healthmon: periodic HTTP liveness and latency checks",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        default="",
        help="Path to JSON configuration file (HEALTH_MONITOR_* env vars override it)",
    )
    parser.add_argument(
        "--workers",
        type=positive_int,
        default=None,
        help="Number of concurrent probe workers (overrides config)",
    )
    parser.add_argument(
        "--histogram-bins",
        type=positive_int,
        default=20,
        help="Buckets in the latency histogram of the final summary",
    )

    # Logging & Debugging
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional file to write logs to (e.g., healthmon.log)",
    )

    return parser.parse_args(argv)


async def run(argv=None) -> int:
    args = parse_args(argv)

    log_level = "DEBUG" if args.debug else "INFO"
    setup_logging(level=log_level, log_file=args.log_file)

    try:
        config = load_config(args.config or None)
        if args.workers is not None:
            config = config.model_copy(update={"workers": args.workers})
    except ConfigError as e:
        logging.error(f"Error loading configuration: {e}")
        return 1

    monitor = Monitor(config, histogram_bins=args.histogram_bins)
    summary = await monitor.run()

    logging.info(
        f"Run completed: {summary.success} succeeded, {summary.failure} failed | "
        f"Success rate: {summary.success_rate:.1f}%"
    )
    return 0


def main():
    sys.exit(asyncio.run(run()))

if __name__ == "__main__":
    main()
