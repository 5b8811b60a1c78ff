"""
Command-line entry point.

Usage:
    ddv [--region R] [--endpoint-url URL] [--profile NAME]
        [--config PATH] [--page-size N]
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from ddv import __version__
from ddv.config import load_config
from ddv.errors import DdvError
from ddv.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ddv",
        description="Browse, search and edit DynamoDB tables in the terminal",
    )
    parser.add_argument("--region", help="AWS region (default: profile region, then config)")
    parser.add_argument("--endpoint-url", help="Custom endpoint, e.g. a local emulator")
    parser.add_argument("--profile", help="AWS shared-credentials profile")
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    parser.add_argument("--page-size", type=positive_int, help="Rows requested per page")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except DdvError as e:
        print(f"ddv: {e}", file=sys.stderr)
        return 2
    if args.page_size:
        config = dataclasses.replace(config, page_size=args.page_size)

    setup_logging(config.log)
    logger.info("starting ddv %s", __version__)

    # Imported late so --help and --version stay fast.
    from ddv.app import run
    from ddv.dynamo_provider import DynamoDataStore

    try:
        store = DynamoDataStore.connect(
            region=args.region,
            endpoint_url=args.endpoint_url,
            profile=args.profile,
            default_region=config.default_region,
        )
    except DdvError as e:
        logger.error("cannot connect: %s", e)
        print(f"ddv: {e}", file=sys.stderr)
        return 1

    run(store, config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
