"""Command-line entry point for the license bot.

WHY: Operators start the bot from a terminal or a process manager, and
need the Slack app manifest when registering the slash commands.

HOW: argparse picks the mode. ``--manifest`` prints the manifest JSON to
stdout and exits without reading any configuration. ``--check-config``
validates the environment and exits. Otherwise the settings are loaded,
logging is configured from LOG_LEVEL, and the Socket Mode bot runs until
interrupted.

RULES:
- Configuration errors go to stderr and exit with status 2
- Log output format matches the rest of the service logs
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from license_bot import __version__
from license_bot.config import ConfigError, Settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="license-bot",
        description="Slack bot for IP asset license lookups.",
    )
    parser.add_argument(
        "--manifest",
        action="store_true",
        help="print the Slack app manifest as JSON and exit",
    )
    parser.add_argument(
        "--app-name",
        default="License Bot",
        help="display name used in the manifest (default: %(default)s)",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="validate the environment configuration and exit",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.manifest:
        from license_bot.slack.manifest import build_manifest
        print(json.dumps(build_manifest(args.app_name), indent=2, ensure_ascii=False))
        return 0

    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if args.check_config:
        print("Configuration OK", file=sys.stderr)
        return 0

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    from license_bot.slack.bot import run
    run(settings)
    return 0
