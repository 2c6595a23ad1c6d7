#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import sys

from src.cli.commands import extraction

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract structured person records from long-form documents.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Verbosity of the activity stream written to stderr.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)
    extraction.register_commands(subcommands)
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, datefmt="%H:%M:%S")
    # Endpoint chatter is only interesting when debugging.
    if level != "DEBUG":
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    raw_args = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(raw_args)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
