"""Nexus companion – unified CLI dispatcher.

All subcommands live in ``nexus/commands/*.py`` and expose a
``register(subparsers)`` function that adds themselves to argparse.
"""
from __future__ import annotations

import argparse
import logging
import sys


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="nexus",
        description="Nexus companion: event resolution and player-state engine CLI",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at INFO level")
    sub = parser.add_subparsers(dest="command")

    from nexus.commands.registry import register_all

    register_all(sub)

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    # Each command stores a ``func`` on the namespace
    rc = args.func(args)
    sys.exit(rc or 0)
