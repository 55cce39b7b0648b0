#!/usr/bin/env python3
"""Local dev stack tools: CLI entrypoint."""

import argparse

from stackdock.commands.compose import register_compose_command
from stackdock.commands.down import register_down_command
from stackdock.commands.env import register_env_command
from stackdock.commands.restart import register_restart_command
from stackdock.commands.status import register_status_command
from stackdock.commands.up import register_up_command
from stackdock.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Local dev stack tools")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logs with logger names")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_up_command(subparsers)
    register_down_command(subparsers)
    register_restart_command(subparsers)
    register_env_command(subparsers)
    register_compose_command(subparsers)
    register_status_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
