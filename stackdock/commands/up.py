"""Up command: generate compose, then run the startup pipeline stage by stage."""

import asyncio
import logging
import sys

from stackdock.commands.stack_args import add_stack_arguments, load_stack_or_exit, params_from_args
from stackdock.deploy.orchestrate import up

logger = logging.getLogger(__name__)


def handle_up(args):
    """Handle the up command."""
    stack = load_stack_or_exit(args)
    params = params_from_args(args, stack)

    result = asyncio.run(up(params))

    if result is None or not result.ok:
        if result is not None:
            blocked = [s.name for s in result.skipped]
            if blocked:
                logger.error(f"\nNot started: {', '.join(blocked)}")
        sys.exit(1)


def register_up_command(subparsers):
    """Register the up subcommand."""
    parser = subparsers.add_parser("up", help="Bring the stack up: sequencer, deployer, handoff, gateway")
    add_stack_arguments(parser)
    parser.add_argument(
        "--reuse",
        action="store_true",
        help="Keep running containers instead of 'docker compose down' first",
    )
    parser.add_argument("--host", default="localhost", help="Hostname shown in endpoint URLs")
    parser.set_defaults(func=handle_up)
