"""Down command: stop the stack, optionally wiping the shared volume."""

import asyncio
import sys

from stackdock.commands.stack_args import add_stack_arguments, load_stack_or_exit, params_from_args
from stackdock.deploy.orchestrate import down


def handle_down(args):
    """Handle the down command."""
    stack = load_stack_or_exit(args)
    params = params_from_args(args, stack)
    if not asyncio.run(down(params)):
        sys.exit(1)


def register_down_command(subparsers):
    """Register the down subcommand."""
    parser = subparsers.add_parser("down", help="Stop and remove the stack's containers")
    add_stack_arguments(parser, variant=False)
    parser.add_argument(
        "--volumes",
        action="store_true",
        help="Also remove the shared deployments volume (next 'up' redeploys from scratch)",
    )
    parser.set_defaults(func=handle_down)
