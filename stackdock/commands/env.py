"""Env command: print the handoff env file from the shared volume."""

import asyncio
import logging
import sys

from stackdock.commands.stack_args import add_stack_arguments, load_stack_or_exit, params_from_args
from stackdock.deploy.local import make_run_cmd
from stackdock.deploy.orchestrate import read_handoff_env
from stackdock.deploy.volume import read_volume_file
from stackdock.handoff import HandoffValidationError

logger = logging.getLogger(__name__)


async def _handle_env(args):
    stack = load_stack_or_exit(args)
    if stack.handoff_service is None:
        logger.error("Error: stack has no handoff service")
        sys.exit(1)
    params = params_from_args(args, stack)
    run_cmd = make_run_cmd(params.deploy_dir, dry_run=params.dry_run)

    if params.dry_run:
        await read_volume_file(run_cmd, stack, stack.handoff.env_file)
        return

    try:
        values = await read_handoff_env(run_cmd, stack)
    except HandoffValidationError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    for key, value in values.items():
        logger.info(f"{key}={value}")


def handle_env(args):
    """Handle the env command."""
    asyncio.run(_handle_env(args))


def register_env_command(subparsers):
    """Register the env subcommand."""
    parser = subparsers.add_parser("env", help="Show the handoff env file stored on the shared volume")
    add_stack_arguments(parser)
    parser.set_defaults(func=handle_env)
