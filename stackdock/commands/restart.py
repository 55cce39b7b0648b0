"""Restart command: restart one long-running service without touching the volume."""

import asyncio
import logging
import sys

from stackdock.commands.stack_args import add_stack_arguments, load_stack_or_exit, params_from_args
from stackdock.deploy.local import make_run_cmd
from stackdock.deploy.orchestrate import run_restart

logger = logging.getLogger(__name__)


def handle_restart(args):
    """Handle the restart command."""
    stack = load_stack_or_exit(args)
    params = params_from_args(args, stack)
    try:
        stack.service(args.service)
    except ValueError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    run_cmd = make_run_cmd(params.deploy_dir, dry_run=params.dry_run)
    ok = asyncio.run(run_restart(run_cmd, stack, args.service, dry_run=params.dry_run))
    if not ok:
        sys.exit(1)


def register_restart_command(subparsers):
    """Register the restart subcommand."""
    parser = subparsers.add_parser(
        "restart",
        help="Restart one service; env file consumers are checked for unchanged values",
    )
    add_stack_arguments(parser)
    parser.add_argument("service", help="Service to restart (e.g. kakarot-rpc)")
    parser.set_defaults(func=handle_restart)
