"""Status command: probe the stack's JSON-RPC endpoints from this machine."""

import asyncio
import logging
import sys

from stackdock.commands.stack_args import load_stack_or_exit
from stackdock.probe import probe_endpoints

logger = logging.getLogger(__name__)


def handle_status(args):
    """Handle the status command."""
    stack = load_stack_or_exit(args)
    statuses = asyncio.run(probe_endpoints(stack, host=args.host))

    if not statuses:
        logger.info("No services with a readiness probe.")
        return

    width = max(len(s.service) for s in statuses)
    for s in statuses:
        if s.ok:
            logger.info(f"{s.service:<{width}}  up    {s.method} -> {s.result}  ({s.url})")
        else:
            logger.info(f"{s.service:<{width}}  down  {s.error}  ({s.url})")

    if not all(s.ok for s in statuses):
        sys.exit(1)


def register_status_command(subparsers):
    """Register the status subcommand."""
    parser = subparsers.add_parser("status", help="Check that the sequencer and gateway answer JSON-RPC")
    parser.add_argument("stack", help="Path to stack directory (contains stack.yaml)")
    parser.add_argument("--variant", default=None, help="Stack variant to merge over the base config")
    parser.add_argument("--host", default="localhost", help="Host the stack's ports are published on")
    parser.set_defaults(func=handle_status)
