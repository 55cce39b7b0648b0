"""Compose command: render the stack's docker-compose.yaml without running anything."""

import logging
import os

from stackdock.commands.stack_args import load_stack_or_exit
from stackdock.deploy.compose import generate_compose

logger = logging.getLogger(__name__)


def handle_compose(args):
    """Handle the compose command."""
    stack = load_stack_or_exit(args)
    content = generate_compose(stack)

    if args.output is None:
        logger.info(content.rstrip("\n"))
        return

    os.makedirs(os.path.dirname(os.path.abspath(args.output)), exist_ok=True)
    with open(args.output, "w") as f:
        f.write(content)
    logger.info(f"Wrote {args.output}")


def register_compose_command(subparsers):
    """Register the compose subcommand."""
    parser = subparsers.add_parser("compose", help="Render docker-compose.yaml for a stack")
    parser.add_argument("stack", help="Path to stack directory (contains stack.yaml)")
    parser.add_argument("--variant", default=None, help="Stack variant to merge over the base config")
    parser.add_argument("--output", "-o", default=None, help="Write to this path instead of stdout")
    parser.set_defaults(func=handle_compose)
