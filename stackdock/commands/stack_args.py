"""Arguments and stack loading shared by every stack subcommand."""

import logging
import os
import sys

from stackdock.deploy.params import StackParams
from stackdock.redact import register_stack_secrets
from stackdock.stack import load_stack

logger = logging.getLogger(__name__)


def add_stack_arguments(parser, variant=True, dry_run=True):
    """Add the stack directory argument and the common flags."""
    parser.add_argument("stack", help="Path to stack directory (contains stack.yaml)")
    if variant:
        parser.add_argument("--variant", default=None, help="Stack variant to merge over the base config")
    parser.add_argument(
        "--deploy-dir",
        default=None,
        help="Where docker-compose.yaml is written and compose runs (default: the stack directory)",
    )
    if dry_run:
        parser.add_argument("--dry-run", action="store_true", help="Print commands without executing")


def load_stack_or_exit(args):
    """Load the stack named by args, exiting with status 1 on a config error."""
    try:
        stack = load_stack(args.stack, variant=getattr(args, "variant", None))
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    register_stack_secrets(stack)
    return stack


def params_from_args(args, stack) -> StackParams:
    """Build StackParams from parsed args. The stack directory doubles as the deploy dir."""
    deploy_dir = os.path.abspath(args.deploy_dir or args.stack)
    return StackParams(
        stack=stack,
        deploy_dir=deploy_dir,
        host=getattr(args, "host", "localhost"),
        dry_run=getattr(args, "dry_run", False),
        reuse=getattr(args, "reuse", False),
        volumes=getattr(args, "volumes", False),
    )
