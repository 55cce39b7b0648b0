"""CLI logging setup: simple %(message)s format for standalone commands."""

import logging
import sys

from stackdock.redact import SecretRedactingFilter


def setup_cli_logging(verbose=False):
    """Configure root logger with plain message format for CLI commands.

    Produces output identical to print(). With verbose, debug records are
    shown with a logger-name prefix.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    if verbose:
        handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
