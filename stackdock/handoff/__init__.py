"""Handoff: deployer output to the gateway's env file."""

from stackdock.handoff.envfile import NULL_TOKEN, parse_env, render_env, validate_env
from stackdock.handoff.errors import (
    HandoffError,
    HandoffValidationError,
    MissingFieldError,
    QueryPathError,
)
from stackdock.handoff.extract import HandoffValues, extract_handoff, parse_documents
from stackdock.handoff.query import evaluate, parse_query, render_raw

__all__ = [
    "NULL_TOKEN",
    "HandoffError",
    "HandoffValidationError",
    "HandoffValues",
    "MissingFieldError",
    "QueryPathError",
    "evaluate",
    "extract_handoff",
    "parse_documents",
    "parse_env",
    "parse_query",
    "render_env",
    "render_raw",
    "validate_env",
]
